from datetime import timezone
from pathlib import Path
import shutil
import subprocess

import pytest

from aiusage import config
from aiusage.config import (
    Config,
    ProviderConfig,
    load_config,
    local_zone,
    resolve_credentials,
    save_config,
    set_config_value,
)
from aiusage.registry import default_registry


def test_missing_config_gives_defaults_without_writing(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"

    cfg = load_config(path)

    assert cfg.general.timezone == "local"
    assert cfg.general.log_level == "warning"
    assert not path.exists()


def test_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested/config.toml"
    cfg = Config()
    set_config_value(cfg, "general.timezone", "Europe/Berlin")
    set_config_value(cfg, "providers.cursor.enabled", "false")
    set_config_value(cfg, "providers.openai-codex.timeout_seconds", "3.5")
    cfg.providers["claude-code"] = ProviderConfig(paths=["~/elsewhere/projects"])
    save_config(cfg, path)

    loaded = load_config(path)

    assert loaded.general.timezone == "Europe/Berlin"
    assert loaded.provider("cursor").enabled is False
    assert loaded.provider("openai-codex").timeout_seconds == 3.5
    assert loaded.provider("claude-code").paths == ["~/elsewhere/projects"]
    assert loaded.reference_now().utcoffset() is not None


def test_unsupported_keys_rejected() -> None:
    cfg = Config()
    with pytest.raises(ValueError, match="unsupported key"):
        set_config_value(cfg, "general.refresh_seconds", "2")
    with pytest.raises(ValueError, match="unknown provider"):
        set_config_value(cfg, "providers.notepad.enabled", "true")
    with pytest.raises(ValueError, match="unknown timezone"):
        set_config_value(cfg, "general.timezone", "Mars/Olympus")


def test_invalid_toml_raises_value_error(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("general = [")
    with pytest.raises(ValueError):
        load_config(path)


def test_disabled_provider_left_out_and_paths_override(tmp_path: Path) -> None:
    cfg = Config()
    set_config_value(cfg, "providers.tabnine.enabled", "no")
    cfg.providers["warp"] = ProviderConfig(paths=[str(tmp_path / "warp.sqlite")])

    registry = default_registry(cfg, resolve_credentials({}, home=tmp_path))

    assert "tabnine" not in registry.names()
    warp = next(a for a in registry if a.name == "warp")
    assert warp.locator.paths == (tmp_path / "warp.sqlite",)


def test_remote_timeout_resolution() -> None:
    cfg = Config()
    cfg.providers["github-copilot"] = ProviderConfig(timeout_seconds=2.0)
    registry = default_registry(cfg, resolve_credentials({}))

    timeouts = {a.name: a.timeout for a in registry}
    assert timeouts["github-copilot"] == 2.0
    assert timeouts["openai-codex"] == 15.0
    assert timeouts["claude-code"] is None


def test_credentials_from_env_and_hosts_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda name: None)
    hosts = tmp_path / ".config/github-copilot/hosts.json"
    hosts.parent.mkdir(parents=True)
    hosts.write_text('{"github.com": {"user": "me", "oauth_token": "gho_hosts"}}')

    from_file = resolve_credentials({}, home=tmp_path)
    from_env = resolve_credentials({"GH_TOKEN": "gh_env", "OPENAI_API_KEY": "sk-1"}, home=tmp_path)

    assert from_file.github_token == "gho_hosts"
    assert from_file.openai_key is None
    assert from_env.github_token == "gh_env"
    assert from_env.openai_key == "sk-1"


def _hosts_file(home: Path) -> None:
    hosts = home / ".config/github-copilot/hosts.json"
    hosts.parent.mkdir(parents=True)
    hosts.write_text('{"github.com": {"oauth_token": "gho_hosts"}}')


def test_gh_cli_token_sits_between_env_and_hosts_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _hosts_file(tmp_path)
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="gho_from_cli\n", stderr="")

    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/gh")
    monkeypatch.setattr(subprocess, "run", fake_run)

    assert resolve_credentials({}, home=tmp_path).github_token == "gho_from_cli"
    assert resolve_credentials({"GITHUB_TOKEN": "ghp_env"}, home=tmp_path).github_token == "ghp_env"
    assert calls == [["gh", "auth", "token"]]


def test_gh_cli_failure_falls_back_to_hosts_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _hosts_file(tmp_path)
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/gh")

    monkeypatch.setattr(subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="not logged in"))
    assert resolve_credentials({}, home=tmp_path).github_token == "gho_hosts"

    def missing(cmd, **kwargs):
        raise FileNotFoundError("gh")

    monkeypatch.setattr(subprocess, "run", missing)
    assert resolve_credentials({}, home=tmp_path).github_token == "gho_hosts"


def test_gh_not_installed_is_not_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda name: None)

    def unexpected(cmd, **kwargs):
        raise AssertionError("gh should not run")

    monkeypatch.setattr(subprocess, "run", unexpected)
    assert resolve_credentials({}, home=tmp_path).github_token is None


def test_local_zone_keeps_dst_rules(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert local_zone({"TZ": "America/New_York"}).key == "America/New_York"

    monkeypatch.setattr(config, "LOCALTIME", tmp_path / "missing")
    fallback = local_zone({"TZ": "Not/AZone"})
    assert isinstance(fallback, timezone)
