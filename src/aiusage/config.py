from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import json
import os
import shutil
import subprocess
import tomllib

import tomli_w


HOME = Path.home()
CONFIG_PATH = HOME / ".config/aiusage/config.toml"
LOCALTIME = Path("/etc/localtime")

LOG_LEVELS = ("debug", "info", "warning", "error")

GH_TIMEOUT_SECONDS = 5

GITHUB_TOKEN_VARS = ("AIUSAGE_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")
OPENAI_KEY_VARS = ("AIUSAGE_OPENAI_KEY", "OPENAI_API_KEY", "OPENAI_KEY")


@dataclass
class GeneralConfig:
    timezone: str = "local"
    log_level: str = "warning"


@dataclass
class NetworkConfig:
    timeout_seconds: float = 10.0


@dataclass
class ProviderConfig:
    enabled: bool = True
    timeout_seconds: float | None = None
    paths: list[str] = field(default_factory=list)


@dataclass
class Config:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    def provider(self, name: str) -> ProviderConfig:
        return self.providers.get(name) or ProviderConfig()

    def timezone(self) -> tzinfo:
        if self.general.timezone == "local":
            return local_zone()
        return ZoneInfo(self.general.timezone)

    def reference_now(self) -> datetime:
        return datetime.now(self.timezone())


@dataclass
class Credentials:
    github_token: str | None = None
    openai_key: str | None = None

    def present(self, name: str) -> bool:
        return bool(getattr(self, name, None))


def local_zone(environ: Mapping[str, str] | None = None) -> tzinfo:
    """The system zone with its daylight-saving rules.

    Tries $TZ, then /etc/localtime, and falls back to the current fixed offset
    where neither names a zone (Windows).
    """
    env = os.environ if environ is None else environ
    name = env.get("TZ", "").lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    if LOCALTIME.exists():
        try:
            with LOCALTIME.open("rb") as fh:
                return ZoneInfo.from_file(fh, key="localtime")
        except (OSError, ValueError):
            pass
    return datetime.now().astimezone().tzinfo


def _validate_timezone(name: str) -> str:
    if name == "local":
        return name
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone: {name}") from exc
    return name


def _validate_log_level(level: str) -> str:
    level = level.lower()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {level}")
    return level


def _known_providers() -> tuple[str, ...]:
    from aiusage.registry import provider_names

    return provider_names()


def _provider_from_dict(raw: dict) -> ProviderConfig:
    timeout = raw.get("timeout_seconds")
    return ProviderConfig(
        enabled=bool(raw.get("enabled", True)),
        timeout_seconds=float(timeout) if timeout is not None else None,
        paths=[str(p) for p in raw.get("paths", [])],
    )


def _provider_to_dict(cfg: ProviderConfig) -> dict:
    out: dict[str, object] = {"enabled": cfg.enabled}
    if cfg.timeout_seconds is not None:
        out["timeout_seconds"] = cfg.timeout_seconds
    if cfg.paths:
        out["paths"] = list(cfg.paths)
    return out


def load_config(path: Path = CONFIG_PATH) -> Config:
    if not path.exists():
        return Config()

    try:
        raw = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"invalid config {path}: {exc}") from exc
    general_raw = raw.get("general", {})
    network_raw = raw.get("network", {})
    providers_raw = raw.get("providers", {})

    return Config(
        general=GeneralConfig(
            timezone=_validate_timezone(general_raw.get("timezone", "local")),
            log_level=_validate_log_level(general_raw.get("log_level", "warning")),
        ),
        network=NetworkConfig(timeout_seconds=float(network_raw.get("timeout_seconds", 10.0))),
        providers={name: _provider_from_dict(pc) for name, pc in providers_raw.items() if isinstance(pc, dict)},
    )


def save_config(cfg: Config, path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "general": {
            "timezone": cfg.general.timezone,
            "log_level": cfg.general.log_level,
        },
        "network": {"timeout_seconds": cfg.network.timeout_seconds},
        "providers": {name: _provider_to_dict(pc) for name, pc in cfg.providers.items()},
    }
    path.write_text(tomli_w.dumps(payload))


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value}")


def set_config_value(cfg: Config, dotted_key: str, value: str) -> None:
    if dotted_key == "general.timezone":
        cfg.general.timezone = _validate_timezone(value)
        return
    if dotted_key == "general.log_level":
        cfg.general.log_level = _validate_log_level(value)
        return
    if dotted_key == "network.timeout_seconds":
        cfg.network.timeout_seconds = float(value)
        return

    keys = dotted_key.split(".")
    if len(keys) == 3 and keys[0] == "providers":
        provider, field_name = keys[1], keys[2]
        if provider not in _known_providers():
            raise ValueError(f"unknown provider: {provider}")
        pc = cfg.providers.setdefault(provider, ProviderConfig())
        if field_name == "enabled":
            pc.enabled = _parse_bool(value)
            return
        if field_name == "timeout_seconds":
            pc.timeout_seconds = float(value)
            return
    raise ValueError(f"unsupported key: {dotted_key}")


def _copilot_hosts_token(home: Path) -> str | None:
    hosts = home / ".config/github-copilot/hosts.json"
    if not hosts.exists():
        return None
    try:
        data = json.loads(hosts.read_text(errors="ignore"))
    except (OSError, json.JSONDecodeError):
        return None
    entry = data.get("github.com") if isinstance(data, dict) else None
    token = entry.get("oauth_token") if isinstance(entry, dict) else None
    return token or None


def _gh_cli_token() -> str | None:
    if shutil.which("gh") is None:
        return None
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=GH_TIMEOUT_SECONDS)
    except (OSError, subprocess.TimeoutExpired):
        return None
    token = result.stdout.strip() if result.returncode == 0 else ""
    # gh prints gho_/ghp_/ghu_ tokens
    return token if token.startswith("gh") else None


def _first_env(environ: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = environ.get(name, "").strip()
        if value:
            return value
    return None


def resolve_credentials(environ: Mapping[str, str] | None = None, home: Path | None = None) -> Credentials:
    env = os.environ if environ is None else environ
    return Credentials(
        github_token=_first_env(env, GITHUB_TOKEN_VARS) or _gh_cli_token() or _copilot_hosts_token(home or Path.home()),
        openai_key=_first_env(env, OPENAI_KEY_VARS),
    )
