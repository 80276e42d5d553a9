from pathlib import Path
import json
import os
import subprocess
import sys

SRC = Path(__file__).resolve().parents[1] / "src"


def _run(tmp_path: Path, *args: str) -> subprocess.CompletedProcess:
    env = {
        k: v
        for k, v in os.environ.items()
        if not k.startswith(("AIUSAGE_", "GITHUB_", "GH_", "OPENAI", "XDG_", "CODEX_"))
    }
    # PATH points nowhere so a logged-in gh CLI is never picked up
    env.update(HOME=str(tmp_path), PYTHONPATH=str(SRC), COLUMNS="200", PATH=str(tmp_path))
    return subprocess.run(
        [sys.executable, "-m", "aiusage.cli", *args],
        check=False,
        capture_output=True,
        text=True,
        env=env,
    )


def test_cli_list_runs(tmp_path: Path) -> None:
    proc = _run(tmp_path, "list")
    assert proc.returncode == 0
    assert "claude-code" in proc.stdout
    assert "replit" in proc.stdout


def test_cli_usage_json_on_empty_home(tmp_path: Path) -> None:
    proc = _run(tmp_path, "usage", "--format", "json")
    assert proc.returncode == 0, proc.stderr

    data = json.loads(proc.stdout)
    statuses = {p["name"]: p["status"] for p in data["providers"]}
    assert len(statuses) == 15
    assert statuses["replit"] == "not_applicable"
    assert statuses["claude-code"] == "unavailable"
    assert statuses["github-copilot"] == "unavailable"
    assert "active" not in statuses.values()


def test_cli_doctor_json(tmp_path: Path) -> None:
    proc = _run(tmp_path, "doctor", "--tool", "claude", "--format", "json")
    assert proc.returncode == 0, proc.stderr

    [result] = json.loads(proc.stdout)
    assert result["name"] == "claude-code"
    assert result["reachable"] is False


def test_cli_config_set_and_show(tmp_path: Path) -> None:
    config = tmp_path / "config.toml"
    proc = _run(tmp_path, "--config", str(config), "config", "set", "providers.replit.enabled", "false")
    assert proc.returncode == 0, proc.stderr
    assert config.exists()

    shown = json.loads(_run(tmp_path, "--config", str(config), "config", "show").stdout)
    assert shown["providers"]["replit"]["enabled"] is False

    bad = _run(tmp_path, "--config", str(config), "config", "set", "general.nope", "1")
    assert bad.returncode == 2
    assert "unsupported key" in bad.stderr
