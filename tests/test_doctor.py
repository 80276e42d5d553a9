from pathlib import Path

from aiusage.config import Config, Credentials
from aiusage.doctor import diagnose, run_doctor
from aiusage.models import SourceLocator
from aiusage.providers.claude_code import ClaudeCodeAdapter
from aiusage.providers.github_copilot import GithubCopilotAdapter
from aiusage.providers.replit import ReplitAdapter
from aiusage.registry import default_registry, provider_names


def test_file_provider_reports_resolved_path(tmp_path: Path) -> None:
    projects = tmp_path / "projects"
    projects.mkdir()
    # a malformed file must not matter: doctor never parses
    (projects / "broken.jsonl").write_text("{{{")

    result = diagnose(ClaudeCodeAdapter(locator=SourceLocator(paths=(tmp_path / "missing", projects))))

    assert result.reachable
    assert result.resolved == str(projects)
    assert result.checks == [(str(tmp_path / "missing"), False), (str(projects), True)]


def test_missing_file_provider_is_unreachable(tmp_path: Path) -> None:
    result = diagnose(ClaudeCodeAdapter(locator=SourceLocator(paths=(tmp_path / "missing",))))

    assert not result.reachable
    assert result.resolved is None


def test_remote_provider_reachable_with_credential() -> None:
    with_token = diagnose(GithubCopilotAdapter(credentials=Credentials(github_token="t")))
    without = diagnose(GithubCopilotAdapter(credentials=Credentials()))

    assert with_token.reachable
    assert not without.reachable
    assert any("GITHUB_TOKEN" in target for target, _ in without.checks)


def test_link_only_is_reachable() -> None:
    result = diagnose(ReplitAdapter())

    assert result.reachable
    assert result.resolved == "https://replit.com/usage"


def test_run_doctor_covers_every_enabled_provider() -> None:
    cfg = Config()
    results = run_doctor(default_registry(cfg, Credentials()))

    assert [r.name for r in results] == list(provider_names())
