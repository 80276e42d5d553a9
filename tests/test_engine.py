from datetime import datetime
from pathlib import Path
from typing import Iterator
import asyncio
import json

import httpx
import pytest

from aiusage.models import ProviderDescriptor, ProviderStatus, SourceKind, SourceLocator, TOKENS_AND_REQUESTS, UsageEvent
from aiusage.providers.base import FileAdapter, RemoteAdapter
from aiusage.providers.claude_code import ClaudeCodeAdapter
from aiusage.providers.replit import ReplitAdapter
from aiusage.engine import build_report, collect_report
from aiusage.config import Credentials
from aiusage.registry import Registry
from aiusage.render import report_to_json
from aiusage.sources.records import ParseStats


class ExplodingAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="exploding",
        display_name="Exploding",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator()

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        raise RuntimeError("parser bug")


class SlowRemoteAdapter(RemoteAdapter):
    descriptor = ProviderDescriptor(
        name="slow-remote",
        display_name="Slow Remote",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.REMOTE_API,
        default_timeout=0.05,
    )
    credential_field = "openai_key"

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(endpoint="https://example.invalid/usage")

    def headers(self, credential: str) -> dict[str, str]:
        return {}

    async def fetch_events(self, client: httpx.AsyncClient, now: datetime, stats: ParseStats) -> list[UsageEvent]:
        await asyncio.sleep(5)
        return []


def _claude(tmp_path: Path) -> ClaudeCodeAdapter:
    projects = tmp_path / "projects"
    projects.mkdir(exist_ok=True)
    line = {
        "type": "assistant",
        "timestamp": "2025-03-12T09:00:00Z",
        "requestId": "r1",
        "message": {"id": "m1", "usage": {"input_tokens": 10, "output_tokens": 5}},
    }
    (projects / "s.jsonl").write_text(json.dumps(line))
    return ClaudeCodeAdapter(locator=SourceLocator(paths=(projects,)))


def test_failing_provider_does_not_affect_others(tmp_path: Path, now: datetime) -> None:
    registry = Registry([ExplodingAdapter(locator=SourceLocator(paths=(tmp_path,))), _claude(tmp_path), ReplitAdapter()])

    report = build_report(registry, now)

    assert [p.name for p in report.providers] == ["exploding", "claude-code", "replit"]
    exploding, claude, replit = report.providers
    assert exploding.status is ProviderStatus.ERROR
    assert "parser bug" in (exploding.diagnostic or "")
    assert claude.status is ProviderStatus.ACTIVE
    assert claude.usage.today.total_tokens == 15
    assert replit.status is ProviderStatus.NOT_APPLICABLE


@pytest.mark.asyncio
async def test_slow_remote_times_out(tmp_path: Path, now: datetime) -> None:
    slow = SlowRemoteAdapter(credentials=Credentials(openai_key="k"))
    registry = Registry([slow, _claude(tmp_path)])

    report = await collect_report(registry, now)

    assert report.providers[0].status is ProviderStatus.ERROR
    assert report.providers[0].diagnostic == "timed out after 0.05s"
    assert report.providers[1].status is ProviderStatus.ACTIVE


def test_report_json_is_stable(tmp_path: Path, now: datetime) -> None:
    registry = Registry([_claude(tmp_path), ReplitAdapter()])

    first = report_to_json(build_report(registry, now))
    second = report_to_json(build_report(registry, now))

    assert first == second
    data = json.loads(first)
    assert data["generated_at"] == now.isoformat()
    assert data["providers"][0]["status"] == "active"
    assert data["providers"][0]["usage"]["today"]["total_tokens"] == 15


def test_registry_select_matches_name_or_display_name(tmp_path: Path) -> None:
    registry = Registry([_claude(tmp_path), ReplitAdapter()])

    assert registry.select("CLAUDE").names() == ["claude-code"]
    assert registry.select("repl").names() == ["replit"]
    assert registry.select(None).names() == ["claude-code", "replit"]
    assert len(registry.select("nothing")) == 0


class StalledLocalAdapter(ExplodingAdapter):
    descriptor = ProviderDescriptor(
        name="stalled-local",
        display_name="Stalled Local",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        raise TimeoutError("network share did not answer")


def test_local_os_timeout_is_not_reported_as_provider_timeout(tmp_path: Path, now: datetime) -> None:
    report = build_report(Registry([StalledLocalAdapter(locator=SourceLocator(paths=(tmp_path,)))]), now)

    row = report.providers[0]
    assert row.status is ProviderStatus.ERROR
    assert row.diagnostic == "internal error: network share did not answer"
