from datetime import datetime
from pathlib import Path
import json

from aiusage.models import ProviderStatus, SourceLocator
from aiusage.providers.claude_code import ClaudeCodeAdapter


def _assistant(ts: str, rid: str, mid: str, inp: int = 100, out: int = 50, **usage) -> str:
    return json.dumps(
        {
            "type": "assistant",
            "timestamp": ts,
            "requestId": rid,
            "message": {
                "id": mid,
                "role": "assistant",
                "usage": {"input_tokens": inp, "output_tokens": out, **usage},
            },
        }
    )


def _adapter(projects: Path) -> ClaudeCodeAdapter:
    return ClaudeCodeAdapter(locator=SourceLocator(paths=(projects,)))


def test_three_good_lines_and_one_malformed(tmp_path: Path, now: datetime) -> None:
    projects = tmp_path / "projects/my-app"
    projects.mkdir(parents=True)
    lines = [
        _assistant("2025-03-12T09:00:00Z", "r1", "m1"),
        _assistant("2025-03-12T10:00:00Z", "r2", "m2"),
        "{not json",
        _assistant("2025-03-12T11:00:00Z", "r3", "m3"),
    ]
    (projects / "session.jsonl").write_text("\n".join(lines) + "\n")

    report = _adapter(tmp_path / "projects").collect(now)

    assert report.status is ProviderStatus.ACTIVE
    today = report.usage.today
    assert (today.input_tokens, today.output_tokens, today.total_tokens, today.request_count) == (300, 150, 450, 3)
    assert report.details["malformed_records"] == 1
    assert "malformed" in (report.diagnostic or "")


def test_duplicate_entries_counted_once(tmp_path: Path, now: datetime) -> None:
    projects = tmp_path / "projects"
    projects.mkdir()
    line = _assistant("2025-03-12T09:00:00Z", "r1", "m1")
    (projects / "a.jsonl").write_text(line + "\n")
    (projects / "b.jsonl").write_text(line + "\n")

    report = _adapter(projects).collect(now)

    assert report.usage.total.request_count == 1


def test_cache_tokens_summed(tmp_path: Path, now: datetime) -> None:
    projects = tmp_path / "projects"
    projects.mkdir()
    line = _assistant(
        "2025-03-12T09:00:00Z", "r1", "m1", cache_read_input_tokens=1000, cache_creation_input_tokens=200
    )
    user = json.dumps({"type": "user", "timestamp": "2025-03-12T09:00:00Z", "message": {"role": "user"}})
    (projects / "s.jsonl").write_text(user + "\n" + line + "\n")

    report = _adapter(projects).collect(now)

    assert report.usage.today.cached_tokens == 1200
    assert report.usage.today.total_tokens == 150


def test_older_entries_fall_outside_today(tmp_path: Path, now: datetime) -> None:
    projects = tmp_path / "projects"
    projects.mkdir()
    lines = [
        _assistant("2025-03-10T09:00:00Z", "r1", "m1"),
        _assistant("2025-02-20T09:00:00Z", "r2", "m2"),
    ]
    (projects / "s.jsonl").write_text("\n".join(lines))

    report = _adapter(projects).collect(now)

    assert report.usage.today.request_count == 0
    assert report.usage.this_week.request_count == 1
    assert report.usage.this_month.request_count == 1
    assert report.usage.total.request_count == 2
