from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import iter_files, iter_jsonl
from aiusage.sources.records import ParseStats, as_count, file_mtime, parse_timestamp, pick

COMPLETION_EVENTS = ("usage", "completion")


class TabnineAdapter(FileAdapter):
    """Tabnine completion logs.

    Entries give a single token figure, reported as ``total_tokens``. Entries
    that only give character counts are skipped rather than converted.
    """

    descriptor = ProviderDescriptor(
        name="tabnine",
        display_name="Tabnine",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        if paths.is_macos() or paths.is_windows():
            logs = paths.data_dir() / "TabNine/logs"
        else:
            logs = paths.home() / ".local/share/TabNine/logs"
        return SourceLocator(paths=(logs,))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        for root in sources:
            for log_path in iter_files(root, ("*.log", "*.json", "*.jsonl")):
                fallback_ts = file_mtime(log_path)
                for entry in iter_jsonl(log_path, stats):
                    event = _completion_event(entry, fallback_ts)
                    if event is not None:
                        yield event


def _completion_event(entry: dict, fallback_ts) -> UsageEvent | None:
    is_completion = entry.get("type") == "completion" or entry.get("event") in COMPLETION_EVENTS
    if not is_completion and "meta" not in entry and "usage" not in entry:
        return None
    meta_tokens = as_count(pick(entry, "meta", "tokens_used"))
    usage_tokens = as_count(pick(entry, "usage", "tokens"))
    if meta_tokens is None and usage_tokens is None:
        return None
    tokens = max(meta_tokens or 0, usage_tokens or 0)
    if tokens == 0:
        return None
    return UsageEvent.create(
        timestamp=parse_timestamp(entry.get("timestamp")) or fallback_ts,
        total_tokens=tokens,
    )
