from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import load_json_document
from aiusage.sources.records import ParseStats, as_count, file_mtime, parse_timestamp

ROO_EXTENSION = "rooveterinaryinc.roo-cline"
CLINE_EXTENSION = "saoudrizwan.claude-dev"


class ClineAdapter(FileAdapter):
    """Cline and its Roo Code fork.

    Roo keeps running totals in ``usage-tracking.json``; when present they win
    over the per-task files, which would double count.
    """

    descriptor = ProviderDescriptor(
        name="cline",
        display_name="Cline",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        storage = paths.vscode_global_storage()
        return SourceLocator(
            paths=(
                paths.home() / ".roo/usage-tracking.json",
                storage / ROO_EXTENSION / "tasks",
                storage / CLINE_EXTENSION / "tasks",
            ),
        )

    def locate(self) -> list[Path]:
        # first usable source only
        found = super().locate()
        for source in found:
            if source.is_file():
                return [source]
        return found[:1]

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        for source in sources:
            if source.is_file():
                yield from _tracking_totals(source, stats)
            else:
                yield from _task_events(source, stats)


def _tracking_totals(path: Path, stats: ParseStats) -> Iterator[UsageEvent]:
    data = load_json_document(path, stats)
    if not isinstance(data, dict):
        return
    cache_read = as_count(data.get("totalCacheReadTokens"))
    cache_write = as_count(data.get("totalCacheWriteTokens"))
    cached = None
    if cache_read is not None or cache_write is not None:
        cached = (cache_read or 0) + (cache_write or 0)
    stats.notes.append("running totals only; no per-day breakdown")
    # lifetime totals have no time and no request count
    yield UsageEvent.create(
        input_tokens=as_count(data.get("totalInputTokens")),
        output_tokens=as_count(data.get("totalOutputTokens")),
        cached_tokens=cached,
        request_count=0,
    )


def _task_events(tasks_dir: Path, stats: ParseStats) -> Iterator[UsageEvent]:
    for task_json in sorted(tasks_dir.glob("*/task.json")):
        data = load_json_document(task_json, stats)
        if not isinstance(data, dict):
            continue
        inp = as_count(data.get("tokensIn"))
        out = as_count(data.get("tokensOut"))
        if not inp and not out:
            continue
        cache_read = as_count(data.get("cacheReads"))
        cache_write = as_count(data.get("cacheWrites"))
        cached = None
        if cache_read is not None or cache_write is not None:
            cached = (cache_read or 0) + (cache_write or 0)
        yield UsageEvent.create(
            timestamp=parse_timestamp(data.get("ts")) or file_mtime(task_json),
            input_tokens=inp,
            output_tokens=out,
            cached_tokens=cached,
        )
