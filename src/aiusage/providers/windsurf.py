from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.blobs import find_blobs, raise_if_encrypted
from aiusage.sources.jsonl import iter_files, iter_jsonl, load_json_document
from aiusage.sources.records import ParseStats, as_count, parse_timestamp


class WindsurfAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="windsurf",
        display_name="Windsurf",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        codeium = paths.home() / ".codeium"
        return SourceLocator(
            paths=(codeium / "windsurf/cascade", codeium / "windsurf/memories", codeium),
        )

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        cascade = next((s for s in sources if s.name == "cascade"), None)
        if cascade is None:
            # memories and config only show the editor is installed
            stats.notes.append("installed; no readable usage data")
            return
        events = 0
        for log_path in iter_files(cascade, ("*.jsonl", "*.log")):
            for entry in iter_jsonl(log_path, stats):
                event = _cascade_event(entry)
                if event is not None:
                    events += 1
                    yield event
        for json_path in iter_files(cascade, ("*.json",)):
            data = load_json_document(json_path, stats)
            entries = data if isinstance(data, list) else [data]
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                event = _cascade_event(entry)
                if event is not None:
                    events += 1
                    yield event
        raise_if_encrypted(find_blobs(cascade), events, cascade)

    def data_source(self, sources: list[Path]) -> str:
        return str(next((s for s in sources if s.name == "cascade"), sources[0]))


def _cascade_event(entry: dict) -> UsageEvent | None:
    usage = entry.get("usage") if isinstance(entry.get("usage"), dict) else {}
    inp = as_count(usage.get("input_tokens"))
    if inp is None:
        inp = as_count(usage.get("context_length"))
    out = as_count(usage.get("output_tokens"))
    if out is None:
        out = as_count(usage.get("completion_length"))
    context = as_count(entry.get("context_length"))
    if context is not None:
        inp = max(inp or 0, context)
    completion = as_count(entry.get("completion_length"))
    if completion is None:
        completion = as_count(entry.get("generated_tokens"))
    if completion is not None:
        out = max(out or 0, completion)
    billable = as_count(entry.get("billable_tokens"))
    if not inp and not out and not billable:
        return None
    return UsageEvent.create(
        timestamp=parse_timestamp(entry.get("timestamp")),
        input_tokens=inp,
        output_tokens=out,
        total_tokens=billable,
    )
