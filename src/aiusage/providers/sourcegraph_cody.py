from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import load_json_document
from aiusage.sources.records import ParseStats, as_count, file_mtime, parse_timestamp
from aiusage.windows import normalize_timestamp

EXTENSION_ID = "sourcegraph.cody-ai"


class SourcegraphCodyAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="sourcegraph-cody",
        display_name="Cody",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(paths=(paths.vscode_global_storage() / EXTENSION_ID,))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        for root in sources:
            for state_path in sorted(root.glob("*.json")):
                data = load_json_document(state_path, stats)
                if isinstance(data, dict):
                    event = _state_event(data, state_path)
                    if event is not None:
                        yield event


def _state_event(data: dict, path: Path) -> UsageEvent | None:
    tc = data.get("tokenCount") if isinstance(data.get("tokenCount"), dict) else {}
    inp = as_count(tc.get("input"))
    out = as_count(tc.get("output"))
    raw_messages = data.get("messages")
    messages = [m for m in raw_messages if isinstance(m, dict)] if isinstance(raw_messages, list) else []
    replies = sum(1 for m in messages if m.get("role") == "assistant")
    if not inp and not out and not replies:
        return None
    stamps = [normalize_timestamp(ts) for ts in (parse_timestamp(m.get("timestamp")) for m in messages) if ts is not None]
    return UsageEvent.create(
        timestamp=max(stamps) if stamps else file_mtime(path),
        input_tokens=inp,
        output_tokens=out,
        request_count=replies,
    )
