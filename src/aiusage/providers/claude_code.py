from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import iter_files, iter_jsonl
from aiusage.sources.records import ParseStats, as_count, parse_timestamp


class ClaudeCodeAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="claude-code",
        display_name="Claude Code",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(paths=(paths.home() / ".claude/projects",))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        # the same assistant turn is repeated across resumed sessions
        seen_ids: set[str] = set()
        for root in sources:
            for jsonl_path in iter_files(root, ("*.jsonl",)):
                for obj in iter_jsonl(jsonl_path, stats):
                    if not _is_assistant_usage_entry(obj):
                        continue
                    entry_id = _entry_identity(obj)
                    if entry_id is not None:
                        if entry_id in seen_ids:
                            continue
                        seen_ids.add(entry_id)
                    yield _usage_event(obj)


def _usage_event(obj: dict) -> UsageEvent:
    usage = obj["message"]["usage"]
    cache_read = as_count(usage.get("cache_read_input_tokens"))
    cache_write = as_count(usage.get("cache_creation_input_tokens"))
    cached = None
    if cache_read is not None or cache_write is not None:
        cached = (cache_read or 0) + (cache_write or 0)
    return UsageEvent.create(
        timestamp=parse_timestamp(obj.get("timestamp")),
        input_tokens=as_count(usage.get("input_tokens")),
        output_tokens=as_count(usage.get("output_tokens")),
        cached_tokens=cached,
    )


def _is_assistant_usage_entry(obj: dict) -> bool:
    if obj.get("type") != "assistant":
        return False
    msg = obj.get("message")
    if not isinstance(msg, dict):
        return False
    return isinstance(msg.get("usage"), dict)


def _entry_identity(obj: dict) -> str | None:
    rid = obj.get("requestId") or obj.get("request_id")
    mid = (obj.get("message") or {}).get("id")
    uid = obj.get("uuid")
    if rid and mid:
        return f"{rid}:{mid}"
    if mid:
        return str(mid)
    if uid:
        return str(uid)
    return None
