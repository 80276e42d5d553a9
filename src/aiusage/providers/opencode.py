from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import iter_files, load_json_document
from aiusage.sources.records import ParseStats, as_count, file_mtime, parse_timestamp, pick


class OpenCodeAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="opencode",
        display_name="OpenCode",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        if paths.is_windows():
            root = paths.data_dir() / "opencode"
        else:
            root = paths.home() / ".local/share/opencode"
        return SourceLocator(paths=(root / "storage/message",))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        for root in sources:
            for doc_path in iter_files(root, ("*.json",)):
                data = load_json_document(doc_path, stats)
                if not isinstance(data, dict):
                    continue
                if isinstance(data.get("tokens"), dict):
                    event = _message_file_event(data, doc_path)
                    if event is not None:
                        yield event
                else:
                    yield from _session_events(data, doc_path)


def _output_with_reasoning(output: int | None, reasoning: int | None) -> int | None:
    if reasoning is None:
        return output
    return (output or 0) + reasoning


def _message_file_event(data: dict, path: Path) -> UsageEvent | None:
    tokens = data["tokens"]
    inp = as_count(tokens.get("input"))
    out = _output_with_reasoning(as_count(tokens.get("output")), as_count(tokens.get("reasoning")))
    if not inp and not out:
        return None
    cache_read = as_count(pick(tokens, "cache", "read"))
    cache_write = as_count(pick(tokens, "cache", "write"))
    cached = None
    if cache_read is not None or cache_write is not None:
        cached = (cache_read or 0) + (cache_write or 0)
    return UsageEvent.create(
        timestamp=parse_timestamp(pick(data, "time", "created")) or file_mtime(path),
        input_tokens=inp,
        output_tokens=out,
        cached_tokens=cached,
        request_count=1 if data.get("role", "assistant") == "assistant" else 0,
    )


def _session_events(session: dict, path: Path) -> Iterator[UsageEvent]:
    session_time: datetime | None = (
        parse_timestamp(session.get("created_at"))
        or parse_timestamp(session.get("updated_at"))
        or file_mtime(path)
    )
    messages = session.get("messages")
    message_events = []
    if isinstance(messages, list):
        for message in messages:
            if not isinstance(message, dict) or not isinstance(message.get("usage"), dict):
                continue
            usage = message["usage"]
            inp = as_count(usage.get("input_tokens"))
            out = _output_with_reasoning(as_count(usage.get("output_tokens")), as_count(usage.get("reasoning_tokens")))
            if not inp and not out:
                continue
            ts = (
                parse_timestamp(message.get("timestamp"))
                or parse_timestamp(message.get("created_at"))
                or session_time
            )
            message_events.append(
                UsageEvent.create(
                    timestamp=ts,
                    input_tokens=inp,
                    output_tokens=out,
                    request_count=1 if message.get("role") == "assistant" else 0,
                )
            )
    if message_events:
        yield from message_events
        return

    # session summary only when messages carry no usage of their own
    usage = session.get("usage")
    if isinstance(usage, dict):
        inp = as_count(usage.get("input_tokens"))
        out = as_count(usage.get("output_tokens"))
        if inp or out:
            yield UsageEvent.create(
                timestamp=session_time,
                input_tokens=inp,
                output_tokens=out,
                total_tokens=as_count(usage.get("total_tokens")),
            )
