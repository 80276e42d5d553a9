from __future__ import annotations

from pathlib import Path
from typing import Iterator

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.blobs import find_blobs, raise_if_encrypted
from aiusage.sources.jsonl import iter_jsonl, load_json_document
from aiusage.sources.records import ParseStats, as_count, parse_timestamp


class GeminiCliAdapter(FileAdapter):
    """Gemini CLI.

    Native chat sessions under ``tmp/<project>/chats`` are preferred; the
    legacy telemetry logs are read only when no session carries tokens.
    """

    descriptor = ProviderDescriptor(
        name="gemini-cli",
        display_name="Gemini CLI",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(paths=(paths.home() / ".gemini",))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        root = sources[0]
        events = list(_session_events(root, stats))
        if not events:
            events = list(_legacy_events(root, stats))
        raise_if_encrypted(find_blobs(root / "antigravity/conversations"), len(events), root)
        return events


def _session_events(root: Path, stats: ParseStats) -> Iterator[UsageEvent]:
    for session_path in sorted(root.glob("tmp/*/chats/*.json")):
        session = load_json_document(session_path, stats)
        messages = session.get("messages") if isinstance(session, dict) else None
        if not isinstance(messages, list):
            continue
        for msg in messages:
            # only model replies carry token counts
            if not isinstance(msg, dict) or msg.get("type") != "gemini":
                continue
            tokens = msg.get("tokens")
            if not isinstance(tokens, dict):
                continue
            inp = as_count(tokens.get("input"))
            out = as_count(tokens.get("output"))
            if not inp and not out:
                continue
            yield UsageEvent.create(
                timestamp=parse_timestamp(msg.get("timestamp")),
                input_tokens=inp,
                output_tokens=out,
                cached_tokens=as_count(tokens.get("cached")),
            )


def _legacy_events(root: Path, stats: ParseStats) -> Iterator[UsageEvent]:
    if not root.is_dir():
        return
    for log_path in sorted(root.iterdir()):
        if not log_path.is_file():
            continue
        if log_path.suffix in (".log", ".jsonl"):
            entries = iter_jsonl(log_path, stats)
        elif log_path.suffix == ".json":
            data = load_json_document(log_path, stats)
            entries = data if isinstance(data, list) else [data]
        else:
            continue
        for entry in entries:
            if isinstance(entry, dict):
                event = _telemetry_event(entry)
                if event is not None:
                    yield event


def _telemetry_event(entry: dict) -> UsageEvent | None:
    inp = as_count(entry.get("input_token_count"))
    out = as_count(entry.get("output_token_count"))
    total = as_count(entry.get("total_token_count"))
    if not inp and not out and not total:
        return None
    return UsageEvent.create(
        timestamp=parse_timestamp(entry.get("timestamp")),
        input_tokens=inp,
        output_tokens=out,
        total_tokens=total,
    )
