from __future__ import annotations

from pathlib import Path
from typing import Iterator
import os

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.jsonl import iter_files, iter_jsonl
from aiusage.sources.records import ParseStats, as_count, parse_timestamp


class CodexCliAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="codex-cli",
        display_name="Codex CLI",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        codex_home = os.environ.get("CODEX_HOME")
        root = Path(codex_home) if codex_home else paths.home() / ".codex"
        return SourceLocator(paths=(root / "sessions",))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        for root in sources:
            for session_file in iter_files(root, ("rollout-*.jsonl",)):
                for obj in iter_jsonl(session_file, stats):
                    if obj.get("type") != "event_msg":
                        continue
                    payload = obj.get("payload") or {}
                    if not isinstance(payload, dict) or payload.get("type") != "token_count":
                        continue
                    info = payload.get("info") or {}
                    last_usage = info.get("last_token_usage") if isinstance(info, dict) else None
                    if not isinstance(last_usage, dict):
                        continue
                    yield UsageEvent.create(
                        timestamp=parse_timestamp(obj.get("timestamp")),
                        input_tokens=as_count(last_usage.get("input_tokens")),
                        output_tokens=as_count(last_usage.get("output_tokens")),
                        cached_tokens=as_count(last_usage.get("cached_input_tokens")),
                        total_tokens=as_count(last_usage.get("total_tokens")),
                    )
