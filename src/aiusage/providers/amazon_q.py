from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator
import json
import re

import structlog

from aiusage import paths
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.records import ParseStats, as_count, file_mtime, parse_timestamp

logger = structlog.get_logger()

INPUT_RE = re.compile(r"\binput_tokens?[:\s=]+(\d+)")
OUTPUT_RE = re.compile(r"\boutput_tokens?[:\s=]+(\d+)")
TOTAL_RE = re.compile(r"(?<![\w])tokens?[:\s=]+(\d+)")
TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[T\s]\d{2}:\d{2}:\d{2}")


class AmazonQAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="amazon-q",
        display_name="Amazon Q",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LOG_FILES,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        aws = paths.home() / ".aws"
        return SourceLocator(paths=(aws / "q/q_developer_log.txt", aws / "config"))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        log_path = next((s for s in sources if s.name != "config"), None)
        events = list(_log_events(log_path, stats)) if log_path is not None else []
        if not events:
            stats.notes.append("configured, no local usage data")
        return events


def _log_events(path: Path, stats: ParseStats) -> Iterator[UsageEvent]:
    fallback_ts = file_mtime(path)
    try:
        fh = path.open("r", encoding="utf-8", errors="ignore")
    except OSError as exc:
        stats.unreadable += 1
        logger.warning("amazon_q_log_unreadable", path=str(path), error=str(exc))
        return
    stats.files_scanned += 1
    with fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            event = None
            if line.startswith("{"):
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    stats.malformed += 1
                    continue
                if isinstance(entry, dict):
                    event = _json_event(entry, fallback_ts)
            else:
                event = _text_event(line, fallback_ts)
            if event is not None:
                yield event


def _json_event(entry: dict, fallback_ts: datetime | None) -> UsageEvent | None:
    inp = as_count(entry.get("input_tokens"))
    out = as_count(entry.get("output_tokens"))
    total = as_count(entry.get("tokens"))
    if not inp and not out and not total:
        return None
    return UsageEvent.create(
        timestamp=parse_timestamp(entry.get("timestamp")) or fallback_ts,
        input_tokens=inp,
        output_tokens=out,
        total_tokens=total,
    )


def _text_event(line: str, fallback_ts: datetime | None) -> UsageEvent | None:
    inp = _match_count(INPUT_RE, line)
    out = _match_count(OUTPUT_RE, line)
    total = _match_count(TOTAL_RE, line) if inp is None and out is None else None
    if not inp and not out and not total:
        return None
    return UsageEvent.create(
        timestamp=_line_timestamp(line) or fallback_ts,
        input_tokens=inp,
        output_tokens=out,
        total_tokens=total,
    )


def _match_count(pattern: re.Pattern, line: str) -> int | None:
    m = pattern.search(line)
    return int(m.group(1)) if m else None


def _line_timestamp(line: str) -> datetime | None:
    m = TIMESTAMP_RE.search(line)
    if not m:
        return None
    try:
        return datetime.fromisoformat(m.group(0).replace(" ", "T")).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
