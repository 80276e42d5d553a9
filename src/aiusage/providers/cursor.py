from __future__ import annotations

from pathlib import Path
from typing import Iterator
import json
import sqlite3

import structlog

from aiusage import paths
from aiusage.errors import MalformedRecord, SourceUnreadable, UsageError
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.records import ParseStats, as_count, parse_timestamp
from aiusage.sources.sqlite import open_snapshot, select_available

logger = structlog.get_logger()

RECENT_WORKSPACES = 10

ITEM_TABLE_FILTER = "key LIKE '%aichat%' OR key LIKE '%composer%' OR key LIKE '%chat%'"
COMPOSER_FILTER = "key LIKE 'composerData:%' OR key LIKE 'composer.%'"
BUBBLE_FILTER = "key LIKE 'bubbleId:%'"


class CursorAdapter(FileAdapter):
    descriptor = ProviderDescriptor(
        name="cursor",
        display_name="Cursor",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.DATABASE,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        user_dir = paths.cursor_user_dir()
        return SourceLocator(
            paths=(user_dir / "globalStorage/state.vscdb", user_dir / "workspaceStorage"),
        )

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        databases: list[Path] = []
        for source in sources:
            if source.is_dir():
                databases.extend(recent_workspaces(source, RECENT_WORKSPACES))
            else:
                databases.append(source)
        failed: UsageError | None = None
        read = 0
        for db_path in databases:
            try:
                with open_snapshot(db_path) as conn:
                    stats.files_scanned += 1
                    yield from _read_database(conn, stats)
                read += 1
            except (SourceUnreadable, MalformedRecord) as exc:
                stats.unreadable += 1
                failed = exc
                logger.warning("cursor_database_unreadable", path=str(db_path), error=str(exc))
        # one bad workspace is tolerated, but not when nothing could be read
        if failed is not None and not read:
            raise failed


def recent_workspaces(workspace_dir: Path, limit: int) -> list[Path]:
    found: list[tuple[float, Path]] = []
    for db_path in workspace_dir.glob("*/state.vscdb"):
        try:
            found.append((db_path.stat().st_mtime, db_path))
        except OSError:
            continue
    found.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in found[:limit]]


def _read_database(conn: sqlite3.Connection, stats: ParseStats) -> Iterator[UsageEvent]:
    for row in select_available(conn, "ItemTable", ("key", "value"), where=ITEM_TABLE_FILTER):
        yield from _key_value_events(row["value"], stats)
    for row in select_available(conn, "cursorDiskKV", ("key", "value"), where=COMPOSER_FILTER):
        yield from _key_value_events(row["value"], stats)
    for row in select_available(conn, "cursorDiskKV", ("key", "value"), where=BUBBLE_FILTER):
        data = _decode(row["value"], stats)
        if data is not None:
            event = _token_event(data)
            if event is not None:
                yield event


def _decode(value: object, stats: ParseStats) -> dict | None:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if not isinstance(value, str):
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError:
        stats.malformed += 1
        return None
    return data if isinstance(data, dict) else None


def _token_event(data: dict) -> UsageEvent | None:
    tc = data.get("tokenCount")
    if not isinstance(tc, dict):
        return None
    inp = as_count(tc.get("inputTokens"))
    out = as_count(tc.get("outputTokens"))
    if not inp and not out:
        return None
    ts = parse_timestamp(data.get("createdAt")) or parse_timestamp(data.get("updatedAt"))
    return UsageEvent.create(timestamp=ts, input_tokens=inp, output_tokens=out)


def _key_value_events(value: object, stats: ParseStats) -> Iterator[UsageEvent]:
    data = _decode(value, stats)
    if data is None:
        return
    event = _token_event(data)
    if event is not None:
        yield event
    messages = data.get("messages")
    if isinstance(messages, list):
        replies = sum(1 for m in messages if isinstance(m, dict) and m.get("role") == "assistant")
        if replies:
            # chat logs carry no tokens or times, only a reply count
            yield UsageEvent.create(request_count=replies)
