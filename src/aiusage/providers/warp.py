from __future__ import annotations

from pathlib import Path
from typing import Iterator
import json
import sqlite3

from aiusage import paths
from aiusage.errors import SchemaMismatch
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import FileAdapter
from aiusage.sources.records import ParseStats, as_count, parse_timestamp, pick
from aiusage.sources.sqlite import open_snapshot, select_available, table_columns

MACOS_GROUP_CONTAINER = "Library/Group Containers/2BBY89MBSN.dev.warp/Library/Application Support/dev.warp.Warp-Stable"
USAGE_TABLES = ("agent_conversations", "ai_queries")


class WarpAdapter(FileAdapter):
    """Warp terminal agent usage.

    Warp only records a per-conversation token total, so events carry
    ``total_tokens`` with input and output left null. ``last_modified_at`` is
    written in UTC without an offset.
    """

    descriptor = ProviderDescriptor(
        name="warp",
        display_name="Warp",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.DATABASE,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        if paths.is_macos():
            db = paths.home() / MACOS_GROUP_CONTAINER / "warp.sqlite"
        elif paths.is_windows():
            db = paths.data_dir() / "Warp/warp.sqlite"
        else:
            db = paths.data_dir() / "warp/warp.sqlite"
        return SourceLocator(paths=(db,))

    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterator[UsageEvent]:
        with open_snapshot(sources[0]) as conn:
            stats.files_scanned += 1
            if not any(table_columns(conn, table) for table in USAGE_TABLES):
                raise SchemaMismatch(f"{sources[0]} has none of the tables {', '.join(USAGE_TABLES)}")
            events = list(_conversation_events(conn, stats))
            if not events:
                events = list(_query_events(conn))
        return events


def _conversation_events(conn: sqlite3.Connection, stats: ParseStats) -> Iterator[UsageEvent]:
    for row in select_available(conn, "agent_conversations", ("conversation_data", "last_modified_at")):
        raw = row["conversation_data"]
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="ignore")
        if not isinstance(raw, str):
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            stats.malformed += 1
            continue
        usages = pick(data, "conversation_usage_metadata", "token_usage")
        if not isinstance(usages, list):
            continue
        total = 0
        for usage in usages:
            if isinstance(usage, dict):
                total += _usage_tokens(usage)
        if total > 0:
            yield UsageEvent.create(
                timestamp=parse_timestamp(row["last_modified_at"]),
                total_tokens=total,
            )


def _usage_tokens(usage: dict) -> int:
    total = as_count(usage.get("total_tokens"))
    if total is not None:
        return total
    return (as_count(usage.get("warp_tokens")) or 0) + (as_count(usage.get("byok_tokens")) or 0)


def _query_events(conn: sqlite3.Connection) -> Iterator[UsageEvent]:
    # request counts only; token totals live on the conversations
    for row in select_available(conn, "ai_queries", ("start_ts",)):
        yield UsageEvent.create(timestamp=parse_timestamp(row["start_ts"]))
