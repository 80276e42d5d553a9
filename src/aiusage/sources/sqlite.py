from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Iterator
import shutil
import sqlite3

import structlog

from aiusage.errors import MalformedRecord, SourceUnreadable

logger = structlog.get_logger()

SIDECAR_SUFFIXES = ("-wal", "-shm")


@contextmanager
def open_snapshot(path: Path) -> Iterator[sqlite3.Connection]:
    """Copy the database (and its WAL sidecars) aside and open the copy read-only.

    The running IDE keeps its own handle on the original, so it is never opened
    here. The copy is removed when the block exits.
    """
    with TemporaryDirectory(prefix="aiusage-") as tmp:
        target = Path(tmp) / path.name
        try:
            shutil.copy2(path, target)
            for suffix in SIDECAR_SUFFIXES:
                sidecar = path.with_name(path.name + suffix)
                if sidecar.exists():
                    shutil.copy2(sidecar, target.with_name(target.name + suffix))
        except OSError as exc:
            logger.warning("sqlite_snapshot_failed", path=str(path), error=str(exc))
            raise SourceUnreadable(f"cannot copy {path}: {exc}") from exc

        try:
            conn = sqlite3.connect(f"{target.as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as exc:
            raise MalformedRecord(f"cannot open {path}: {exc}") from exc
        try:
            yield conn
        finally:
            conn.close()


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    try:
        rows = conn.execute(f'PRAGMA table_info("{table}")').fetchall()
    except sqlite3.DatabaseError as exc:
        raise MalformedRecord(f"not a readable database: {exc}") from exc
    return [row[1] for row in rows]


def select_available(
    conn: sqlite3.Connection,
    table: str,
    wanted: tuple[str, ...],
    where: str = "",
    params: tuple = (),
) -> Iterator[dict[str, object]]:
    """Yield rows as dicts holding every wanted column.

    Columns the table lacks come back as ``None``; a missing table yields no rows.
    """
    present = set(table_columns(conn, table))
    if not present:
        return
    columns = [c for c in wanted if c in present]
    if not columns:
        return
    sql = f'SELECT {", ".join(columns)} FROM "{table}"'
    if where:
        sql += f" WHERE {where}"
    try:
        cursor = conn.execute(sql, params)
    except sqlite3.Error as exc:
        logger.warning("sqlite_query_failed", table=table, error=str(exc))
        return
    for row in cursor:
        record = dict.fromkeys(wanted)
        record.update(zip(columns, row))
        yield record
