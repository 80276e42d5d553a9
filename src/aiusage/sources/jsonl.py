from __future__ import annotations

from pathlib import Path
from typing import Iterator
import json

import structlog

from aiusage.sources.records import ParseStats

logger = structlog.get_logger()


def iter_files(root: Path, patterns: tuple[str, ...]) -> list[Path]:
    """Files under ``root`` matching any glob pattern, sorted and de-duplicated."""
    if root.is_file():
        return [root]
    if not root.is_dir():
        return []
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in root.rglob(pattern) if p.is_file())
    return sorted(found)


def iter_jsonl(path: Path, stats: ParseStats) -> Iterator[dict]:
    """Yield one dict per line, counting and skipping lines that do not decode."""
    try:
        fh = path.open("r", encoding="utf-8", errors="ignore")
    except OSError as exc:
        stats.unreadable += 1
        logger.warning("jsonl_unreadable", path=str(path), error=str(exc))
        return
    stats.files_scanned += 1
    with fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                stats.malformed += 1
                logger.debug("jsonl_malformed_line", path=str(path), line=lineno)
                continue
            if not isinstance(obj, dict):
                stats.malformed += 1
                continue
            yield obj


def load_json_document(path: Path, stats: ParseStats) -> object | None:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        stats.unreadable += 1
        logger.warning("json_unreadable", path=str(path), error=str(exc))
        return None
    stats.files_scanned += 1
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        stats.malformed += 1
        logger.debug("json_malformed_document", path=str(path))
        return None
