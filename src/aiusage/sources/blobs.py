from __future__ import annotations

from pathlib import Path

from aiusage.errors import SourceUnreadable

ENCRYPTED_SUFFIXES = (".pb",)


def find_blobs(root: Path, suffixes: tuple[str, ...] = ENCRYPTED_SUFFIXES) -> list[Path]:
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix in suffixes)


def raise_if_encrypted(blobs: list[Path], events: int, where: Path) -> None:
    """Opaque blobs with nothing readable beside them mean the data cannot be read."""
    if blobs and events == 0:
        raise SourceUnreadable(
            f"token data is encrypted in {len(blobs)} .pb file(s) under {where}; use the vendor dashboard"
        )
