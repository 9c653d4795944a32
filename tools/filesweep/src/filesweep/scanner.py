from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from filesweep.common.errors import DeleteError, ScanError
from filesweep.rules import RuleTable

log = logging.getLogger("filesweep.scanner")

SECONDS_PER_DAY = 86400
_UNITS = ("KB", "MB", "GB", "TB")


@dataclass
class CleanupStats:
    deleted_files: int = 0
    total_bytes_reclaimed: int = 0
    errors: int = 0


def human_size(n: int) -> str:
    if n < 1024:
        return f"{n} bytes"
    value = n / 1024
    i = 0
    # pick the unit after rounding so 1048575 shows as 1.00 MB, not 1024.00 KB
    while round(value, 2) >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1
    unit = _UNITS[i]
    return f"{value:.2f} {unit}"


def age_days(mtime: float, now: float) -> float:
    return (now - mtime) / SECONDS_PER_DAY


def is_expired(age: float, retention_days: int) -> bool:
    # whole days only: 180.9 days old is not past a 180-day retention
    return int(age) > retention_days


def iter_files(root: Path) -> list[Path]:
    """All regular files under root. Any enumeration failure is a ScanError."""
    if not root.exists():
        raise ScanError(f"root path does not exist: {root}")
    if not root.is_dir():
        raise ScanError(f"root path is not a directory: {root}")

    def _fail(err: OSError) -> None:
        raise ScanError(f"cannot enumerate {err.filename or root}: {err.strerror or err}") from err

    files: list[Path] = []
    for dirpath, _dirs, names in os.walk(root, onerror=_fail):
        for name in names:
            p = Path(dirpath) / name
            if p.is_file() and not p.is_symlink():
                files.append(p)
    return files


def delete_file(path: Path) -> int:
    """Delete one file and return its size in bytes."""
    try:
        size = path.stat().st_size
        path.unlink()
    except OSError as e:
        raise DeleteError(path, f"{type(e).__name__}: {e}") from e
    return size


def run(root: Path, table: RuleTable, now: float | None = None) -> CleanupStats:
    now = time.time() if now is None else now
    stats = CleanupStats()

    files = iter_files(root)
    log.info("scan: root=%s files=%d rules=%d default_days=%d", root, len(files), len(table), table.default_days)

    for path in files:
        rel = path.relative_to(root)
        retention = table.retention_for(rel)
        try:
            age = age_days(path.stat().st_mtime, now)
        except OSError as e:
            stats.errors += 1
            log.error("cannot stat %s: %s", rel.as_posix(), e)
            continue

        if not is_expired(age, retention):
            continue

        try:
            size = delete_file(path)
        except DeleteError as e:
            stats.errors += 1
            log.error("delete failed: %s", e)
            continue

        stats.deleted_files += 1
        stats.total_bytes_reclaimed += size
        log.info("deleted %s (age=%d days, size=%s)", rel.as_posix(), round(age), human_size(size))

    log.info(
        "scan done: deleted=%d reclaimed=%s errors=%d",
        stats.deleted_files,
        human_size(stats.total_bytes_reclaimed),
        stats.errors,
    )
    return stats
