from __future__ import annotations

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingCfg

LINE_FORMAT = "%(asctime)s.%(msecs)03d|%(lineno)d|%(levelname)s|%(message)s"
DATE_FORMAT = "%m/%d/%Y %H:%M:%S"


def archive_path(log_path: Path, when: datetime | None = None) -> Path:
    when = when or datetime.now()
    candidate = log_path.with_name(f"{log_path.stem}_{when:%Y%m%d_%H%M%S_%f}{log_path.suffix}")
    n = 1
    while candidate.exists():
        candidate = log_path.with_name(f"{log_path.stem}_{when:%Y%m%d_%H%M%S_%f}-{n}{log_path.suffix}")
        n += 1
    return candidate


def list_archives(log_path: Path) -> list[Path]:
    """Archives of log_path, newest (by mtime) first."""
    if not log_path.parent.is_dir():
        return []
    found = [p for p in log_path.parent.glob(f"{log_path.stem}_*{log_path.suffix}") if p.is_file()]
    return sorted(found, key=lambda p: p.stat().st_mtime, reverse=True)


def prune_archives(log_path: Path, keep: int) -> list[Path]:
    removed: list[Path] = []
    for old in list_archives(log_path)[max(keep, 0):]:
        try:
            old.unlink()
            removed.append(old)
        except FileNotFoundError:
            pass
    return removed


class ArchivingFileHandler(RotatingFileHandler):
    """
    Size-rotating file handler that archives to timestamp-named files
    (app.log -> app_20260101_120000_000000.log) instead of numbered backups,
    then keeps only the newest `backupCount` archives by mtime.
    """

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None  # type: ignore[assignment]
        current = Path(self.baseFilename)
        if current.exists():
            current.rename(archive_path(current))
        prune_archives(current, self.backupCount)
        if not self.delay:
            self.stream = self._open()


def rotate_if_oversized(cfg: LoggingCfg) -> Path | None:
    """Archive the log if it is already bigger than max_bytes. Returns the archive path."""
    if not cfg.path.is_file() or cfg.path.stat().st_size <= cfg.max_bytes:
        return None
    target = archive_path(cfg.path)
    cfg.path.rename(target)
    cfg.path.touch()
    prune_archives(cfg.path, cfg.backups)
    return target


def setup_logging(cfg: LoggingCfg, name: str = "filesweep") -> logging.Logger:
    cfg.path.parent.mkdir(parents=True, exist_ok=True)
    cfg.path.touch(exist_ok=True)

    # rotation happens before the first line of this run is written
    rotated = rotate_if_oversized(cfg)
    prune_archives(cfg.path, cfg.backups)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, cfg.level))
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=LINE_FORMAT, datefmt=DATE_FORMAT)

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    fh = ArchivingFileHandler(
        cfg.path,
        maxBytes=cfg.max_bytes,
        backupCount=cfg.backups,
        encoding="utf-8",
        delay=True,
    )
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    if rotated:
        logger.info("log rotated to %s", rotated.name)
    return logger


def shutdown_logging(name: str = "filesweep") -> None:
    logger = logging.getLogger(name)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
