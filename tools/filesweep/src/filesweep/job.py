from __future__ import annotations

import logging
import socket
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from filesweep import scanner
from filesweep.common.config import AppCfg, LoggingCfg, load_config
from filesweep.common.log import setup_logging
from filesweep.notifier import EmailNotifier, Notifier
from filesweep.rules import RuleTable
from filesweep.scanner import CleanupStats, human_size

log = logging.getLogger("filesweep.job")

# (config, decoded password, log file) -> notifier
NotifierFactory = Callable[[AppCfg, str, Path], Notifier]


@dataclass(frozen=True)
class JobResult:
    exit_code: int
    stats: CleanupStats | None = None
    error: Exception | None = None


def email_notifier(cfg: AppCfg, password: str, log_path: Path) -> Notifier:
    return EmailNotifier(cfg.email, password, attachment=log_path)


def build_summary(stats: CleanupStats, root: Path, finished_at: datetime, host: str | None = None) -> str:
    host = host or socket.gethostname()
    return "\n".join(
        [
            f"File cleanup on {host}",
            f"Root path:        {root}",
            f"Files deleted:    {stats.deleted_files}",
            f"Space reclaimed:  {human_size(stats.total_bytes_reclaimed)}",
            f"Errors:           {stats.errors}",
            f"Completed at:     {finished_at:%m/%d/%Y %H:%M:%S}",
        ]
    )


def _notify(notifier: Notifier | None, subject: str, body: str) -> None:
    if notifier is None:
        log.warning("no notifier available, skipping: %s", subject)
        return
    try:
        if not notifier.send(subject, body):
            log.warning("notification not delivered: %s", subject)
    except Exception:
        # the notification path never turns into a second fatal error
        log.exception("notifier raised: %s", subject)


def execute(
    config_path: Path,
    log_cfg: LoggingCfg,
    notifier_factory: NotifierFactory | None = None,
    now: float | None = None,
) -> JobResult:
    try:
        setup_logging(log_cfg)
    except OSError as e:
        # no log to write to; nothing has been scanned or deleted yet
        print(f"filesweep: cannot open log file {log_cfg.path}: {e}", file=sys.stderr)
        return JobResult(exit_code=1, error=e)

    factory = notifier_factory or email_notifier
    host = socket.gethostname()
    notifier: Notifier | None = None

    log.info("execution started: config=%s", config_path)
    try:
        cfg = load_config(config_path)
        log.info("config loaded: root=%s rules=%d", cfg.root_path, len(cfg.rules))
        password = cfg.email.decoded_credential()
        notifier = factory(cfg, password, log_cfg.path)

        stats = scanner.run(cfg.root_path, RuleTable.from_config(cfg), now=now)

        summary = build_summary(stats, cfg.root_path, datetime.now(), host=host)
        for line in summary.splitlines():
            log.info(line)

        outcome = "completed" if stats.errors == 0 else f"completed with {stats.errors} errors"
        _notify(notifier, f"[filesweep] cleanup {outcome} on {host}", summary)
        return JobResult(exit_code=0, stats=stats)
    except Exception as e:
        log.exception("cleanup failed: %s", e)
        body = f"File cleanup on {host} failed.\n\n{type(e).__name__}: {e}\n\nSee the attached log for details."
        _notify(notifier, f"[filesweep] cleanup FAILED on {host}", body)
        return JobResult(exit_code=1, error=e)
    finally:
        log.info("execution completed")


def run_job(
    config_path: Path,
    log_cfg: LoggingCfg,
    notifier_factory: NotifierFactory | None = None,
    now: float | None = None,
) -> int:
    return execute(config_path, log_cfg, notifier_factory=notifier_factory, now=now).exit_code
