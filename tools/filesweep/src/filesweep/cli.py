from __future__ import annotations

import base64
from pathlib import Path

import typer
from pydantic import ValidationError

from filesweep.common.config import LoggingCfg, load_config
from filesweep.common.errors import ConfigError
from filesweep.job import run_job
from filesweep.notifier import ConsoleNotifier
from filesweep.rules import RuleTable

app = typer.Typer(help="filesweep: scheduled file retention cleanup with email reports")

DEFAULT_CONFIG = Path("configs/filesweep.example.yaml")


@app.command()
def run(
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
    log_file: Path = typer.Option(Path("logs/filesweep.log"), "--log-file"),
    log_max_bytes: int = typer.Option(64 * 1024, "--log-max-bytes", help="Rotate the log above this size."),
    log_backups: int = typer.Option(5, "--log-backups", help="Rotated log archives to keep."),
    log_level: str = typer.Option("INFO", "--log-level"),
    no_email: bool = typer.Option(False, "--no-email", help="Print the summary instead of emailing it."),
) -> None:
    """Delete expired files under the configured root and report the result."""
    try:
        log_cfg = LoggingCfg(path=log_file, max_bytes=log_max_bytes, backups=log_backups, level=log_level.upper())
    except ValidationError as e:
        typer.echo(f"invalid logging options: {e}", err=True)
        raise typer.Exit(2)
    factory = (lambda cfg, password, log_path: ConsoleNotifier()) if no_email else None
    code = run_job(config, log_cfg, notifier_factory=factory)
    raise typer.Exit(code)


@app.command()
def check(config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c")) -> None:
    """Validate a config file and show the rule table. Deletes nothing."""
    try:
        cfg = load_config(config)
        cfg.email.decoded_credential()
    except ConfigError as e:
        typer.echo(f"invalid config: {e}", err=True)
        raise typer.Exit(1)

    table = RuleTable.from_config(cfg)
    typer.echo(f"config:        {config}")
    typer.echo(f"root path:     {cfg.root_path} (exists: {cfg.root_path.is_dir()})")
    typer.echo(f"smtp:          {cfg.email.smtp_host}:{cfg.email.port} -> {cfg.email.to_address}")
    typer.echo(f"default days:  {table.default_days}")
    for i, rule in enumerate(table.rules, start=1):
        typer.echo(f"  {i:>2}. {rule.pattern:<30} {rule.retention_days} days")


@app.command()
def which(
    rel_path: str = typer.Argument(..., help="Path relative to the root, e.g. logs/app.log"),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
) -> None:
    """Show which rule (first match) applies to a relative path."""
    try:
        cfg = load_config(config)
    except ConfigError as e:
        typer.echo(f"invalid config: {e}", err=True)
        raise typer.Exit(1)

    table = RuleTable.from_config(cfg)
    rule = table.match(rel_path)
    if rule:
        typer.echo(f"{rel_path}: rule '{rule.pattern}' -> {rule.retention_days} days")
    else:
        typer.echo(f"{rel_path}: no rule matches -> default {table.default_days} days")


@app.command("encode-secret")
def encode_secret(secret: str = typer.Argument(..., help="Plaintext SMTP password")) -> None:
    """Print the base64 form of a secret for email.credential."""
    typer.echo(base64.b64encode(secret.encode("utf-8")).decode("ascii"))


if __name__ == "__main__":
    app()
