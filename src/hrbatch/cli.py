"""Typer CLI entrypoint for replaying tracking events."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from .container import create_container
from .logging import configure_logging
from .pipeline import AuditLogger
from .schemas.config import load_config

app = typer.Typer(help="Batch resume ranking and interview tracking CLI.")


@app.command()
def run(
    events: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Sync events JSONL path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output report JSON path.",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    csv_dir: Optional[Path] = typer.Option(None, file_okay=False, help="Directory for per-batch leaderboard CSVs."),
) -> None:
    """Replay sync events and write batch leaderboards and interview records."""
    settings: dict = {}
    if config:
        with config.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise typer.BadParameter("Config file must be a YAML object", param_name="config")
        try:
            settings = load_config(loaded).to_settings()
        except ValidationError as exc:
            raise typer.BadParameter(str(exc), param_name="config") from exc

    configure_logging(log_level)

    container = create_container(settings=settings)
    pipeline = container.pipeline()
    audit_logger = AuditLogger(audit_log) if audit_log else None

    report = pipeline.run(
        events_path=events,
        output_path=output,
        audit_logger=audit_logger,
        csv_dir=csv_dir,
    )
    metadata = report["metadata"]
    typer.echo(
        f"Applied {metadata['applied_count']} of {metadata['event_count']} events "
        f"across {len(report['batches'])} batches. Report saved to {output}."
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
