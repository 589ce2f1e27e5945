"""Event replay pipeline assembly and execution."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import pendulum
import structlog
from pydantic import ValidationError

from . import __version__
from .core import BatchAggregator, BatchTrackingError, InterviewRegistry, export_csv, ranked_rows, summarize
from .schemas import BatchJob, Interview
from .schemas.events import SyncEvent, parse_event
from .sync import SyncBoundary


class EventLoadError(ValueError):
    """Raised when event loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[SyncEvent]):
        super().__init__("Event loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Event loading failed: {self.errors}"


class EventLoader:
    """Load sync events from a JSONL file."""

    def load(self, path: Path) -> list[SyncEvent]:
        events: list[SyncEvent] = []
        errors: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw:
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                if not isinstance(record, dict) or not record.get("type"):
                    errors.append(f"line {idx}: missing type field")
                    continue
                try:
                    events.append(parse_event(record))
                except ValidationError as exc:
                    errors.append(f"line {idx}: {exc.error_count()} validation error(s) for {record['type']!r}")
                    continue
        if errors:
            raise EventLoadError(errors, events)
        return events


class OutputWriter:
    """Persist replay reports."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False))
            handle.write("\n")


class ReplayPipeline:
    """Replay a recorded event stream through the core and report the outcome."""

    def __init__(
        self,
        *,
        boundary: SyncBoundary,
        aggregator: BatchAggregator,
        interviews: InterviewRegistry,
        loader: EventLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._boundary = boundary
        self._aggregator = aggregator
        self._interviews = interviews
        self._loader = loader or EventLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        *,
        events_path: Path,
        output_path: Path,
        audit_logger: AuditLogger | None = None,
        csv_dir: Path | None = None,
    ) -> dict[str, Any]:
        errors: list[str] = []
        try:
            events = self._loader.load(events_path)
        except EventLoadError as exc:
            events = exc.partial
            errors.extend(exc.errors)
            self._logger.warning("events.partial_load", errors=exc.errors)

        applied = 0
        for position, event in enumerate(events, start=1):
            try:
                outcome = self._boundary.dispatch(event)
            except (BatchTrackingError, ValueError) as exc:
                errors.append(f"event {position} ({event.type}): {exc}")
                self._logger.warning(
                    "sync.event_rejected",
                    position=position,
                    event_type=event.type,
                    error=str(exc),
                )
                if audit_logger:
                    audit_logger.append(
                        {
                            "position": position,
                            "event_type": event.type,
                            "status": "rejected",
                            "error": str(exc),
                        }
                    )
                continue

            applied += 1
            if audit_logger:
                audit_logger.append(
                    {
                        "position": position,
                        "event_type": outcome.event_type,
                        "subject_id": outcome.subject_id,
                        "status": "applied",
                        "outcome": outcome.outcome,
                    }
                )

        snapshots = self._aggregator.snapshots()
        if csv_dir is not None:
            csv_dir.mkdir(parents=True, exist_ok=True)
            for snapshot in snapshots:
                (csv_dir / f"batch-{snapshot.id}.csv").write_text(export_csv(snapshot), encoding="utf-8")

        payload = {
            "metadata": {
                "event_count": len(events),
                "applied_count": applied,
                "errors": errors,
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
            },
            "batches": [_render_batch(snapshot) for snapshot in snapshots],
            "interviews": [_render_interview(interview) for interview in self._interviews.snapshots()],
        }
        self._writer.write(output_path, payload)
        self._logger.info(
            "replay.finished",
            events=len(events),
            applied=applied,
            batches=len(snapshots),
            errors=len(errors),
        )
        return payload


def _render_batch(snapshot: BatchJob) -> dict[str, Any]:
    return {
        "batch": snapshot.model_dump(mode="json", exclude={"candidates"}),
        "summary": asdict(summarize(snapshot)),
        "ranking": [
            {"rank": row.rank, **row.candidate.model_dump(mode="json")}
            for row in ranked_rows(snapshot)
        ],
    }


def _render_interview(interview: Interview) -> dict[str, Any]:
    return interview.model_dump(mode="json")
