"""Boundary between external job runners and the tracking core."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator

import structlog

from .core import BatchAggregator, InterviewRegistry, InvalidTransition
from .schemas import BatchJob
from .schemas.events import (
    BatchCreated,
    BatchStatusChanged,
    CandidateUpdate,
    FileProcessed,
    InterviewAnswer,
    InterviewCancelled,
    InterviewCompleted,
    InterviewEvaluation,
    InterviewQuestion,
    InterviewScheduled,
    InterviewStarted,
    SyncEvent,
)


@dataclass(slots=True)
class DispatchOutcome:
    """What applying one event did."""

    event_type: str
    subject_id: str
    outcome: str


class SyncBoundary:
    """Route runner and interview events into the core.

    Core errors propagate to the caller unchanged; retrying is the producer's call.
    """

    def __init__(self, *, aggregator: BatchAggregator, interviews: InterviewRegistry) -> None:
        self._aggregator = aggregator
        self._interviews = interviews
        self._logger = structlog.get_logger(__name__)

    def dispatch(self, event: SyncEvent) -> DispatchOutcome:
        if isinstance(event, BatchCreated):
            self._aggregator.create_batch(
                batch_id=event.batch_id,
                job_id=event.job_id,
                organization_id=event.organization_id,
                created_by=event.created_by,
                total_files=event.total_files,
                pending=event.pending,
            )
            return DispatchOutcome(event.type, event.batch_id, "created")

        if isinstance(event, CandidateUpdate):
            outcome = self._aggregator.apply_update(event.batch_id, event.result)
            return DispatchOutcome(event.type, event.batch_id, outcome)

        if isinstance(event, FileProcessed):
            options = {"error": event.error} if event.error else {}
            snapshot = self._aggregator.increment_processed(event.batch_id, event.candidate_id, **options)
            return DispatchOutcome(event.type, event.batch_id, snapshot.status)

        if isinstance(event, BatchStatusChanged):
            return self._apply_batch_status(event)

        if isinstance(event, InterviewScheduled):
            self._interviews.schedule(
                event.candidate_id,
                event.scheduled_at,
                event.duration_minutes,
                interview_id=event.interview_id,
            )
            return DispatchOutcome(event.type, event.interview_id, "scheduled")

        tracker = self._interviews.get(event.interview_id)
        if isinstance(event, InterviewStarted):
            interview = tracker.start()
        elif isinstance(event, InterviewQuestion):
            interview = tracker.record_question(event.text)
        elif isinstance(event, InterviewAnswer):
            interview = tracker.record_answer(event.text)
        elif isinstance(event, InterviewEvaluation):
            interview = tracker.record_evaluation(event.score, event.feedback)
        elif isinstance(event, InterviewCompleted):
            interview = tracker.complete(event.feedback)
        elif isinstance(event, InterviewCancelled):
            interview = tracker.cancel()
        else:
            raise TypeError(f"Unhandled sync event: {event!r}")
        return DispatchOutcome(event.type, event.interview_id, interview.status)

    def _apply_batch_status(self, event: BatchStatusChanged) -> DispatchOutcome:
        if event.status == "failed":
            snapshot = self._aggregator.fail_batch(event.batch_id, event.error or "Batch processing failed")
            return DispatchOutcome(event.type, event.batch_id, snapshot.status)

        snapshot = self._aggregator.finalize(event.batch_id)
        if snapshot.status != "completed":
            self._logger.warning(
                "sync.completion_premature",
                batch_id=event.batch_id,
                processed=snapshot.processed_count,
                total=snapshot.total_files,
                status=snapshot.status,
            )
            raise InvalidTransition(
                f"Batch {event.batch_id!r} reported complete at "
                f"{snapshot.processed_count}/{snapshot.total_files} processed"
            )
        return DispatchOutcome(event.type, event.batch_id, snapshot.status)


@dataclass
class PollingConfig:
    """Interval schedule for snapshot polling."""

    interval_seconds: float = 0.5
    backoff: float = 1.0
    max_interval_seconds: float = 5.0


class StatusPoller:
    """Pull-based snapshot polling with caller-controlled cancellation."""

    def __init__(self, aggregator: BatchAggregator, *, config: PollingConfig | None = None) -> None:
        self._aggregator = aggregator
        self._config = config or PollingConfig()
        self._logger = structlog.get_logger(__name__)

    def poll(self, batch_id: str, cancel: threading.Event | None = None) -> Iterator[BatchJob]:
        """Yield each new snapshot version until the batch is terminal or ``cancel`` is set."""
        cancel = cancel or threading.Event()
        interval = self._config.interval_seconds
        last_version: int | None = None
        while True:
            snapshot = self._aggregator.get_snapshot(batch_id)
            if snapshot.version != last_version:
                last_version = snapshot.version
                yield snapshot
            if snapshot.is_terminal:
                return
            if cancel.wait(interval):
                self._logger.info("poller.cancelled", batch_id=batch_id, version=last_version)
                return
            interval = min(interval * self._config.backoff, self._config.max_interval_seconds)
