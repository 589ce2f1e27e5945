"""Batch aggregation of incremental candidate results."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Literal

import structlog

from ..schemas import BatchJob, CandidateResult
from .clock import Clock, utc_now
from .errors import BatchOverflowError, InvalidTransition, UnknownBatchError

UpdateOutcome = Literal["inserted", "updated", "unchanged"]

_PROGRESS_RANK = {"pending": 0, "processing": 1}

FILE_FAILED_ERROR = "File could not be processed"


@dataclass
class AggregatorConfig:
    """Limits applied to every batch."""

    max_files: int = 20
    retention_seconds: float = 3600.0


class _BatchCell:
    """One batch's exclusion unit and its currently published snapshot."""

    __slots__ = ("lock", "snapshot", "positions")

    def __init__(self, snapshot: BatchJob) -> None:
        self.lock = threading.Lock()
        self.snapshot = snapshot
        self.positions = {candidate.id: idx for idx, candidate in enumerate(snapshot.candidates)}


class BatchAggregator:
    """Owns the state of every tracked batch.

    Writers on the same batch are serialized by that batch's lock. Each applied
    mutation publishes a new frozen :class:`BatchJob`, so readers never take the
    lock and never see a half-applied update. Different batches share nothing
    but the registry.
    """

    def __init__(
        self,
        *,
        config: AggregatorConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or AggregatorConfig()
        self._clock = clock or utc_now
        self._batches: dict[str, _BatchCell] = {}
        self._registry_lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def create_batch(
        self,
        *,
        total_files: int,
        job_id: str,
        organization_id: str,
        created_by: str,
        batch_id: str | None = None,
        pending: Iterable[CandidateResult] = (),
    ) -> BatchJob:
        if total_files < 1:
            raise ValueError("A batch needs at least one file.")
        if total_files > self._config.max_files:
            raise ValueError(f"A batch accepts at most {self._config.max_files} files.")
        placeholders = tuple(pending)
        if any(candidate.is_terminal for candidate in placeholders):
            raise ValueError("Seeded candidates must not be terminal.")
        if len(placeholders) > total_files:
            raise BatchOverflowError(
                f"{len(placeholders)} seeded candidates exceed total_files={total_files}"
            )

        snapshot = BatchJob(
            id=batch_id or uuid.uuid4().hex,
            job_id=job_id,
            organization_id=organization_id,
            created_by=created_by,
            total_files=total_files,
            candidates=placeholders,
            created_at=self._clock(),
        )
        with self._registry_lock:
            if snapshot.id in self._batches:
                raise ValueError(f"Batch {snapshot.id!r} already exists.")
            self._batches[snapshot.id] = _BatchCell(snapshot)

        self._logger.info(
            "batch.created",
            batch_id=snapshot.id,
            job_id=job_id,
            total_files=total_files,
            seeded=len(placeholders),
        )
        return snapshot

    def apply_update(self, batch_id: str, result: CandidateResult) -> UpdateOutcome:
        """Upsert ``result`` by candidate id.

        Moving a record into a terminal state also counts it as processed, in the
        same critical section.
        """
        cell = self._cell(batch_id)
        with cell.lock:
            current = cell.snapshot
            position = cell.positions.get(result.id)
            existing = current.candidates[position] if position is not None else None

            if existing is not None and existing.is_terminal:
                if result.status == existing.status:
                    if result != existing:
                        self._logger.warning(
                            "batch.duplicate_payload_differs",
                            batch_id=batch_id,
                            candidate_id=result.id,
                            status=result.status,
                        )
                    return "unchanged"
                self._reject(
                    current,
                    result,
                    f"candidate {result.id!r} is already {existing.status}",
                )

            if current.is_terminal:
                self._reject(current, result, f"batch is {current.status}")

            if existing is not None and not result.is_terminal:
                if result == existing:
                    return "unchanged"
                if _PROGRESS_RANK[result.status] < _PROGRESS_RANK[existing.status]:
                    self._logger.debug(
                        "batch.stale_update",
                        batch_id=batch_id,
                        candidate_id=result.id,
                        status=result.status,
                        current_status=existing.status,
                    )
                    return "unchanged"

            if existing is None and _unclaimed_files(current) < 1:
                self._logger.warning(
                    "batch.candidate_overflow",
                    batch_id=batch_id,
                    candidate_id=result.id,
                    total_files=current.total_files,
                )
                raise BatchOverflowError(
                    f"Batch {batch_id!r} has no file left for candidate {result.id!r}"
                )

            processed_count = current.processed_count
            if result.is_terminal:
                processed_count = self._next_processed_count(current)

            candidates = list(current.candidates)
            if position is None:
                cell.positions[result.id] = len(candidates)
                candidates.append(result)
            else:
                candidates[position] = result

            updated = current.model_copy(
                update={"candidates": tuple(candidates), "processed_count": processed_count}
            )
            self._publish(cell, self._finalized(updated))

        self._logger.info(
            "batch.candidate_applied",
            batch_id=batch_id,
            candidate_id=result.id,
            status=result.status,
            processed=processed_count,
        )
        return "inserted" if existing is None else "updated"

    def increment_processed(
        self,
        batch_id: str,
        candidate_id: str | None = None,
        error: str = FILE_FAILED_ERROR,
    ) -> BatchJob:
        """Count one file that failed without a scoring result.

        The file resolves ``candidate_id`` when given. Otherwise it is counted on
        its own while the batch still has files no record accounts for, and
        resolves the oldest unfinished record once it has none.
        """
        cell = self._cell(batch_id)
        with cell.lock:
            current = cell.snapshot
            processed_count = self._next_processed_count(current)
            if current.is_terminal:
                raise InvalidTransition(f"Batch {batch_id!r} is already {current.status}")

            candidates = list(current.candidates)
            if candidate_id is None:
                position = None
                if _unclaimed_files(current) < 1:
                    position = next(idx for idx, c in enumerate(candidates) if not c.is_terminal)
            else:
                position = cell.positions.get(candidate_id)
                if position is None and _unclaimed_files(current) < 1:
                    raise BatchOverflowError(
                        f"Batch {batch_id!r} has no file left for candidate {candidate_id!r}"
                    )
                if position is not None and candidates[position].is_terminal:
                    raise InvalidTransition(
                        f"Candidate {candidate_id!r} is already {candidates[position].status}"
                    )

            if position is not None:
                placeholder = candidates[position]
                candidate_id = placeholder.id
                candidates[position] = CandidateResult.failed(
                    placeholder.id, error=error, name=placeholder.name, email=placeholder.email
                )
            elif candidate_id is not None:
                cell.positions[candidate_id] = len(candidates)
                candidates.append(CandidateResult.failed(candidate_id, error=error))

            updated = current.model_copy(
                update={"candidates": tuple(candidates), "processed_count": processed_count}
            )
            published = self._publish(cell, self._finalized(updated))

        self._logger.info(
            "batch.file_processed",
            batch_id=batch_id,
            candidate_id=candidate_id,
            processed=processed_count,
        )
        return published

    def finalize(self, batch_id: str) -> BatchJob:
        """Complete the batch if every file is processed; safe to call repeatedly."""
        cell = self._cell(batch_id)
        with cell.lock:
            current = cell.snapshot
            updated = self._finalized(current)
            if updated is current:
                return current
            return self._publish(cell, updated)

    def fail_batch(self, batch_id: str, error: str) -> BatchJob:
        """Mark the whole batch failed, keeping every candidate result already applied."""
        cell = self._cell(batch_id)
        with cell.lock:
            current = cell.snapshot
            if current.status == "failed":
                return current
            if current.status == "completed":
                self._logger.warning(
                    "batch.failure_rejected",
                    batch_id=batch_id,
                    status=current.status,
                    error=error,
                )
                raise InvalidTransition(f"Batch {batch_id!r} already completed")
            updated = current.model_copy(
                update={"status": "failed", "completed_at": self._clock(), "error": error}
            )
            published = self._publish(cell, updated)

        self._logger.warning(
            "batch.failed",
            batch_id=batch_id,
            error=error,
            processed=published.processed_count,
            total=published.total_files,
        )
        return published

    def get_snapshot(self, batch_id: str) -> BatchJob:
        return self._cell(batch_id).snapshot

    def snapshots(self) -> list[BatchJob]:
        with self._registry_lock:
            cells = list(self._batches.values())
        return [cell.snapshot for cell in cells]

    def evict_expired(self) -> list[str]:
        """Forget terminal batches older than the retention window."""
        cutoff = self._clock() - timedelta(seconds=self._config.retention_seconds)
        with self._registry_lock:
            expired = [
                batch_id
                for batch_id, cell in self._batches.items()
                if cell.snapshot.completed_at is not None and cell.snapshot.completed_at <= cutoff
            ]
            for batch_id in expired:
                del self._batches[batch_id]
        if expired:
            self._logger.info("batch.evicted", batch_ids=expired)
        return expired

    def _cell(self, batch_id: str) -> _BatchCell:
        cell = self._batches.get(batch_id)
        if cell is None:
            raise UnknownBatchError(batch_id)
        return cell

    def _next_processed_count(self, current: BatchJob) -> int:
        if current.processed_count >= current.total_files:
            self._logger.warning(
                "batch.processed_overflow",
                batch_id=current.id,
                processed=current.processed_count,
                total=current.total_files,
            )
            raise BatchOverflowError(
                f"Batch {current.id!r} has already processed all {current.total_files} files"
            )
        return current.processed_count + 1

    def _finalized(self, snapshot: BatchJob) -> BatchJob:
        if (
            snapshot.status != "processing"
            or snapshot.processed_count != snapshot.total_files
            or not snapshot.all_candidates_terminal
        ):
            return snapshot
        self._logger.info(
            "batch.finalized",
            batch_id=snapshot.id,
            processed=snapshot.processed_count,
            failed=sum(1 for candidate in snapshot.candidates if candidate.status == "failed"),
        )
        return snapshot.model_copy(update={"status": "completed", "completed_at": self._clock()})

    def _publish(self, cell: _BatchCell, snapshot: BatchJob) -> BatchJob:
        published = snapshot.model_copy(update={"version": cell.snapshot.version + 1})
        cell.snapshot = published
        return published

    def _reject(self, current: BatchJob, result: CandidateResult, reason: str) -> None:
        self._logger.warning(
            "batch.update_rejected",
            batch_id=current.id,
            candidate_id=result.id,
            status=result.status,
            reason=reason,
        )
        raise InvalidTransition(f"Cannot apply {result.status} update to batch {current.id!r}: {reason}")


def _unclaimed_files(snapshot: BatchJob) -> int:
    """Files neither processed yet nor reserved by an unfinished record."""
    unfinished = sum(1 for candidate in snapshot.candidates if not candidate.is_terminal)
    return snapshot.total_files - snapshot.processed_count - unfinished
