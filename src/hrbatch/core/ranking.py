"""Ranked leaderboard projections over batch snapshots."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Iterator, Literal

from ..schemas import BatchJob, CandidateResult

DisplayStatus = Literal["processing", "completed", "completed_with_failures", "failed"]

CSV_HEADER = ("Rank", "Name", "Email", "Score", "Matched", "Missing")


class Leaderboard:
    """Ranked, restartable view of one snapshot.

    Completed candidates come first by score descending, ties kept in arrival
    order; candidates still pending or processing follow in arrival order;
    failed candidates come last in arrival order. The order is recomputed on
    every iteration.
    """

    def __init__(self, snapshot: BatchJob) -> None:
        self._snapshot = snapshot

    @property
    def snapshot(self) -> BatchJob:
        return self._snapshot

    def __iter__(self) -> Iterator[CandidateResult]:
        candidates = self._snapshot.candidates
        completed = [c for c in candidates if c.status == "completed"]
        yield from sorted(completed, key=lambda c: -c.score)
        yield from (c for c in candidates if not c.is_terminal)
        yield from (c for c in candidates if c.status == "failed")

    def __len__(self) -> int:
        return len(self._snapshot.candidates)


def project(snapshot: BatchJob) -> Leaderboard:
    return Leaderboard(snapshot)


@dataclass(slots=True)
class RankedRow:
    rank: int
    candidate: CandidateResult


@dataclass(slots=True)
class BatchSummary:
    """Progress and score overview for a batch."""

    batch_id: str
    status: str
    display_status: DisplayStatus
    processed: int
    total: int
    progress_percent: float
    status_counts: dict[str, int]
    average_score: float | None
    top_score: float | None


def ranked_rows(snapshot: BatchJob) -> list[RankedRow]:
    return [RankedRow(rank=idx, candidate=c) for idx, c in enumerate(project(snapshot), start=1)]


def display_status(snapshot: BatchJob) -> DisplayStatus:
    if snapshot.status == "completed":
        if any(c.status == "failed" for c in snapshot.candidates):
            return "completed_with_failures"
        return "completed"
    return snapshot.status


def summarize(snapshot: BatchJob) -> BatchSummary:
    counts = {"pending": 0, "processing": 0, "completed": 0, "failed": 0}
    for candidate in snapshot.candidates:
        counts[candidate.status] += 1
    scores = [c.score for c in snapshot.candidates if c.status == "completed"]
    return BatchSummary(
        batch_id=snapshot.id,
        status=snapshot.status,
        display_status=display_status(snapshot),
        processed=snapshot.processed_count,
        total=snapshot.total_files,
        progress_percent=round(snapshot.processed_count / snapshot.total_files * 100, 1),
        status_counts=counts,
        average_score=round(sum(scores) / len(scores), 2) if scores else None,
        top_score=max(scores) if scores else None,
    )


def export_csv(snapshot: BatchJob) -> str:
    """Render the ranked leaderboard as CSV with every value quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in ranked_rows(snapshot):
        candidate = row.candidate
        writer.writerow(
            (
                row.rank,
                candidate.name,
                candidate.email or "",
                _format_score(candidate.score),
                "; ".join(sorted(candidate.matched_skills or ())),
                "; ".join(sorted(candidate.missing_skills or ())),
            )
        )
    return buffer.getvalue()


def _format_score(score: float | None) -> str:
    if score is None:
        return ""
    return str(int(score)) if float(score).is_integer() else str(score)
