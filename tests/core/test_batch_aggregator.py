from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from hrbatch.core import (
    AggregatorConfig,
    BatchAggregator,
    BatchOverflowError,
    InvalidTransition,
    UnknownBatchError,
    project,
)
from hrbatch.core.aggregator import FILE_FAILED_ERROR
from hrbatch.schemas import CandidateResult


class ManualClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def build_aggregator(**kwargs) -> BatchAggregator:
    return BatchAggregator(**kwargs)


def create_batch(aggregator: BatchAggregator, total_files: int = 3, **kwargs):
    defaults = {
        "batch_id": "B-001",
        "job_id": "JOB-1",
        "organization_id": "ORG-1",
        "created_by": "U-1",
        "total_files": total_files,
    }
    defaults.update(kwargs)
    return aggregator.create_batch(**defaults)


def test_end_to_end_batch_completes_and_ranks():
    aggregator = build_aggregator()
    created = create_batch(aggregator, total_files=3)
    assert created.status == "processing"
    assert created.processed_count == 0

    aggregator.apply_update("B-001", CandidateResult.completed("A", score=90, name="A"))
    aggregator.apply_update("B-001", CandidateResult.failed("B", error="parse error", name="B"))
    aggregator.apply_update("B-001", CandidateResult.completed("C", score=70, name="C"))

    snapshot = aggregator.get_snapshot("B-001")
    assert snapshot.processed_count == 3
    assert snapshot.status == "completed"
    assert snapshot.completed_at is not None
    assert [c.id for c in project(snapshot)] == ["A", "C", "B"]


def test_apply_update_is_idempotent_for_terminal_records():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2)
    update = CandidateResult.completed("A", score=80)

    assert aggregator.apply_update("B-001", update) == "inserted"
    first = aggregator.get_snapshot("B-001")
    assert aggregator.apply_update("B-001", update) == "unchanged"
    second = aggregator.get_snapshot("B-001")

    assert second == first
    assert second.processed_count == 1


def test_terminal_record_cannot_move_back_to_processing():
    aggregator = build_aggregator()
    create_batch(aggregator)
    aggregator.apply_update("B-001", CandidateResult.completed("A", score=60))
    before = aggregator.get_snapshot("B-001")

    with pytest.raises(InvalidTransition):
        aggregator.apply_update("B-001", CandidateResult.processing("A"))
    with pytest.raises(InvalidTransition):
        aggregator.apply_update("B-001", CandidateResult.failed("A", error="late failure"))

    assert aggregator.get_snapshot("B-001") == before


def test_progress_updates_upsert_and_ignore_stale_regressions():
    aggregator = build_aggregator()
    create_batch(aggregator)

    assert aggregator.apply_update("B-001", CandidateResult.processing("A", name="Alice")) == "inserted"
    assert aggregator.apply_update("B-001", CandidateResult.pending("A", name="Alice")) == "unchanged"

    snapshot = aggregator.get_snapshot("B-001")
    assert snapshot.get("A").status == "processing"
    assert snapshot.processed_count == 0

    assert aggregator.apply_update("B-001", CandidateResult.completed("A", score=75)) == "updated"
    assert aggregator.get_snapshot("B-001").processed_count == 1


def test_seeded_placeholders_keep_arrival_order():
    aggregator = build_aggregator()
    create_batch(
        aggregator,
        total_files=2,
        pending=[CandidateResult.pending("A", name="a.pdf"), CandidateResult.pending("B", name="b.pdf")],
    )

    aggregator.apply_update("B-001", CandidateResult.completed("B", score=50))
    snapshot = aggregator.get_snapshot("B-001")

    assert [c.id for c in snapshot.candidates] == ["A", "B"]
    assert snapshot.status == "processing"


def test_increment_processed_overflow_leaves_count_unchanged():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=1, pending=[CandidateResult.pending("A")])

    aggregator.increment_processed("B-001")
    with pytest.raises(BatchOverflowError) as exc:
        aggregator.increment_processed("B-001")

    assert isinstance(exc.value, OverflowError)
    assert aggregator.get_snapshot("B-001").processed_count == 1


def test_increment_processed_past_total_after_completion_overflows():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2)

    aggregator.increment_processed("B-001")
    assert aggregator.increment_processed("B-001").status == "completed"
    with pytest.raises(OverflowError):
        aggregator.increment_processed("B-001")
    assert aggregator.get_snapshot("B-001").processed_count == 2


def test_count_only_file_resolves_leftover_placeholder():
    aggregator = build_aggregator()
    create_batch(
        aggregator,
        total_files=2,
        pending=[CandidateResult.pending("f1", name="f1.pdf"), CandidateResult.pending("f2", name="f2.pdf")],
    )
    aggregator.apply_update("B-001", CandidateResult.completed("f1", score=70))

    snapshot = aggregator.increment_processed("B-001")

    assert snapshot.status == "completed"
    assert snapshot.processed_count == 2
    leftover = snapshot.get("f2")
    assert leftover.status == "failed"
    assert leftover.name == "f2.pdf"
    assert leftover.error == FILE_FAILED_ERROR
    assert sum(1 for c in snapshot.candidates if c.is_terminal) == snapshot.processed_count


def test_count_only_file_without_placeholder_keeps_room_for_tracked_records():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=3, pending=[CandidateResult.pending("A")])

    counted = aggregator.increment_processed("B-001")
    assert counted.processed_count == 1
    assert counted.get("A").status == "pending"

    aggregator.apply_update("B-001", CandidateResult.processing("B"))
    with pytest.raises(BatchOverflowError):
        aggregator.apply_update("B-001", CandidateResult.processing("C"))

    aggregator.apply_update("B-001", CandidateResult.completed("A", score=40))
    aggregator.apply_update("B-001", CandidateResult.completed("B", score=60))
    snapshot = aggregator.get_snapshot("B-001")
    assert snapshot.status == "completed"
    assert snapshot.processed_count == 3


def test_increment_processed_fails_named_candidate():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2, pending=[CandidateResult.pending("A"), CandidateResult.pending("B")])

    snapshot = aggregator.increment_processed("B-001", "B", error="unreadable PDF")
    assert snapshot.get("B").error == "unreadable PDF"
    assert snapshot.get("A").status == "pending"

    with pytest.raises(InvalidTransition):
        aggregator.increment_processed("B-001", "B")
    assert aggregator.get_snapshot("B-001").processed_count == 1

    aggregator.increment_processed("B-001", "A")
    assert aggregator.get_snapshot("B-001").status == "completed"


def test_increment_processed_unknown_candidate_needs_a_free_file():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=1, pending=[CandidateResult.pending("A")])

    with pytest.raises(BatchOverflowError):
        aggregator.increment_processed("B-001", "Z")
    assert aggregator.get_snapshot("B-001").processed_count == 0


def test_terminal_update_beyond_total_files_is_rejected():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=1)
    aggregator.increment_processed("B-001")

    with pytest.raises(InvalidTransition):
        aggregator.apply_update("B-001", CandidateResult.completed("A", score=10))


def test_new_candidate_beyond_total_files_overflows():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=1, pending=[CandidateResult.pending("A")])

    with pytest.raises(BatchOverflowError):
        aggregator.apply_update("B-001", CandidateResult.processing("B"))
    assert [c.id for c in aggregator.get_snapshot("B-001").candidates] == ["A"]


def test_batch_auto_finalizes_and_finalize_is_idempotent():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2)

    aggregator.apply_update("B-001", CandidateResult.completed("A", score=10))
    assert aggregator.finalize("B-001").status == "processing"

    aggregator.apply_update("B-001", CandidateResult.completed("B", score=20))
    snapshot = aggregator.get_snapshot("B-001")
    assert snapshot.status == "completed"

    again = aggregator.finalize("B-001")
    assert again is snapshot


def test_batch_failure_preserves_completed_results_and_stops_processing():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=3)
    completed = CandidateResult.completed("A", score=91)
    aggregator.apply_update("B-001", completed)

    failed = aggregator.fail_batch("B-001", "runner crashed")

    assert failed.status == "failed"
    assert failed.error == "runner crashed"
    assert failed.completed_at is not None
    assert failed.get("A") == completed

    with pytest.raises(InvalidTransition):
        aggregator.apply_update("B-001", CandidateResult.completed("B", score=40))
    with pytest.raises(InvalidTransition):
        aggregator.increment_processed("B-001")

    # redelivery of an already applied result and of the failure signal is absorbed
    assert aggregator.apply_update("B-001", completed) == "unchanged"
    assert aggregator.fail_batch("B-001", "runner crashed") == failed


def test_completed_batch_cannot_be_failed():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=1)
    aggregator.apply_update("B-001", CandidateResult.completed("A", score=55))

    with pytest.raises(InvalidTransition):
        aggregator.fail_batch("B-001", "late crash")
    assert aggregator.get_snapshot("B-001").status == "completed"


def test_candidate_failures_do_not_fail_the_batch():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2)

    aggregator.apply_update("B-001", CandidateResult.failed("A", error="parse error"))
    aggregator.apply_update("B-001", CandidateResult.failed("B", error="timeout"))

    assert aggregator.get_snapshot("B-001").status == "completed"


def test_snapshot_held_by_reader_is_unaffected_by_later_updates():
    aggregator = build_aggregator()
    create_batch(aggregator, total_files=2)
    held = aggregator.get_snapshot("B-001")

    aggregator.apply_update("B-001", CandidateResult.completed("A", score=10))

    assert held.candidates == ()
    assert held.version == 0
    assert aggregator.get_snapshot("B-001").version == 1


def test_create_batch_validates_limits():
    aggregator = build_aggregator(config=AggregatorConfig(max_files=5))

    with pytest.raises(ValueError):
        create_batch(aggregator, total_files=0)
    with pytest.raises(ValueError):
        create_batch(aggregator, total_files=6)

    create_batch(aggregator, total_files=5)
    with pytest.raises(ValueError):
        create_batch(aggregator, total_files=1)


def test_unknown_batch_lookup_raises_key_error():
    aggregator = build_aggregator()

    with pytest.raises(UnknownBatchError):
        aggregator.get_snapshot("missing")
    with pytest.raises(KeyError):
        aggregator.apply_update("missing", CandidateResult.pending("A"))


def test_evict_expired_drops_only_old_terminal_batches():
    clock = ManualClock()
    aggregator = build_aggregator(config=AggregatorConfig(retention_seconds=60), clock=clock)
    create_batch(aggregator, batch_id="done", total_files=1)
    create_batch(aggregator, batch_id="running", total_files=1)
    aggregator.increment_processed("done")

    clock.advance(seconds=30)
    assert aggregator.evict_expired() == []

    clock.advance(seconds=31)
    assert aggregator.evict_expired() == ["done"]
    assert [snapshot.id for snapshot in aggregator.snapshots()] == ["running"]
