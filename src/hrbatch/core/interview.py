"""Interview lifecycle tracking."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

import structlog

from ..schemas import AnswerEntry, EvalEntry, Interview, QuestionEntry, TranscriptEntry
from .clock import Clock, utc_now
from .errors import InvalidTransition, SequenceError, UnknownInterviewError
from .rating import MeanRating, RatingPolicy

NO_FEEDBACK = "No feedback available"


@dataclass(slots=True)
class TranscriptCursor:
    """Where the question/answer/eval cycle currently stands."""

    questions: int = 0
    answers: int = 0
    evaluations: int = 0
    awaiting_answer: bool = False
    awaiting_evaluation: bool = False
    last_feedback: str | None = None


def transcript_cursor(transcript: Iterable[TranscriptEntry]) -> TranscriptCursor:
    cursor = TranscriptCursor()
    for entry in transcript:
        if isinstance(entry, QuestionEntry):
            cursor.questions += 1
            cursor.awaiting_answer = True
            cursor.awaiting_evaluation = False
        elif isinstance(entry, AnswerEntry):
            cursor.answers += 1
            cursor.awaiting_answer = False
            cursor.awaiting_evaluation = True
        elif isinstance(entry, EvalEntry):
            cursor.evaluations += 1
            cursor.awaiting_evaluation = False
            cursor.last_feedback = entry.feedback
        else:
            raise TypeError(f"Unhandled transcript entry: {entry!r}")
    return cursor


class InterviewTracker:
    """Owns one interview's state machine, transcript and scores.

    scheduled -> in_progress -> completed | cancelled; scheduled -> cancelled.
    """

    def __init__(
        self,
        interview: Interview,
        *,
        rating_policy: RatingPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._interview = interview
        self._rating_policy = rating_policy or MeanRating()
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def schedule(
        cls,
        candidate_id: str,
        scheduled_at: datetime,
        duration_minutes: int,
        *,
        interview_id: str | None = None,
        rating_policy: RatingPolicy | None = None,
        clock: Clock | None = None,
    ) -> "InterviewTracker":
        interview = Interview(
            id=interview_id or uuid.uuid4().hex,
            candidate_id=candidate_id,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
        )
        return cls(interview, rating_policy=rating_policy, clock=clock)

    @property
    def id(self) -> str:
        return self._interview.id

    def snapshot(self) -> Interview:
        return self._interview

    def start(self) -> Interview:
        with self._lock:
            current = self._require("start", "scheduled")
            return self._publish(
                current.model_copy(update={"status": "in_progress", "started_at": self._clock()})
            )

    def record_question(self, text: str) -> Interview:
        with self._lock:
            current = self._require("record a question on", "in_progress")
            if transcript_cursor(current.transcript).awaiting_answer:
                raise SequenceError(f"Interview {current.id!r} has an unanswered question")
            return self._append(current, QuestionEntry(text=text, at=self._next_timestamp(current)))

    def record_answer(self, text: str) -> Interview:
        with self._lock:
            current = self._require("record an answer on", "in_progress")
            if not transcript_cursor(current.transcript).awaiting_answer:
                raise SequenceError(f"Interview {current.id!r} has no open question to answer")
            return self._append(current, AnswerEntry(text=text, at=self._next_timestamp(current)))

    def record_evaluation(self, score: float, feedback: str = "") -> Interview:
        with self._lock:
            current = self._require("evaluate", "in_progress")
            if not transcript_cursor(current.transcript).awaiting_evaluation:
                raise SequenceError(
                    f"Interview {current.id!r} has no answered question awaiting evaluation"
                )
            entry = EvalEntry(score=score, feedback=feedback, at=self._next_timestamp(current))
            scores = current.scores.model_copy(
                update={"per_question": current.scores.per_question + (entry.score,)}
            )
            return self._publish(
                current.model_copy(
                    update={"transcript": current.transcript + (entry,), "scores": scores}
                )
            )

    def complete(self, feedback: str | None = None) -> Interview:
        """Finish the interview and fix its rating and feedback."""
        with self._lock:
            current = self._require("complete", "in_progress")
            rating = self._rating_policy.rate(current.scores.per_question)
            if feedback is None:
                feedback = transcript_cursor(current.transcript).last_feedback or NO_FEEDBACK
            completed = self._publish(
                current.model_copy(
                    update={
                        "status": "completed",
                        "final_rating": rating,
                        "ai_feedback": feedback,
                        "completed_at": self._clock(),
                    }
                )
            )
        self._logger.info(
            "interview.completed",
            interview_id=completed.id,
            candidate_id=completed.candidate_id,
            final_rating=rating,
            rating_policy=self._rating_policy.method,
            questions=len(completed.scores.per_question),
        )
        return completed

    def cancel(self) -> Interview:
        with self._lock:
            current = self._require("cancel", "scheduled", "in_progress")
            cancelled = self._publish(
                current.model_copy(update={"status": "cancelled", "cancelled_at": self._clock()})
            )
        self._logger.info("interview.cancelled", interview_id=cancelled.id)
        return cancelled

    def _require(self, action: str, *allowed: str) -> Interview:
        current = self._interview
        if current.status not in allowed:
            self._logger.warning(
                "interview.transition_rejected",
                interview_id=current.id,
                action=action,
                status=current.status,
            )
            raise InvalidTransition(
                f"Cannot {action} interview {current.id!r} in status {current.status!r}"
            )
        return current

    def _next_timestamp(self, current: Interview) -> datetime:
        now = self._clock()
        if current.transcript and now <= current.transcript[-1].at:
            now = current.transcript[-1].at + timedelta(microseconds=1)
        return now

    def _append(self, current: Interview, entry: TranscriptEntry) -> Interview:
        return self._publish(current.model_copy(update={"transcript": current.transcript + (entry,)}))

    def _publish(self, interview: Interview) -> Interview:
        self._interview = interview
        return interview


class InterviewRegistry:
    """Lookup of interview trackers by id."""

    def __init__(
        self,
        *,
        rating_policy: RatingPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._rating_policy = rating_policy or MeanRating()
        self._clock = clock
        self._trackers: dict[str, InterviewTracker] = {}
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def schedule(
        self,
        candidate_id: str,
        scheduled_at: datetime,
        duration_minutes: int,
        *,
        interview_id: str | None = None,
    ) -> InterviewTracker:
        tracker = InterviewTracker.schedule(
            candidate_id,
            scheduled_at,
            duration_minutes,
            interview_id=interview_id,
            rating_policy=self._rating_policy,
            clock=self._clock,
        )
        with self._lock:
            if tracker.id in self._trackers:
                raise ValueError(f"Interview {tracker.id!r} already exists.")
            self._trackers[tracker.id] = tracker
        self._logger.info(
            "interview.scheduled",
            interview_id=tracker.id,
            candidate_id=candidate_id,
            duration_minutes=duration_minutes,
        )
        return tracker

    def get(self, interview_id: str) -> InterviewTracker:
        tracker = self._trackers.get(interview_id)
        if tracker is None:
            raise UnknownInterviewError(interview_id)
        return tracker

    def snapshots(self) -> list[Interview]:
        with self._lock:
            trackers = list(self._trackers.values())
        return [tracker.snapshot() for tracker in trackers]
