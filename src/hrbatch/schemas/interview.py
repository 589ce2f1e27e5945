"""Interview records and transcript entries."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

InterviewStatus = Literal["scheduled", "in_progress", "completed", "cancelled"]

TERMINAL_INTERVIEW_STATUSES: frozenset[str] = frozenset({"completed", "cancelled"})


class QuestionEntry(BaseModel):
    type: Literal["question"] = "question"
    text: str
    at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


class AnswerEntry(BaseModel):
    type: Literal["answer"] = "answer"
    text: str
    at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


class EvalEntry(BaseModel):
    type: Literal["eval"] = "eval"
    score: float = Field(ge=0, le=10)
    feedback: str = ""
    at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


TranscriptEntry = Annotated[
    Union[QuestionEntry, AnswerEntry, EvalEntry],
    Field(discriminator="type"),
]


class InterviewScores(BaseModel):
    """Per-question evaluation scores, in evaluation order."""

    per_question: tuple[float, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class Interview(BaseModel):
    """Immutable view of one interview."""

    id: str
    candidate_id: str
    status: InterviewStatus = "scheduled"
    scheduled_at: datetime
    duration_minutes: int = Field(gt=0)
    transcript: tuple[TranscriptEntry, ...] = ()
    scores: InterviewScores = Field(default_factory=InterviewScores)
    final_rating: float | None = None
    ai_feedback: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INTERVIEW_STATUSES
