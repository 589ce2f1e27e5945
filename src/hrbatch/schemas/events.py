"""Sync events reported by external job runners and interview producers."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .candidate import CandidateResult


class _Event(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BatchCreated(_Event):
    type: Literal["batch_created"] = "batch_created"
    batch_id: str
    job_id: str
    organization_id: str
    created_by: str
    total_files: int
    pending: list[CandidateResult] = Field(default_factory=list)


class CandidateUpdate(_Event):
    type: Literal["candidate_update"] = "candidate_update"
    batch_id: str
    result: CandidateResult


class FileProcessed(_Event):
    """A file that failed without a scoring result, optionally naming its placeholder."""

    type: Literal["file_processed"] = "file_processed"
    batch_id: str
    candidate_id: str | None = None
    error: str | None = None


class BatchStatusChanged(_Event):
    type: Literal["batch_status"] = "batch_status"
    batch_id: str
    status: Literal["completed", "failed"]
    error: str | None = None


class InterviewScheduled(_Event):
    type: Literal["interview_scheduled"] = "interview_scheduled"
    interview_id: str
    candidate_id: str
    scheduled_at: datetime
    duration_minutes: int


class InterviewStarted(_Event):
    type: Literal["interview_started"] = "interview_started"
    interview_id: str


class InterviewQuestion(_Event):
    type: Literal["interview_question"] = "interview_question"
    interview_id: str
    text: str


class InterviewAnswer(_Event):
    type: Literal["interview_answer"] = "interview_answer"
    interview_id: str
    text: str


class InterviewEvaluation(_Event):
    type: Literal["interview_evaluation"] = "interview_evaluation"
    interview_id: str
    score: float
    feedback: str = ""


class InterviewCompleted(_Event):
    type: Literal["interview_completed"] = "interview_completed"
    interview_id: str
    feedback: str | None = None


class InterviewCancelled(_Event):
    type: Literal["interview_cancelled"] = "interview_cancelled"
    interview_id: str


SyncEvent = Annotated[
    Union[
        BatchCreated,
        CandidateUpdate,
        FileProcessed,
        BatchStatusChanged,
        InterviewScheduled,
        InterviewStarted,
        InterviewQuestion,
        InterviewAnswer,
        InterviewEvaluation,
        InterviewCompleted,
        InterviewCancelled,
    ],
    Field(discriminator="type"),
]

SYNC_EVENT_ADAPTER: TypeAdapter[SyncEvent] = TypeAdapter(SyncEvent)


def parse_event(data: dict) -> SyncEvent:
    """Validate a raw mapping into a typed sync event."""
    return SYNC_EVENT_ADAPTER.validate_python(data)
