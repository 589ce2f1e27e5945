"""Pydantic schema definitions for batch, candidate and interview records."""

from __future__ import annotations

from .batch import BatchJob, BatchStatus
from .candidate import (
    TERMINAL_CANDIDATE_STATUSES,
    CandidateResult,
    CandidateStatus,
    result_from_scoring,
)
from .interview import (
    TERMINAL_INTERVIEW_STATUSES,
    AnswerEntry,
    EvalEntry,
    Interview,
    InterviewScores,
    InterviewStatus,
    QuestionEntry,
    TranscriptEntry,
)

__all__ = [
    "AnswerEntry",
    "BatchJob",
    "BatchStatus",
    "CandidateResult",
    "CandidateStatus",
    "EvalEntry",
    "Interview",
    "InterviewScores",
    "InterviewStatus",
    "QuestionEntry",
    "TERMINAL_CANDIDATE_STATUSES",
    "TERMINAL_INTERVIEW_STATUSES",
    "TranscriptEntry",
    "result_from_scoring",
]
