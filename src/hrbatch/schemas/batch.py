"""Batch job records."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .candidate import CandidateResult

BatchStatus = Literal["processing", "completed", "failed"]


class BatchJob(BaseModel):
    """Immutable view of one batch upload.

    ``candidates`` keeps arrival order; candidate ids are unique.
    """

    id: str
    job_id: str
    organization_id: str
    created_by: str
    total_files: int = Field(ge=1)
    processed_count: int = Field(default=0, ge=0)
    status: BatchStatus = "processing"
    candidates: tuple[CandidateResult, ...] = ()
    created_at: datetime
    completed_at: datetime | None = None
    error: str | None = None
    version: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_counts(self) -> "BatchJob":
        if self.processed_count > self.total_files:
            raise ValueError("processed_count cannot exceed total_files")
        ids = [candidate.id for candidate in self.candidates]
        if len(ids) != len(set(ids)):
            raise ValueError("candidate ids must be unique within a batch")
        if (self.completed_at is None) != (self.status == "processing"):
            raise ValueError("completed_at is set exactly when the batch leaves processing")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status != "processing"

    @property
    def all_candidates_terminal(self) -> bool:
        return all(candidate.is_terminal for candidate in self.candidates)

    def get(self, candidate_id: str) -> CandidateResult | None:
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate
        return None
