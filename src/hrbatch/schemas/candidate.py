"""Candidate result records produced while a batch is scored."""

from __future__ import annotations

from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

CandidateStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_CANDIDATE_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

_OUTCOME_FIELDS = ("score", "matched_skills", "missing_skills", "reason")


class CandidateResult(BaseModel):
    """Outcome of scoring one candidate inside a batch.

    ``score``, ``matched_skills``, ``missing_skills`` and ``reason`` are present
    exactly when the record is ``completed``; ``error`` exactly when it is
    ``failed``.
    """

    id: str = Field(min_length=1)
    name: str = ""
    email: str | None = None
    status: CandidateStatus = "pending"
    score: float | None = Field(default=None, ge=0, le=100)
    matched_skills: frozenset[str] | None = None
    missing_skills: frozenset[str] | None = None
    reason: str | None = None
    error: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CANDIDATE_STATUSES

    @model_validator(mode="after")
    def _check_outcome_fields(self) -> "CandidateResult":
        present = [name for name in _OUTCOME_FIELDS if getattr(self, name) is not None]
        if self.status == "completed":
            absent = sorted(set(_OUTCOME_FIELDS) - set(present))
            if absent:
                raise ValueError(f"completed result is missing {', '.join(absent)}")
        elif present:
            raise ValueError(
                f"{', '.join(present)} only allowed on completed results, got status {self.status!r}"
            )

        if self.status == "failed":
            if not self.error:
                raise ValueError("failed result requires an error message")
        elif self.error is not None:
            raise ValueError(f"error only allowed on failed results, got status {self.status!r}")
        return self

    @field_serializer("matched_skills", "missing_skills")
    def _serialize_skills(self, value: frozenset[str] | None) -> list[str] | None:
        return sorted(value) if value is not None else None

    @classmethod
    def pending(cls, candidate_id: str, name: str = "", email: str | None = None) -> "CandidateResult":
        return cls(id=candidate_id, name=name, email=email, status="pending")

    @classmethod
    def processing(cls, candidate_id: str, name: str = "", email: str | None = None) -> "CandidateResult":
        return cls(id=candidate_id, name=name, email=email, status="processing")

    @classmethod
    def completed(
        cls,
        candidate_id: str,
        *,
        score: float,
        matched_skills: Iterable[str] = (),
        missing_skills: Iterable[str] = (),
        reason: str = "",
        name: str = "",
        email: str | None = None,
    ) -> "CandidateResult":
        return cls(
            id=candidate_id,
            name=name,
            email=email,
            status="completed",
            score=score,
            matched_skills=frozenset(matched_skills),
            missing_skills=frozenset(missing_skills),
            reason=reason,
        )

    @classmethod
    def failed(
        cls,
        candidate_id: str,
        *,
        error: str,
        name: str = "",
        email: str | None = None,
    ) -> "CandidateResult":
        return cls(id=candidate_id, name=name, email=email, status="failed", error=error)


def result_from_scoring(payload: dict[str, Any]) -> CandidateResult:
    """Convert a resume-scoring producer payload into a terminal result.

    Success payloads carry ``score``/``matched_skills``/``missing_skills``/``reason``;
    failure payloads carry ``error``. Both carry ``candidate_id``. camelCase keys
    are accepted as well.
    """

    def pick(*keys: str, default: Any = None) -> Any:
        for key in keys:
            if key in payload:
                return payload[key]
        return default

    candidate_id = pick("candidate_id", "candidateId", "id")
    if not candidate_id:
        raise ValueError("Scoring payload must include 'candidate_id'.")
    name = pick("name", default="") or ""
    email = pick("email")

    error = pick("error")
    if error is not None:
        return CandidateResult.failed(str(candidate_id), error=str(error), name=name, email=email)

    score = pick("score")
    if score is None:
        raise ValueError("Scoring payload must include either 'score' or 'error'.")
    return CandidateResult.completed(
        str(candidate_id),
        score=float(score),
        matched_skills=pick("matched_skills", "matchedSkills", default=()) or (),
        missing_skills=pick("missing_skills", "missingSkills", default=()) or (),
        reason=pick("reason", default="") or "",
        name=name,
        email=email,
    )
