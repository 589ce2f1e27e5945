from __future__ import annotations

import pytest
from pydantic import ValidationError

from hrbatch.schemas import CandidateResult, result_from_scoring


def test_completed_result_carries_outcome_fields():
    result = CandidateResult.completed(
        "C-001",
        score=88,
        matched_skills=["Python", "AWS"],
        missing_skills=["Go"],
        reason="Strong backend match",
        name="Alice",
    )

    assert result.is_terminal
    assert result.matched_skills == frozenset({"Python", "AWS"})
    assert result.error is None
    dumped = result.model_dump(mode="json")
    assert dumped["matched_skills"] == ["AWS", "Python"]
    assert dumped["missing_skills"] == ["Go"]


def test_completed_result_requires_score():
    with pytest.raises(ValidationError):
        CandidateResult(id="C-002", status="completed", matched_skills=[], missing_skills=[], reason="")


def test_outcome_fields_rejected_before_completion():
    with pytest.raises(ValidationError):
        CandidateResult(id="C-003", status="processing", score=50)


def test_failed_result_requires_error_and_forbids_score():
    with pytest.raises(ValidationError):
        CandidateResult(id="C-004", status="failed")
    with pytest.raises(ValidationError):
        CandidateResult(id="C-004", status="failed", error="parse error", score=10)

    failed = CandidateResult.failed("C-004", error="parse error")
    assert failed.is_terminal
    assert failed.score is None
    assert failed.matched_skills is None


def test_error_rejected_unless_failed():
    with pytest.raises(ValidationError):
        CandidateResult(id="C-005", status="pending", error="boom")


def test_score_range_enforced():
    with pytest.raises(ValidationError):
        CandidateResult.completed("C-006", score=101)


def test_result_is_frozen():
    result = CandidateResult.pending("C-007", name="Pat")
    with pytest.raises(ValidationError):
        result.status = "processing"  # type: ignore[misc]


def test_result_from_scoring_success_accepts_camel_case():
    result = result_from_scoring(
        {
            "candidateId": "C-010",
            "name": "Dana",
            "score": 72,
            "matchedSkills": ["SQL"],
            "missingSkills": ["Spark"],
            "reason": "Partial match",
        }
    )

    assert result.status == "completed"
    assert result.score == 72.0
    assert result.matched_skills == frozenset({"SQL"})
    assert result.missing_skills == frozenset({"Spark"})


def test_result_from_scoring_failure():
    result = result_from_scoring({"candidate_id": "C-011", "error": "parse error"})

    assert result.status == "failed"
    assert result.error == "parse error"


def test_result_from_scoring_requires_score_or_error():
    with pytest.raises(ValueError):
        result_from_scoring({"candidate_id": "C-012"})
    with pytest.raises(ValueError):
        result_from_scoring({"score": 10})
