"""Core tracking components: batch aggregation, ranking and interviews."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .aggregator import AggregatorConfig, BatchAggregator, UpdateOutcome
from .errors import (
    BatchOverflowError,
    BatchTrackingError,
    InvalidTransition,
    SequenceError,
    UnknownBatchError,
    UnknownInterviewError,
)
from .interview import InterviewRegistry, InterviewTracker, transcript_cursor
from .ranking import BatchSummary, Leaderboard, export_csv, project, ranked_rows, summarize
from .rating import MeanRating, PercentOfMaxRating, RatingPolicy, build_rating_policy

__all__ = [
    "AggregatorConfig",
    "BatchAggregator",
    "BatchOverflowError",
    "BatchSummary",
    "BatchTrackingError",
    "InterviewRegistry",
    "InterviewTracker",
    "InvalidTransition",
    "Leaderboard",
    "MeanRating",
    "PercentOfMaxRating",
    "RatingPolicy",
    "SequenceError",
    "UnknownBatchError",
    "UnknownInterviewError",
    "UpdateOutcome",
    "build_rating_policy",
    "export_csv",
    "project",
    "ranked_rows",
    "summarize",
    "transcript_cursor",
]
