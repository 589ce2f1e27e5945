"""Error hierarchy for the tracking core."""

from __future__ import annotations


class BatchTrackingError(Exception):
    """Base exception for all core tracking errors."""


class InvalidTransition(BatchTrackingError):
    """Raised when a state machine is not in a state that permits the operation."""


class BatchOverflowError(BatchTrackingError, OverflowError):
    """Raised when a batch would track more files than it was created with."""


class SequenceError(BatchTrackingError):
    """Raised when transcript entries arrive out of question/answer/eval order."""


class UnknownBatchError(BatchTrackingError, KeyError):
    """Raised when a batch id is not tracked."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown batch: {self.args[0]!r}"


class UnknownInterviewError(BatchTrackingError, KeyError):
    """Raised when an interview id is not tracked."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown interview: {self.args[0]!r}"
