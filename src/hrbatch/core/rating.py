"""Interview rating policies."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RatingPolicy(Protocol):
    """Turns per-question scores into an interview's final rating."""

    method: str

    def rate(self, scores: Sequence[float]) -> float:
        """Return the final rating; an unscored interview rates 0.0."""


def _round_half_up(value: float, ndigits: int) -> float:
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


@dataclass
class MeanRatingConfig:
    ndigits: int | None = None


class MeanRating:
    """Arithmetic mean of the per-question scores."""

    method = "mean"

    def __init__(self, *, config: MeanRatingConfig | None = None) -> None:
        self._config = config or MeanRatingConfig()

    def rate(self, scores: Sequence[float]) -> float:
        if not scores:
            return 0.0
        value = sum(scores) / len(scores)
        if self._config.ndigits is None:
            return float(value)
        return _round_half_up(value, self._config.ndigits)


@dataclass
class PercentRatingConfig:
    max_score: float = 10.0
    ndigits: int | None = 0


class PercentOfMaxRating:
    """Mean score expressed as a percentage of the maximum question score."""

    method = "percent"

    def __init__(self, *, config: PercentRatingConfig | None = None) -> None:
        self._config = config or PercentRatingConfig()

    def rate(self, scores: Sequence[float]) -> float:
        if not scores:
            return 0.0
        value = sum(scores) / len(scores) / self._config.max_score * 100
        if self._config.ndigits is None:
            return float(value)
        return _round_half_up(value, self._config.ndigits)


def build_rating_policy(settings: dict[str, Any] | None = None) -> RatingPolicy:
    """Instantiate the policy named by ``settings["policy"]`` (default ``mean``)."""
    options = dict(settings or {})
    policy = options.pop("policy", "mean")
    if policy == "mean":
        options.pop("max_score", None)
        return MeanRating(config=MeanRatingConfig(**options))
    if policy == "percent":
        return PercentOfMaxRating(config=PercentRatingConfig(**options))
    raise ValueError(f"Unsupported rating policy: {policy!r}")
