"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class BatchConfig(BaseModel):
    max_files: int | None = Field(default=None, ge=1)
    retention_seconds: float | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class RatingConfig(BaseModel):
    policy: Literal["mean", "percent"] = "mean"
    ndigits: int | None = None
    max_score: float | None = Field(default=None, gt=0)

    model_config = ConfigDict(extra="forbid")


class InterviewConfig(BaseModel):
    rating: RatingConfig | None = None

    model_config = ConfigDict(extra="forbid")


class PollerConfig(BaseModel):
    interval_seconds: float | None = Field(default=None, gt=0)
    backoff: float | None = Field(default=None, ge=1.0)
    max_interval_seconds: float | None = Field(default=None, gt=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    batch: BatchConfig = Field(default_factory=BatchConfig)
    interview: InterviewConfig = Field(default_factory=InterviewConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        batch_settings = self.batch.model_dump(exclude_none=True)
        if batch_settings:
            settings["batch"] = batch_settings
        if self.interview.rating is not None:
            settings["rating"] = self.interview.rating.model_dump(exclude_none=True)
        poller_settings = self.poller.model_dump(exclude_none=True)
        if poller_settings:
            settings["poller"] = poller_settings
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
