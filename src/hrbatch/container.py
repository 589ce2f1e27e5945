"""Dependency injection container for the tracking system."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import AggregatorConfig, BatchAggregator, InterviewRegistry, MeanRating, build_rating_policy
from .pipeline import ReplayPipeline
from .sync import PollingConfig, StatusPoller, SyncBoundary


class TrackingContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    rating_policy = providers.Singleton(MeanRating)

    aggregator = providers.Singleton(BatchAggregator)

    interviews = providers.Singleton(InterviewRegistry, rating_policy=rating_policy)

    sync_boundary = providers.Singleton(
        SyncBoundary,
        aggregator=aggregator,
        interviews=interviews,
    )

    poller = providers.Factory(StatusPoller, aggregator=aggregator)

    pipeline = providers.Factory(
        ReplayPipeline,
        boundary=sync_boundary,
        aggregator=aggregator,
        interviews=interviews,
    )


def create_container(*, settings: dict | None = None) -> TrackingContainer:
    """Instantiate container with optional overrides."""

    container = TrackingContainer()

    if not settings:
        return container

    batch_settings = settings.get("batch", {}) if isinstance(settings, dict) else {}
    if batch_settings:
        container.aggregator.override(
            providers.Singleton(BatchAggregator, config=AggregatorConfig(**batch_settings))
        )

    rating_settings = settings.get("rating", {}) if isinstance(settings, dict) else {}
    if rating_settings:
        container.rating_policy.override(providers.Singleton(build_rating_policy, rating_settings))

    poller_settings = settings.get("poller", {}) if isinstance(settings, dict) else {}
    if poller_settings:
        container.poller.override(
            providers.Factory(
                StatusPoller,
                aggregator=container.aggregator,
                config=PollingConfig(**poller_settings),
            )
        )

    return container
