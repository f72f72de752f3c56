"""Polling policy with linear backoff and jitter for build status fetches."""

from __future__ import annotations

import os
import random
from typing import Any

from pydantic import BaseModel, Field, model_validator

from codebuild_runner.core.constants import MAX_SLEEP_SECONDS
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)


class PollingPolicy(BaseModel):
    """Immutable sleep bounds for the status poll loop.

    Every fetch adds one second to the base delay until ``max_sleep`` is
    reached; a uniform jitter is then added so many concurrent runners do
    not hit the rate-limited status endpoint in lockstep.

    Attributes:
        min_sleep: Base delay in seconds before the second fetch.
        max_sleep: Cap in seconds for the non-jittered delay.
        jitter: Upper bound in seconds of the uniform random jitter.
        stop_poll_interval: Fixed delay in seconds between fetches while
            waiting for a stopped build to complete.
    """

    min_sleep: float = Field(default=3.0, ge=0.0, le=MAX_SLEEP_SECONDS)
    max_sleep: float = Field(default=60.0, ge=0.0, le=MAX_SLEEP_SECONDS)
    jitter: float = Field(default=5.0, ge=0.0, le=MAX_SLEEP_SECONDS)
    stop_poll_interval: float = Field(default=5.0, ge=0.0, le=MAX_SLEEP_SECONDS)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> PollingPolicy:
        if self.min_sleep > self.max_sleep:
            raise ValueError(
                f"min_sleep ({self.min_sleep}) must not be greater than max_sleep ({self.max_sleep})"
            )
        return self

    def base_delay(self, poll_count: int) -> float:
        """Delay without jitter after *poll_count* earlier fetches."""
        return min(self.max_sleep, self.min_sleep + max(poll_count, 0))

    def compute_delay(self, poll_count: int) -> float:
        """Compute the sleep before the next fetch.

        ``min(max_sleep, min_sleep + poll_count) + uniform(0, jitter)``, so
        the result never exceeds ``max_sleep + jitter``.
        """
        delay = self.base_delay(poll_count)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)  # noqa: S311
        return delay

    @classmethod
    def from_env(cls) -> PollingPolicy:
        """Create a :class:`PollingPolicy` from ``CODEBUILD_RUNNER_*`` environment variables.

        * ``CODEBUILD_RUNNER_MIN_SLEEP`` → ``min_sleep``
        * ``CODEBUILD_RUNNER_MAX_SLEEP`` → ``max_sleep``
        * ``CODEBUILD_RUNNER_SLEEP_JITTER`` → ``jitter``

        A variable keeps its default unless it holds a number in
        ``(0, MAX_SLEEP_SECONDS]``. When the resulting ``min_sleep`` exceeds
        ``max_sleep`` both sleep bounds keep their defaults.
        """
        kwargs: dict[str, Any] = {}
        for env_name, field in (
            ("CODEBUILD_RUNNER_MIN_SLEEP", "min_sleep"),
            ("CODEBUILD_RUNNER_MAX_SLEEP", "max_sleep"),
            ("CODEBUILD_RUNNER_SLEEP_JITTER", "jitter"),
        ):
            value = _env_seconds(env_name)
            if value is not None:
                kwargs[field] = value

        defaults = cls.model_fields
        min_sleep = kwargs.get("min_sleep", defaults["min_sleep"].default)
        max_sleep = kwargs.get("max_sleep", defaults["max_sleep"].default)
        if min_sleep > max_sleep:
            logger.warning("polling_env_ignored", min_sleep=min_sleep, max_sleep=max_sleep)
            kwargs.pop("min_sleep", None)
            kwargs.pop("max_sleep", None)
        return cls(**kwargs)


def _env_seconds(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("polling_env_invalid", variable=name, value=raw)
        return None
    if not 0 < value <= MAX_SLEEP_SECONDS:
        logger.warning("polling_env_invalid", variable=name, value=raw)
        return None
    return value
