"""Shared test fixtures."""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from codebuild_runner.clients.mock import MockBuildService, MockClientFactory
from codebuild_runner.core import runner as runner_module
from codebuild_runner.core.config import BuildConfig, RunnerConfig
from codebuild_runner.core.types import ProjectInfo
from codebuild_runner.operator_log import InMemoryLogSink, OperatorLog
from codebuild_runner.resilience.polling import PollingPolicy


def build_config(**overrides: Any) -> BuildConfig:
    fields: dict[str, Any] = {
        "project_name": "project",
        "source_control_type": "project",
        "region": "us-east-1",
    }
    fields.update(overrides)
    return BuildConfig(**fields)


@pytest.fixture
def config() -> BuildConfig:
    return build_config()


@pytest.fixture
def project() -> ProjectInfo:
    return ProjectInfo(
        name="project",
        artifact_location="artifact-bucket",
        artifact_type="S3",
        source_location="arn:aws:s3:::source-bucket/path/source.zip",
        source_type="S3",
    )


@pytest.fixture
def operator_sink() -> InMemoryLogSink:
    return InMemoryLogSink()


@pytest.fixture
def operator_log(operator_sink: InMemoryLogSink) -> OperatorLog:
    return OperatorLog([operator_sink])


@pytest.fixture
def runner_config() -> RunnerConfig:
    return RunnerConfig(polling=PollingPolicy(min_sleep=3, max_sleep=60, jitter=0))


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record every runner wait and make it return immediately."""
    recorded: list[float] = []
    real_wait = runner_module._wait

    async def _fake_wait(seconds: float, stop_event: Any) -> bool:
        recorded.append(seconds)
        return await real_wait(0, stop_event)

    monkeypatch.setattr(runner_module, "_wait", _fake_wait)
    return recorded


@pytest.fixture
def make_runner(
    project: ProjectInfo,
    operator_log: OperatorLog,
    runner_config: RunnerConfig,
    sleeps: list[float],
) -> Callable[..., runner_module.BuildRunner]:
    def _make(
        service: MockBuildService,
        config: BuildConfig | None = None,
        **kwargs: Any,
    ) -> runner_module.BuildRunner:
        if service._project is None:
            service._project = project
        factory = kwargs.pop("client_factory", None) or MockClientFactory(service)
        return runner_module.BuildRunner(
            config or build_config(),
            factory,
            runner_config=kwargs.pop("runner_config", runner_config),
            operator_log=operator_log,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_config() -> Callable[..., BuildConfig]:
    """Project-source config for ``project`` in us-east-1, with *overrides* applied."""
    return build_config
