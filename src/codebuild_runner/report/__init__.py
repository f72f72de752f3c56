from codebuild_runner.report.accumulator import (
    BuildReport,
    generate_dashboard_url,
    generate_s3_artifact_url,
)
from codebuild_runner.report.result import BuildResult, Outcome, OutcomeKind, ResultReporter

__all__ = [
    "BuildReport",
    "BuildResult",
    "Outcome",
    "OutcomeKind",
    "ResultReporter",
    "generate_dashboard_url",
    "generate_s3_artifact_url",
]
