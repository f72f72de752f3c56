from codebuild_runner.logs.monitor import CloudWatchLogMonitor

__all__ = ["CloudWatchLogMonitor"]
