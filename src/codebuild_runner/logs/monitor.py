from __future__ import annotations

from codebuild_runner.clients.base import LogMonitor, LogServiceClient
from codebuild_runner.core.types import LogsLocation
from codebuild_runner.utils.logging import get_logger

logger = get_logger(__name__)


class CloudWatchLogMonitor(LogMonitor):
    """Follows a build's CloudWatch log stream with the service's forward token.

    The runner sets :attr:`logs_location` from each snapshot; until the
    build reports a group and stream there is nothing to read. With
    *streaming_disabled* every poll returns nothing.
    """

    def __init__(self, client: LogServiceClient, *, streaming_disabled: bool = False) -> None:
        self._client = client
        self._streaming_disabled = streaming_disabled
        self._next_token: str | None = None
        self.logs_location: LogsLocation | None = None

    async def poll(self) -> list[str]:
        location = self.logs_location
        if self._streaming_disabled or location is None:
            return []
        if not location.group_name or not location.stream_name:
            return []

        lines, token = await self._client.get_log_events(
            location.group_name,
            location.stream_name,
            next_token=self._next_token,
        )
        if token is not None:
            self._next_token = token
        if lines:
            logger.debug("log_lines_received", count=len(lines), stream=location.stream_name)
        return lines
