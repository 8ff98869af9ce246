"""
Periodic status reporting.

Logs a status snapshot from any zero-argument callable at a fixed
priority interval, as a cancellable background task.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Union


# Seconds between reports
HIGHEST_PRIORITY = 0.25
HIGH_PRIORITY = 0.75
NORMAL_PRIORITY = 1.0
LOW_PRIORITY = 1.25
LOWEST_PRIORITY = 1.75

PRIORITIES = {
    'highest': HIGHEST_PRIORITY,
    'high': HIGH_PRIORITY,
    'normal': NORMAL_PRIORITY,
    'low': LOW_PRIORITY,
    'lowest': LOWEST_PRIORITY,
}


def resolve_interval(priority: Union[str, float]) -> float:
    """
    Turn a priority name or a number of seconds into an interval.

    Raises:
        ValueError: If the priority name is unknown
    """
    if isinstance(priority, str):
        try:
            return PRIORITIES[priority.lower()]
        except KeyError:
            raise ValueError(f"Unknown status priority: {priority}") from None
    return float(priority)


class StatusReporter:
    """Logs status dictionaries at a regular interval."""

    def __init__(
        self,
        source: Callable[[], Dict],
        interval: Union[str, float] = NORMAL_PRIORITY,
        name: str = "status",
        sleep: Callable[[float], Awaitable] = asyncio.sleep
    ):
        """
        Initialize the reporter.

        Args:
            source: Callable returning the status to report
            interval: Seconds between reports or a priority name
            name: Name used in log messages
            sleep: Coroutine used for the wait between reports
        """
        self.source = source
        self.interval = resolve_interval(interval)
        self.name = name
        self.logger = logging.getLogger(f"StatusReporter_{name}")
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.reports = 0

    def set_interval(self, interval: Union[str, float]) -> None:
        self.interval = resolve_interval(interval)

    def report_once(self) -> Optional[Dict]:
        """
        Collect and log one status snapshot.

        Returns:
            The status, or None if the source failed
        """
        try:
            status = self.source()
        except Exception as e:
            self.logger.error(f"Status source failed: {e}")
            return None

        self.reports += 1
        self.logger.info(f"{status}")
        return status

    def start(self) -> asyncio.Task:
        if self.is_running():
            return self._task
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"status_reporter_{self.name}"
        )
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            self.report_once()
            await self._sleep(self.interval)
