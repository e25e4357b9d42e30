"""
Run Deadline

Wall-clock limit for a restore run, checked between stages and between
replayed statements.
"""

import time
from typing import Optional

from ..exceptions import RestoreTimeoutError


class Deadline:
    """
    Deadline measured from construction.

    A ``None`` limit never expires.

    Example:
        ```python
        deadline = Deadline(settings.restoration.max_execution_time)
        deadline.check("restoring database")
        ```
    """

    def __init__(self, seconds: Optional[float]):
        self.seconds = seconds
        self.started_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    @property
    def expired(self) -> bool:
        return self.seconds is not None and self.elapsed > self.seconds

    def check(self, activity: str) -> None:
        """
        Raise if the time limit has passed.

        Raises:
            RestoreTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise RestoreTimeoutError(
                f"Maximum execution time of {self.seconds:.0f}s exceeded while {activity}",
                context={"elapsed_seconds": round(self.elapsed, 2)}
            )
