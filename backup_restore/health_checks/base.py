"""
Health Check Base

Defines the abstract base class for post-restore health checks and the
context they run against.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.engine import Engine

from config.settings import RestoreSettings
from ..exceptions import HealthCheckFailure
from ..models.entities import HealthCheckOutcome


@dataclass
class HealthCheckContext:
    """
    State of the finished restore that checks inspect.

    ``engine_factory`` is only set when a database connection is available
    to the run; database checks fail without one.
    """
    settings: RestoreSettings
    engine_factory: Optional[Callable[[], Engine]] = None
    mapping_destinations: List[Path] = field(default_factory=list)

    def engine(self) -> Engine:
        if self.engine_factory is None:
            raise HealthCheckFailure("No database connection available")
        return self.engine_factory()


class HealthCheck(ABC):
    """
    Abstract base class for all health checks.

    Subclasses set ``name`` (the registry identifier) and implement
    ``check``. A check passes by returning normally; it fails by returning
    False or by raising. The message of a ``HealthCheckFailure`` becomes the
    outcome message.
    """

    name: str = ""
    description: str = ""

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self.options = options or {}

    @abstractmethod
    def check(self, context: HealthCheckContext) -> Optional[bool]:
        """
        Inspect the restored system.

        Returns:
            False to fail without a message; True or None to pass

        Raises:
            HealthCheckFailure: To fail with a message
        """
        pass

    def fail(self, message: str) -> None:
        raise HealthCheckFailure(message, check_name=self.name)

    def run(self, context: HealthCheckContext) -> HealthCheckOutcome:
        """Run the check, converting any exception into a failed outcome."""
        try:
            passed = self.check(context) is not False
            return HealthCheckOutcome(name=self.name, passed=passed)
        except HealthCheckFailure as e:
            return HealthCheckOutcome(name=self.name, passed=False, message=e.message)
        except Exception as e:
            return HealthCheckOutcome(name=self.name, passed=False, message=f"{type(e).__name__}: {e}")
