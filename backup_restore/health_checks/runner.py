"""
Health Check Runner

Instantiates the configured checks from the registry and aggregates their
outcomes.
"""

import logging
from typing import List

from config.settings import HealthCheckSpec
from ..models.entities import HealthCheckSummary
from .base import HealthCheckContext
from .registry import get_health_check

logger = logging.getLogger(__name__)

# Run by the standalone health check command when none are configured
DEFAULT_HEALTH_CHECKS = [
    HealthCheckSpec(name="database_connection"),
    HealthCheckSpec(name="storage_directories_writable"),
    HealthCheckSpec(name="files_exist", options={"files": [".env", "config/app.php", "config/database.php"]}),
    HealthCheckSpec(name="database_has_tables"),
    HealthCheckSpec(name="application_configuration"),
]


class HealthCheckRunner:
    """
    Run configured health checks in order.

    Unknown identifiers are skipped with a warning. Every outcome is logged.

    Example:
        ```python
        runner = HealthCheckRunner(settings.health_checks)
        summary = runner.run(HealthCheckContext(settings=settings))
        print(f"{summary.passed} passed, {summary.failed} failed")
        ```
    """

    def __init__(self, specs: List[HealthCheckSpec]):
        self.specs = specs

    def run(self, context: HealthCheckContext) -> HealthCheckSummary:
        summary = HealthCheckSummary()

        for spec in self.specs:
            check_cls = get_health_check(spec.name)
            if check_cls is None:
                logger.warning(f"Unknown health check '{spec.name}', skipped")
                continue

            outcome = check_cls(spec.options).run(context)
            summary.outcomes.append(outcome)

            if outcome.passed:
                logger.info(f"Health check passed: {outcome.name}")
            else:
                detail = f": {outcome.message}" if outcome.message else ""
                logger.warning(f"Health check failed: {outcome.name}{detail}")

        logger.info(f"Health checks complete: {summary.passed} passed, {summary.failed} failed")
        return summary
