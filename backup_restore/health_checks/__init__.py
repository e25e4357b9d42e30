"""
Health Checks

Post-restore verification. Importing this package registers the built-in
checks.
"""

from .base import HealthCheck, HealthCheckContext
from .registry import register_health_check, get_health_check, registered_health_checks
from .runner import HealthCheckRunner, DEFAULT_HEALTH_CHECKS
from . import checks  # noqa: F401

__all__ = [
    'HealthCheck',
    'HealthCheckContext',
    'register_health_check',
    'get_health_check',
    'registered_health_checks',
    'HealthCheckRunner',
    'DEFAULT_HEALTH_CHECKS'
]
