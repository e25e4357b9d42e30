"""
Health Check Registry

Maps check identifiers used in the ``health_checks`` settings to check
classes. Built-in checks register themselves at import time.
"""

import logging
from typing import Dict, List, Optional, Type

from .base import HealthCheck

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, Type[HealthCheck]] = {}


def register_health_check(cls: Type[HealthCheck]) -> Type[HealthCheck]:
    """
    Class decorator registering a health check under its ``name``.

    Example:
        ```python
        @register_health_check
        class CacheIsWarm(HealthCheck):
            name = "cache_is_warm"

            def check(self, context):
                ...
        ```
    """
    if not cls.name:
        raise ValueError(f"Health check {cls.__name__} has no name")
    if cls.name in _REGISTRY and _REGISTRY[cls.name] is not cls:
        logger.warning(f"Health check '{cls.name}' re-registered by {cls.__name__}")
    _REGISTRY[cls.name] = cls
    return cls


def get_health_check(name: str) -> Optional[Type[HealthCheck]]:
    return _REGISTRY.get(name)


def registered_health_checks() -> List[str]:
    return sorted(_REGISTRY)
