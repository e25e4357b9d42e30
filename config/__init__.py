"""
Configuration Module

This module provides centralized configuration management for restore runs:
- Disk and archive locations
- File mappings and permission modes
- Database connections and replay policy
- Health checks and operational guardrails
- Logging

Implements a flexible, environment-aware configuration system
with sensible defaults and comprehensive validation using Pydantic.
"""

from .settings import (
    RestoreSettings,
    load_settings,
    parse_memory_limit,
    ReplayPolicy,
    DiskSettings,
    HealthCheckSpec,
    ENV_PASSWORD_KEY
)

__all__ = [
    'RestoreSettings',
    'load_settings',
    'parse_memory_limit',
    'ReplayPolicy',
    'DiskSettings',
    'HealthCheckSpec',
    'ENV_PASSWORD_KEY'
]
