"""
Backup Complete Restore Exceptions

This module defines the package-wide base exceptions so that configuration
and restore errors can be caught with a single except clause.
"""

class RestoreOpsError(Exception):
    """Base exception for all backup complete restore errors"""
    pass


class ConfigurationError(RestoreOpsError):
    """Raised when configuration is invalid or missing"""
    pass


class OperationTimeoutError(RestoreOpsError):
    """Raised when an operation exceeds its deadline"""
    pass
