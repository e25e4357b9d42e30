"""
Backup Restore Utilities

Exports helpers for console output, size formatting, directory tree
rendering and SQL statement splitting.
"""

from .console import (
    print_section,
    print_step,
    print_success,
    print_error,
    print_warning,
    print_note,
    print_info
)
from .formatting import format_bytes, render_tree
from .sql import split_sql_statements

__all__ = [
    'print_section',
    'print_step',
    'print_success',
    'print_error',
    'print_warning',
    'print_note',
    'print_info',
    'format_bytes',
    'render_tree',
    'split_sql_statements'
]
