"""
Console Output Helpers

User-facing output for the restore command: section headers, stage
banners and status lines. Diagnostic output goes through logging instead.
"""

from typing import Any


def print_section(title: str, width: int = 60):
    """
    Print a formatted section header.

    Args:
        title: Section title
        width: Width of the header line
    """
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width)


def print_step(step_num: int, description: str):
    """Print a numbered stage banner."""
    print(f"\n[Step {step_num}] {description}")


def print_success(message: str):
    print(f"[SUCCESS] {message}")


def print_error(message: str):
    print(f"[ERROR] {message}")


def print_warning(message: str):
    print(f"[WARNING] {message}")


def print_note(message: str):
    print(f"[NOTE] {message}")


def print_info(key: str, value: Any):
    """Print information in key-value format."""
    print(f"  - {key}: {value}")
