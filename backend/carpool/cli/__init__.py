"""Command-line interface tools."""

from .admin import run_admin_command

__all__ = [
    "run_admin_command",
]
