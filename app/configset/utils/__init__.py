"""Utility modules for configset.

This module exports commonly used utility functions.
"""

from configset.utils.formatting import (
    console,
    create_table,
    err_console,
    print_error,
    print_info,
    print_warning,
)
from configset.utils.shell import run_shell

__all__ = [
    "console",
    "create_table",
    "err_console",
    "print_error",
    "print_info",
    "print_warning",
    "run_shell",
]
