"""Shell execution utilities.

Provides execution of user-configured shell command lines that inherit
the terminal (used to run external diff programs).
"""

import os
import shlex
import subprocess
import sys

DEFAULT_POSIX_SHELL = "/bin/sh"


def default_shell() -> list[str]:
    """Return the shell invocation prefix for command lines.

    Uses $SHELL when set, /bin/sh otherwise (cmd /C on Windows).

    Returns:
        Shell executable followed by its "run this string" flag.
    """
    env_shell = os.environ.get("SHELL")
    if env_shell:
        return [env_shell, "-c"]
    if sys.platform == "win32":
        return ["cmd", "/C"]
    return [DEFAULT_POSIX_SHELL, "-c"]


def run_shell(command: str, *args: str) -> int:
    """Run a command line through the shell, inheriting stdout/stderr.

    Extra arguments are shell-quoted and appended to the command line, so
    the command itself may carry its own flags (e.g., "diff -N -u").

    Args:
        command: Command line to run.
        *args: Arguments appended to the command line.

    Returns:
        Exit code of the command.

    Raises:
        FileNotFoundError: If the shell executable is not found.
        OSError: If the command cannot be executed.
    """
    line = " ".join([command, *(shlex.quote(arg) for arg in args)])
    result = subprocess.run(  # nosec: B603
        [*default_shell(), line],
        check=False,
    )
    return result.returncode
