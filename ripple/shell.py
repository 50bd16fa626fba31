"""Shell utilities.

Provides a small execution context around subprocess calls, plus output
formatting helpers. The workspace root and environment are explicit so
nothing depends on the ambient working directory.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from .errors import CommandError

logger = logging.getLogger(__name__)

Command = str | Sequence[str]


def split_command(command: Command) -> list[str]:
    """Turn a command string or argument list into an argv list."""
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def display_command(command: Command) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(command)


class Shell:
    """Scoped execution context for external commands.

    Args:
        root: Workspace root. Every ``cwd`` is resolved against it.
        env: Environment for child processes. Defaults to a copy of
             ``os.environ`` taken at construction time.
        log: Logger used to echo commands.
    """

    def __init__(
        self,
        root: Path,
        env: Mapping[str, str] | None = None,
        *,
        log: logging.Logger = logger,
    ) -> None:
        self.root = Path(root)
        self.env = dict(os.environ if env is None else env)
        self.log = log

    def path(self, cwd: str) -> Path:
        return self.root / cwd

    def run(self, cwd: str, command: Command) -> None:
        """Run a command, streaming its output to the terminal.

        Raises:
            CommandError: If the command exits non-zero or cannot be started.
        """
        shown = display_command(command)
        self.log.info("%s %s", f"./{cwd}".ljust(20), shown)
        try:
            subprocess.run(
                split_command(command),
                cwd=self.path(cwd),
                env=self.env,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            raise CommandError(shown, cwd, f"exit status {exc.returncode}") from exc
        except OSError as exc:
            raise CommandError(shown, cwd, str(exc)) from exc

    def capture(self, cwd: str, command: Command) -> str:
        """Run a command and return its stripped stdout.

        Raises:
            CommandError: If the command exits non-zero or cannot be started.
        """
        shown = display_command(command)
        self.log.debug("%s %s", f"./{cwd}".ljust(20), shown)
        try:
            result = subprocess.run(
                split_command(command),
                cwd=self.path(cwd),
                env=self.env,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            raise CommandError(shown, cwd, exc.stderr or exc.stdout or "") from exc
        except OSError as exc:
            raise CommandError(shown, cwd, str(exc)) from exc
        return result.stdout.strip()


def step(msg: str, *, log: logging.Logger = logger) -> None:
    """Log a visually distinct step header.

    Used to separate major phases of a run in terminal output.
    """
    log.info("\n%s\n%s\n%s", "─" * 60, msg, "─" * 60)
