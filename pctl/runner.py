"""Running external commands."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod

__all__ = ["CommandError", "Runner", "CLIRunner"]


class CommandError(Exception):
    """A command could not be started or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        *,
        command: str,
        output: bytes = b"",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.output = output
        self.returncode = returncode


class Runner(ABC):
    """Something that can execute a command and return its output."""

    @abstractmethod
    def run(self, command: str, *args: str) -> bytes:
        """Run ``command`` with ``args`` and return its combined output."""


class CLIRunner(Runner):
    """Runs commands as local processes, combining stdout and stderr."""

    def run(self, command: str, *args: str) -> bytes:
        try:
            completed = subprocess.run(
                [command, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError(
                f'exec: "{command}": executable file not found in $PATH',
                command=command,
            ) from exc
        except OSError as exc:
            raise CommandError(
                f'exec: "{command}": {exc.strerror or exc}',
                command=command,
            ) from exc

        if completed.returncode != 0:
            raise CommandError(
                f"exit status {completed.returncode}",
                command=command,
                output=completed.stdout,
                returncode=completed.returncode,
            )
        return completed.stdout