from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence
import logging
import os
import shutil
import subprocess

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def failure_reason(self, fallback: str) -> str:
        return self.stderr.strip() or self.stdout.strip() or fallback


class CommandRunner(Protocol):
    def which(self, name: str) -> str | None:
        ...

    def execute(
        self,
        name: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        ...


class SubprocessCommandRunner:
    """Runs external tools as blocking child processes.

    ``env`` holds extra variables layered over the current process
    environment for a single invocation.
    """

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def execute(
        self,
        name: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        command = [name, *args]
        environment = os.environ.copy()
        if env:
            environment.update(env)

        logger.debug("Running %s", name)
        try:
            completed = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                env=environment,
            )
        except FileNotFoundError:
            return CommandResult(exit_code=127, stderr=f"{name}: command not found")

        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

