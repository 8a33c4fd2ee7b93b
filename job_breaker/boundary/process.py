"""
Generator process wrapper.

Spawns the job-generating command and exposes its stdout line by line.
stderr is inherited so generator diagnostics reach the operator directly.

Dependencies: subprocess, shlex
System role: Process spawner for subprocess mode
"""

import logging
import shlex
import subprocess
from collections.abc import Iterator

logger = logging.getLogger(__name__)


class GeneratorProcess:
    """A running generator command with line-oriented stdout."""

    def __init__(self, command: str, cwd: str | None = None) -> None:
        """
        Spawn the generator.

        Args:
            command: Command line, split with shell quoting rules
            cwd: Working directory for the generator

        Raises:
            ValueError: Empty command
            OSError: Command could not be executed
        """
        args = shlex.split(command)
        if not args:
            raise ValueError("Generator command is empty")

        self.command = command
        self._process = subprocess.Popen(  # noqa: S603
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            cwd=cwd,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
        logger.info(
            "%s:__init__ - Started generator pid=%d command=%s",
            __name__,
            self._process.pid,
            command,
        )

    def lines(self) -> Iterator[str]:
        """Yield stdout lines without their line terminators until EOF."""
        assert self._process.stdout is not None
        for line in self._process.stdout:
            yield line.rstrip("\r\n")

    def wait(self) -> int:
        """Wait for exit and return the exit status."""
        returncode = self._process.wait()
        if self._process.stdout is not None:
            self._process.stdout.close()
        return returncode

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the generator, escalating to kill after timeout seconds."""
        if self._process.poll() is not None:
            return
        logger.warning("%s:terminate - Terminating generator pid=%d", __name__, self._process.pid)
        self._process.terminate()
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._process.kill()
            self._process.wait()


def spawn(command: str) -> GeneratorProcess:
    """Start a generator process for the given command line."""
    return GeneratorProcess(command)
