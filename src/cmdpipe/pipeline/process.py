"""Process execution for pipeline steps.

The runner only needs something that can run a command with an explicit
environment and report its exit code. :class:`SubprocessRunner` is the real
implementation; tests substitute a recording fake.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from typing import IO, Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

#: Output sink for a child stream: a file object, or None to inherit.
OutputSink = IO[Any] | None


@runtime_checkable
class ProcessRunner(Protocol):
    """Protocol for running a step's process to completion.

    Examples:
        >>> class Recorder:
        ...     def run(self, command, args, env, *, stdout=None, stderr=None):
        ...         return 0
        >>> isinstance(Recorder(), ProcessRunner)
        True
    """

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Sequence[str],
        *,
        stdout: OutputSink = None,
        stderr: OutputSink = None,
    ) -> int:
        """Run ``command`` with ``args`` and wait for it to exit.

        Args:
            command: Executable name or path.
            args: Positional arguments.
            env: Complete child environment as ``KEY=VALUE`` lines.
            stdout: Sink for the child's standard output.
            stderr: Sink for the child's standard error.

        Returns:
            The process exit code.

        Raises:
            OSError: If the process could not be started.
        """
        ...


def env_lines_to_dict(env: Sequence[str]) -> dict[str, str]:
    """Convert ``KEY=VALUE`` lines back into a mapping.

    Examples:
        >>> env_lines_to_dict(["A=1", "B=x=y"])
        {'A': '1', 'B': 'x=y'}
    """
    result: dict[str, str] = {}
    for line in env:
        key, _, value = line.partition("=")
        result[key] = value
    return result


class SubprocessRunner:
    """Run step processes with :func:`subprocess.run`.

    The child environment is exactly the one given; nothing from the
    invoking process is merged in. There is no timeout: the call blocks until
    the child exits.
    """

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Sequence[str],
        *,
        stdout: OutputSink = None,
        stderr: OutputSink = None,
    ) -> int:
        """Run the command and return its exit code.

        Raises:
            OSError: If the executable cannot be found or started.
        """
        cmd = [command, *args]
        logger.debug("Running %s", cmd)
        proc = subprocess.run(  # noqa: S603
            cmd,
            env=env_lines_to_dict(env),
            stdout=stdout,
            stderr=stderr,
            check=False,
        )
        return proc.returncode


__all__ = [
    "OutputSink",
    "ProcessRunner",
    "SubprocessRunner",
    "env_lines_to_dict",
]
