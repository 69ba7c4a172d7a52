"""Shared pytest fixtures for the cmdpipe test suite."""

from __future__ import annotations

# Disable Rich colors and force a wide terminal before Rich is imported
import os

os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"
os.environ["COLUMNS"] = "200"

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

# pylint: disable=redefined-outer-name


@dataclass
class RecordedCall:
    """One invocation seen by :class:`RecordingRunner`."""

    command: str
    args: list[str]
    env: list[str]


@dataclass
class RecordingRunner:
    """Process runner fake that records calls and returns scripted exit codes.

    Attributes:
        exit_codes: Exit code per command (default 0).
        spawn_errors: Commands that raise ``OSError`` instead of running.
        calls: Invocations in order.
    """

    exit_codes: dict[str, int] = field(default_factory=dict)
    spawn_errors: set[str] = field(default_factory=set)
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Sequence[str],
        *,
        stdout: Any = None,
        stderr: Any = None,
    ) -> int:
        """Record the call and return the scripted exit code."""
        del stdout, stderr
        if command in self.spawn_errors:
            raise FileNotFoundError(2, "No such file or directory", command)
        self.calls.append(RecordedCall(command, list(args), list(env)))
        return self.exit_codes.get(command, 0)

    @property
    def commands(self) -> list[str]:
        """Commands run so far, in order."""
        return [call.command for call in self.calls]


@pytest.fixture
def recording_runner() -> RecordingRunner:
    """Return a fresh recording process runner."""
    return RecordingRunner()


@pytest.fixture
def write_pipeline(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write pipeline text into the pytest temp directory."""

    def _write(text: str, name: str = "pipeline.yml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_cmdpipe_logger() -> Iterator[None]:
    """Undo handlers and levels installed by ``init_logging`` during a test."""
    logger = logging.getLogger("cmdpipe")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
