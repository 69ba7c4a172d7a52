"""Direct command step parser.

A ``command`` step runs an executable with an argument list and an
explicit environment::

    - name: greet
      command: echo
      args: ["hello", "world"]
      env:
        LANG: C.UTF-8
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cmdpipe.pipeline.decoder import decode
from cmdpipe.pipeline.exceptions import MissingFieldError
from cmdpipe.pipeline.models import Step


@dataclass(frozen=True, slots=True)
class CommandStepConfig:
    """Fields recognized by the ``command`` step type."""

    command: str = ""
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)


def parse_command_step(record: Mapping[str, Any]) -> Step:
    """Turn a generic record into a direct command step.

    Name, type and conditions are left at their defaults; the resolver
    assigns them.

    Args:
        record: Generic step record.

    Returns:
        Step running ``command`` with ``args`` and ``env``.

    Raises:
        TypeMismatchError: If a field has the wrong type.
        MissingFieldError: If ``command`` is absent or empty.

    Examples:
        >>> parse_command_step({"command": "echo", "args": ["hi"]}).command_line
        ('echo', 'hi')
    """
    config = decode(record, CommandStepConfig)
    if not config.command:
        raise MissingFieldError("command")
    return Step(command=config.command, args=config.args, env=dict(config.env))


__all__ = [
    "CommandStepConfig",
    "parse_command_step",
]
