"""Container step parser.

A ``docker`` step runs a command inside an image. It expands into an
ordinary command step invoking the container runtime::

    - type: docker
      image: alpine:3.20
      command: echo
      args: ["hi"]

resolves to ``docker run -t --entrypoint= alpine:3.20 echo hi``. The image
entrypoint is always cleared so ``command`` runs as given.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cmdpipe.pipeline.decoder import decode
from cmdpipe.pipeline.exceptions import MissingFieldError
from cmdpipe.pipeline.models import Step

if TYPE_CHECKING:
    from cmdpipe.pipeline.registry import StepParser

#: Container runtime binary used by the ``docker`` step type.
DOCKER_RUNTIME = "docker"


@dataclass(frozen=True, slots=True)
class DockerStepConfig:
    """Fields recognized by the ``docker`` step type.

    Attributes:
        image: Image reference (required).
        command: Command run inside the container.
        args: Arguments passed to ``command``.
        env: Environment of the runtime process itself.
    """

    image: str = ""
    command: str = ""
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)


def build_run_args(config: DockerStepConfig) -> tuple[str, ...]:
    """Return the runtime arguments that run ``config`` in a container.

    Examples:
        >>> build_run_args(DockerStepConfig(image="alpine", command="ls", args=("-l",)))
        ('run', '-t', '--entrypoint=', 'alpine', 'ls', '-l')
    """
    return ("run", "-t", "--entrypoint=", config.image, config.command, *config.args)


def container_parser(runtime: str) -> StepParser:
    """Build a container step parser for a given runtime binary.

    Args:
        runtime: Runtime executable, e.g. ``docker`` or ``podman``.

    Returns:
        Parser producing steps that invoke ``runtime run``.

    Raises:
        ValueError: If ``runtime`` is empty.

    Examples:
        >>> parse = container_parser("podman")
        >>> parse({"image": "alpine", "command": "true"}).command
        'podman'
    """
    if not runtime:
        raise ValueError("Container runtime cannot be empty")

    def parse(record: Mapping[str, Any]) -> Step:
        config = decode(record, DockerStepConfig)
        if not config.image:
            raise MissingFieldError("image")
        return Step(command=runtime, args=build_run_args(config), env=dict(config.env))

    parse.__name__ = f"parse_{runtime}_step"
    parse.__doc__ = f"Turn a generic record into a step running ``{runtime} run``."
    return parse


parse_docker_step = container_parser(DOCKER_RUNTIME)


__all__ = [
    "DOCKER_RUNTIME",
    "DockerStepConfig",
    "build_run_args",
    "container_parser",
    "parse_docker_step",
]
