"""Built-in step parsers.

Provides the parsers registered by :func:`cmdpipe.pipeline.registry.default_registry`:

- parse_command_step: Run an executable directly (``type: command``)
- parse_docker_step: Run a command inside a container image (``type: docker``)
"""

from cmdpipe.pipeline.steps.command import CommandStepConfig, parse_command_step
from cmdpipe.pipeline.steps.docker import (
    DOCKER_RUNTIME,
    DockerStepConfig,
    container_parser,
    parse_docker_step,
)

__all__ = [
    "DOCKER_RUNTIME",
    "CommandStepConfig",
    "DockerStepConfig",
    "container_parser",
    "parse_command_step",
    "parse_docker_step",
]
