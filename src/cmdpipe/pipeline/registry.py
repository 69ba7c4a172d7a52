"""Step-type registry.

Maps a step ``type`` tag to the parser that turns a generic record into a
:class:`~cmdpipe.pipeline.models.Step`. Registries are immutable: build one
at startup, then pass it to the resolver. ``register`` returns a new
registry, so adding a step kind never mutates a registry another caller is
already using.

Examples:
    >>> from cmdpipe.pipeline.models import Step
    >>> def parse_noop(record):
    ...     return Step(command="true")
    >>> registry = default_registry().register("noop", parse_noop)
    >>> sorted(registry.tags)
    ['command', 'docker', 'noop']
    >>> "noop" in default_registry()
    False
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from cmdpipe.pipeline.models import Step
from cmdpipe.pipeline.steps import parse_command_step, parse_docker_step

logger = logging.getLogger(__name__)

#: A parser turns a generic step record into a step (without name, type or conditions).
StepParser = Callable[[Mapping[str, Any]], Step]


class StepRegistry:
    """Immutable mapping from step type tag to parser.

    Args:
        parsers: Initial tag to parser mapping (copied).
    """

    __slots__ = ("_parsers",)

    def __init__(self, parsers: Mapping[str, StepParser] | None = None) -> None:
        """Initialize StepRegistry.

        Args:
            parsers: Initial tag to parser mapping.

        Raises:
            ValueError: If a tag is empty.
        """
        for tag in parsers or {}:
            _check_tag(tag)
        self._parsers: Mapping[str, StepParser] = MappingProxyType(dict(parsers or {}))

    def register(self, tag: str, parser: StepParser) -> StepRegistry:
        """Return a new registry where ``tag`` resolves to ``parser``.

        An existing parser for ``tag`` is replaced silently.

        Args:
            tag: Step type tag.
            parser: Parser for records of that type.

        Returns:
            New registry including the parser.

        Raises:
            ValueError: If ``tag`` is empty.
        """
        _check_tag(tag)
        if tag in self._parsers:
            logger.debug("Replacing parser for step type %r", tag)
        return StepRegistry({**self._parsers, tag: parser})

    def lookup(self, tag: str) -> StepParser | None:
        """Return the parser for ``tag``, or None if none is registered."""
        return self._parsers.get(tag)

    @property
    def tags(self) -> tuple[str, ...]:
        """Registered type tags, in registration order."""
        return tuple(self._parsers)

    def __contains__(self, tag: object) -> bool:
        return tag in self._parsers

    def __iter__(self) -> Iterator[str]:
        return iter(self._parsers)

    def __len__(self) -> int:
        return len(self._parsers)

    def __repr__(self) -> str:
        return f"StepRegistry({', '.join(self._parsers)})"


def _check_tag(tag: str) -> None:
    if not isinstance(tag, str) or not tag:
        raise ValueError(f"Step type tag must be a non-empty string, got {tag!r}")


def default_registry() -> StepRegistry:
    """Return a registry holding the built-in ``command`` and ``docker`` parsers."""
    return StepRegistry(
        {
            "command": parse_command_step,
            "docker": parse_docker_step,
        }
    )


__all__ = [
    "StepParser",
    "StepRegistry",
    "default_registry",
]
