"""Pipeline resolution.

Turns the templated pipeline document into an ordered, fully typed
:class:`~cmdpipe.pipeline.models.Pipeline`::

    steps:
      - name: build
        command: make
        args: ["all"]
      - type: docker
        image: alpine
        command: echo
        args: ["done"]
        when:
          CI: "true"

Each step record gets a name (``step-<index>`` by default) and a type
(``command`` by default), is dispatched to the parser registered for its
type, and keeps its ``when`` mapping as conditions. Resolution is
all-or-nothing: the first problem raises and no partial pipeline is
returned.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from cmdpipe.pipeline.exceptions import (
    InvalidFieldError,
    MalformedDocumentError,
    PipelineConfigError,
    UnknownStepTypeError,
)
from cmdpipe.pipeline.models import DEFAULT_STEP_TYPE, Pipeline, Step
from cmdpipe.pipeline.registry import StepRegistry, default_registry
from cmdpipe.templating import render_pipeline

logger = logging.getLogger(__name__)


def resolve(payload: str, registry: StepRegistry | None = None) -> Pipeline:
    """Resolve a templated payload into a pipeline.

    Args:
        payload: Fully templated YAML document.
        registry: Step parsers to dispatch to (defaults to the built-ins).

    Returns:
        Pipeline with one step per record, in document order.

    Raises:
        MalformedDocumentError: If the document is not a mapping whose
            ``steps`` is a list of mappings.
        InvalidFieldError: If ``name``, ``type`` or ``when`` has a bad value.
        UnknownStepTypeError: If no parser is registered for a step type.
        PipelineConfigError: Any parser error, annotated with the step.

    Examples:
        >>> pipeline = resolve("steps: [{command: echo, args: [hi]}]")
        >>> pipeline.steps[0].name, pipeline.steps[0].type
        ('step-0', 'command')
    """
    if registry is None:
        registry = default_registry()

    records = _parse_document(payload)
    steps = tuple(_resolve_step(index, record, registry) for index, record in enumerate(records))
    logger.debug("Resolved %d step(s): %s", len(steps), ", ".join(s.name for s in steps))
    return Pipeline(steps=steps)


def load_pipeline(
    text: str,
    environ: Mapping[str, str] | None = None,
    registry: StepRegistry | None = None,
    *,
    source: str | None = None,
) -> Pipeline:
    """Template a raw pipeline document and resolve it.

    Args:
        text: Raw document text.
        environ: Environment snapshot for variable substitution
            (defaults to the process environment).
        registry: Step parsers to dispatch to (defaults to the built-ins).
        source: Document origin used in error messages.

    Returns:
        The resolved pipeline.

    Raises:
        TemplateError: If templating fails.
        PipelineConfigError: If resolution fails.
    """
    return resolve(render_pipeline(text, environ, source=source), registry)


def load_pipeline_file(
    path: str | Path,
    environ: Mapping[str, str] | None = None,
    registry: StepRegistry | None = None,
) -> Pipeline:
    """Read, template and resolve a pipeline file.

    Args:
        path: Pipeline document path (UTF-8).
        environ: Environment snapshot (defaults to the process environment).
        registry: Step parsers to dispatch to (defaults to the built-ins).

    Returns:
        The resolved pipeline.

    Raises:
        OSError: If the file cannot be read.
        MalformedDocumentError: If the file is not valid UTF-8.
        TemplateError: If templating fails.
        PipelineConfigError: If resolution fails.
    """
    return load_pipeline(read_pipeline_text(path), environ, registry, source=str(path))


def read_pipeline_text(path: str | Path) -> str:
    """Read a pipeline document as UTF-8 text.

    Raises:
        OSError: If the file cannot be read.
        MalformedDocumentError: If the file is not valid UTF-8.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedDocumentError(f"{path} is not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc


# ============================================================================
# Helpers
# ============================================================================


def _parse_document(payload: str) -> list[Mapping[str, Any]]:
    """Parse the payload and return its step records."""
    try:
        document = yaml.safe_load(payload)
    except yaml.YAMLError as exc:
        raise MalformedDocumentError(f"invalid YAML: {exc}") from exc

    if not isinstance(document, Mapping):
        raise MalformedDocumentError(f"pipeline document must be a mapping, got {_kind(document)}")

    raw_steps = document.get("steps")
    if raw_steps is None:
        logger.warning("Pipeline document declares no steps")
        return []
    if not isinstance(raw_steps, list):
        raise MalformedDocumentError(f"'steps' must be a list, got {_kind(raw_steps)}")

    for index, record in enumerate(raw_steps):
        if not isinstance(record, Mapping):
            raise MalformedDocumentError(f"step must be a mapping, got {_kind(record)}", step_index=index)
    return raw_steps


def _resolve_step(index: int, record: Mapping[str, Any], registry: StepRegistry) -> Step:
    name = _get_string(record, "name", index) or f"step-{index}"
    try:
        step_type = _get_string(record, "type", index) or DEFAULT_STEP_TYPE
        conditions = _get_conditions(record, index)

        parser = registry.lookup(step_type)
        if parser is None:
            raise UnknownStepTypeError(step_type, step_index=index)
        try:
            step = parser(record)
        except PipelineConfigError:
            raise
        except Exception as exc:
            raise PipelineConfigError(f"parser for type {step_type!r} failed: {exc}") from exc
        if not isinstance(step, Step):
            raise PipelineConfigError(f"parser for type {step_type!r} returned {_kind(step)}, expected Step")
    except PipelineConfigError as exc:
        exc.step_index = index
        exc.step_name = name
        raise

    return dataclasses.replace(step, name=name, type=step_type, conditions=conditions)


def _get_string(record: Mapping[str, Any], key: str, index: int) -> str | None:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFieldError(key, f"expected a string, got {_kind(value)}", step_index=index)
    return value


def _get_conditions(record: Mapping[str, Any], index: int) -> dict[str, str]:
    when = record.get("when")
    if when is None:
        return {}
    if not isinstance(when, Mapping):
        raise InvalidFieldError("when", f"expected a mapping, got {_kind(when)}", step_index=index)

    conditions: dict[str, str] = {}
    for key, expected in when.items():
        if not isinstance(key, str):
            raise InvalidFieldError("when", f"condition key {key!r} is not a string", step_index=index)
        if not isinstance(expected, str):
            raise InvalidFieldError(
                "when",
                f"condition {key!r} expected a string, got {_kind(expected)}",
                step_index=index,
            )
        conditions[key] = expected
    return conditions


def _kind(value: object) -> str:
    return "null" if value is None else type(value).__name__


__all__ = [
    "load_pipeline",
    "load_pipeline_file",
    "read_pipeline_text",
    "resolve",
]
