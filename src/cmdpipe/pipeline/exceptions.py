"""Specialized exceptions raised by the cmdpipe.pipeline module.

Exception hierarchy::

    CmdpipeError
        PipelineError (base for all pipeline errors)
            PipelineConfigError (resolution failed, also ValueError)
                MalformedDocumentError (top-level document shape is wrong)
                InvalidFieldError (a known field has the wrong value type)
                UnknownStepTypeError (no parser registered for a type tag)
                MissingFieldError (a parser-specific required field is absent)
                TypeMismatchError (generic decode could not convert a field)
            StepError (step execution error)
                StepFailedError (non-zero exit or spawn failure)

Resolution errors carry the offending step's location. The resolver fills
``step_index`` and ``step_name`` in as soon as they are known and re-raises,
so the message always points at the step that broke.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cmdpipe.exceptions import CmdpipeError

if TYPE_CHECKING:
    from cmdpipe.pipeline.models import PipelineResult


class PipelineError(CmdpipeError):
    """Base exception for all pipeline module errors."""


class PipelineConfigError(PipelineError, ValueError):
    """The pipeline document could not be resolved into steps.

    Attributes:
        reason: Description of the problem, without location.
        step_index: 0-based index of the offending step record, if known.
        step_name: Resolved name of the offending step, if known.
    """

    def __init__(
        self,
        reason: str,
        *,
        step_index: int | None = None,
        step_name: str | None = None,
    ) -> None:
        """Initialize PipelineConfigError.

        Args:
            reason: Description of the problem.
            step_index: 0-based index of the offending step record.
            step_name: Resolved name of the offending step.
        """
        super().__init__(reason)
        self.reason = reason
        self.step_index = step_index
        self.step_name = step_name

    @property
    def location(self) -> str | None:
        """Human-readable step location, or None when not step-specific."""
        if self.step_name is not None and self.step_index is not None:
            return f"step {self.step_index} ({self.step_name!r})"
        if self.step_name is not None:
            return f"step {self.step_name!r}"
        if self.step_index is not None:
            return f"step {self.step_index}"
        return None

    def __str__(self) -> str:
        location = self.location
        return f"{location}: {self.reason}" if location else self.reason


class MalformedDocumentError(PipelineConfigError):
    """The document is not a mapping with a ``steps`` list of mappings."""


class InvalidFieldError(PipelineConfigError):
    """A field the resolver reads itself (name, type, when) has a bad value.

    Attributes:
        field: Name of the offending field.
    """

    def __init__(self, field: str, reason: str, *, step_index: int | None = None) -> None:
        """Initialize InvalidFieldError.

        Args:
            field: Name of the offending field.
            reason: Description of the problem.
            step_index: 0-based index of the offending step record.
        """
        super().__init__(f"invalid '{field}': {reason}", step_index=step_index)
        self.field = field


class UnknownStepTypeError(PipelineConfigError):
    """No parser is registered for a step's type tag.

    Attributes:
        step_type: The unregistered type tag.
    """

    def __init__(self, step_type: str, *, step_index: int | None = None) -> None:
        """Initialize UnknownStepTypeError.

        Args:
            step_type: The unregistered type tag.
            step_index: 0-based index of the offending step record.
        """
        super().__init__(f"unable to find parser for type {step_type!r}", step_index=step_index)
        self.step_type = step_type


class MissingFieldError(PipelineConfigError):
    """A field required by a step parser is absent or empty.

    Attributes:
        field: Name of the missing field.
    """

    def __init__(self, field: str) -> None:
        """Initialize MissingFieldError.

        Args:
            field: Name of the missing field.
        """
        super().__init__(f"'{field}' is required")
        self.field = field


class TypeMismatchError(PipelineConfigError):
    """A generic record value could not be decoded into the target field.

    Attributes:
        field: Name of the offending field (``args[1]``, ``env.HOME``).
        expected: Description of the expected type.
        actual: Name of the type actually found.

    Examples:
        >>> str(TypeMismatchError("args", "list of strings", "str"))
        "'args' expected list of strings, got str"
    """

    def __init__(self, field: str, expected: str, actual: str) -> None:
        """Initialize TypeMismatchError.

        Args:
            field: Name of the offending field.
            expected: Description of the expected type.
            actual: Name of the type actually found.
        """
        super().__init__(f"'{field}' expected {expected}, got {actual}")
        self.field = field
        self.expected = expected
        self.actual = actual


class StepError(PipelineError):
    """A pipeline step failed during execution.

    Attributes:
        step_name: Name of the step that failed.
        reason: Description of the failure.
    """

    def __init__(self, step_name: str, reason: str) -> None:
        """Initialize StepError.

        Args:
            step_name: Name of the step that failed.
            reason: Description of the failure.
        """
        super().__init__(f"step {step_name} failed: {reason}")
        self.step_name = step_name
        self.reason = reason


class StepFailedError(StepError):
    """A step's process exited non-zero or could not be started.

    Attributes:
        return_code: Process exit code, or None if the process never started.
        result: Partial ``PipelineResult`` of the aborted run, ending with the
            failed step. Set by ``PipelineRunner``; None when raised by
            ``execute`` alone.
    """

    def __init__(self, step_name: str, reason: str, *, return_code: int | None = None) -> None:
        """Initialize StepFailedError.

        Args:
            step_name: Name of the step that failed.
            reason: Description of the failure.
            return_code: Process exit code, if the process ran.
        """
        super().__init__(step_name, reason)
        self.return_code = return_code
        self.result: PipelineResult | None = None


__all__ = [
    "InvalidFieldError",
    "MalformedDocumentError",
    "MissingFieldError",
    "PipelineConfigError",
    "PipelineError",
    "StepError",
    "StepFailedError",
    "TypeMismatchError",
    "UnknownStepTypeError",
]
