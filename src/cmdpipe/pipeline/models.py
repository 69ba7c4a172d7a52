"""Data models for the cmdpipe.pipeline module.

This module defines the core data structures used by the pipeline module:

- Step: Frozen, fully resolved executable step
- Pipeline: Frozen ordered sequence of steps
- StepStatus: Enum for step result status (success, failed, skipped)
- StepResult: Mutable result of a single step execution
- PipelineResult: Mutable aggregate result of a pipeline run
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

#: Type tag used when a step record does not declare one.
DEFAULT_STEP_TYPE = "command"


@dataclass(frozen=True, slots=True)
class Step:
    """A resolved, executable pipeline step.

    Steps compare by value but are not hashable: ``env`` and ``conditions``
    are dicts, so ``hash(step)`` raises ``TypeError``. The same holds for a
    :class:`Pipeline` of steps.

    Attributes:
        name: Human identifier, never empty once resolved.
        type: Tag of the parser that produced the step.
        command: Executable name or path.
        args: Positional arguments, order preserved from the document.
        env: Complete environment given to the child process.
        conditions: Environment key to exact value required for the step to run.

    Examples:
        >>> step = Step(name="greet", command="echo", args=("hello",))
        >>> step.command_line
        ('echo', 'hello')
    """

    name: str = ""
    type: str = DEFAULT_STEP_TYPE
    command: str = ""
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    conditions: dict[str, str] = field(default_factory=dict)

    @property
    def command_line(self) -> tuple[str, ...]:
        """Return the command followed by its arguments."""
        return (self.command, *self.args)


@dataclass(frozen=True, slots=True)
class Pipeline:
    """An ordered sequence of resolved steps.

    Examples:
        >>> pipeline = Pipeline(steps=(Step(name="a", command="true"),))
        >>> len(pipeline), pipeline.names
        (1, ('a',))
    """

    steps: tuple[Step, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    @property
    def names(self) -> tuple[str, ...]:
        """Return the step names in execution order."""
        return tuple(step.name for step in self.steps)


class StepStatus(str, Enum):
    """Result status of a pipeline step.

    Attributes:
        SUCCESS: Step process exited with code 0.
        FAILED: Step process exited non-zero or could not be started.
        SKIPPED: Step conditions were not met, or the run was a dry run
            (the reason then starts with ``dry run: ``).
    """

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class StepResult:
    """Result of a single pipeline step execution.

    Attributes:
        name: Step name.
        status: Execution result status.
        return_code: Process exit code, if the process ran.
        duration: Execution duration in seconds.
        reason: Why the step was skipped or failed.

    Examples:
        >>> result = StepResult(name="build", status=StepStatus.SUCCESS)
        >>> result.status
        <StepStatus.SUCCESS: 'success'>
    """

    name: str
    status: StepStatus
    return_code: int | None = None
    duration: float = 0.0
    reason: str | None = None


@dataclass(slots=True)
class PipelineResult:
    """Aggregate result of a pipeline run.

    Attributes:
        results: Ordered list of step results.
        duration: Total run duration in seconds.

    Examples:
        >>> result = PipelineResult()
        >>> result.success
        True
    """

    results: list[StepResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        """Whether no executed step failed."""
        return all(r.status != StepStatus.FAILED for r in self.results)

    @property
    def executed_steps(self) -> list[StepResult]:
        """Steps whose process actually ran."""
        return [r for r in self.results if r.status != StepStatus.SKIPPED]

    @property
    def skipped_steps(self) -> list[StepResult]:
        """Steps that were skipped."""
        return [r for r in self.results if r.status == StepStatus.SKIPPED]


__all__ = [
    "DEFAULT_STEP_TYPE",
    "Pipeline",
    "PipelineResult",
    "Step",
    "StepResult",
    "StepStatus",
]
