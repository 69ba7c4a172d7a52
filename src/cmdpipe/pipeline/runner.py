"""Pipeline runner for sequential step execution.

Provides condition evaluation (:func:`should_run`), single step execution
(:func:`execute`) and the :class:`PipelineRunner` that executes a resolved
pipeline step by step, stopping at the first failure.
"""

from __future__ import annotations

import logging
import shlex
import time
from collections.abc import Mapping

from cmdpipe.pipeline.exceptions import StepFailedError
from cmdpipe.pipeline.models import Pipeline, PipelineResult, Step, StepResult, StepStatus
from cmdpipe.pipeline.process import OutputSink, ProcessRunner, SubprocessRunner

logger = logging.getLogger(__name__)

#: Reason prefix of the SKIPPED results a dry run reports for steps that would run.
DRY_RUN_REASON = "dry run: "


def unmet_condition(step: Step) -> str | None:
    """Describe the first condition of ``step`` that does not hold.

    Conditions are compared against the step's own environment.

    Returns:
        A short description, or None when every condition holds.
    """
    for key, expected in sorted(step.conditions.items()):
        if key not in step.env:
            return f"{key} is not set"
        if step.env[key] != expected:
            return f"{key}={step.env[key]!r}, expected {expected!r}"
    return None


def should_run(step: Step) -> bool:
    """Whether every ``when`` condition of ``step`` holds.

    Examples:
        >>> should_run(Step(name="s", command="true", env={"CI": "true"}, conditions={"CI": "true"}))
        True
        >>> should_run(Step(name="s", command="true", conditions={"CI": "true"}))
        False
    """
    return unmet_condition(step) is None


def make_env(env: Mapping[str, str]) -> list[str]:
    """Return ``env`` as ``KEY=VALUE`` lines sorted by key.

    Examples:
        >>> make_env({"B": "2", "A": "1"})
        ['A=1', 'B=2']
    """
    return [f"{key}={env[key]}" for key in sorted(env)]


def execute(
    step: Step,
    process_runner: ProcessRunner,
    *,
    stdout: OutputSink = None,
    stderr: OutputSink = None,
) -> StepResult:
    """Execute one step unless its conditions say otherwise.

    Args:
        step: Resolved step.
        process_runner: Collaborator that runs the process.
        stdout: Sink for the child's standard output (None inherits).
        stderr: Sink for the child's standard error (None inherits).

    Returns:
        StepResult with SUCCESS, or SKIPPED when a condition is not met.

    Raises:
        StepFailedError: If the process exits non-zero or cannot be started.
    """
    unmet = unmet_condition(step)
    if unmet is not None:
        logger.info("Step '%s' skipped (%s)", step.name, unmet)
        return StepResult(name=step.name, status=StepStatus.SKIPPED, reason=unmet)

    logger.info("Step '%s' started: %s", step.name, shlex.join(step.command_line))
    start = time.monotonic()
    try:
        return_code = process_runner.run(
            step.command,
            step.args,
            make_env(step.env),
            stdout=stdout,
            stderr=stderr,
        )
    except OSError as exc:
        logger.warning("Step '%s' could not start: %s", step.name, exc)
        raise StepFailedError(step.name, f"cannot start {step.command!r}: {exc}") from exc
    duration = time.monotonic() - start

    if return_code != 0:
        logger.warning("Step '%s' failed (rc=%d)", step.name, return_code)
        raise StepFailedError(step.name, f"exit status {return_code}", return_code=return_code)

    logger.info("Step '%s' -> success (%.3fs)", step.name, duration)
    return StepResult(name=step.name, status=StepStatus.SUCCESS, return_code=0, duration=duration)


class PipelineRunner:
    """Execute a resolved pipeline, one step at a time.

    Steps run strictly in order, each to completion before the next one
    starts. The first failing step raises :class:`StepFailedError`; later
    steps never run and earlier ones are not rolled back.

    Args:
        pipeline: Resolved pipeline.
        process_runner: Collaborator that runs processes
            (defaults to :class:`SubprocessRunner`).

    Examples:
        >>> from cmdpipe.pipeline.resolver import resolve
        >>> runner = PipelineRunner(resolve("steps: [{command: 'true'}]"))
        >>> result = runner.run()  # doctest: +SKIP
    """

    def __init__(self, pipeline: Pipeline, process_runner: ProcessRunner | None = None) -> None:
        """Initialize PipelineRunner.

        Args:
            pipeline: Resolved pipeline.
            process_runner: Collaborator that runs processes.
        """
        self._pipeline = pipeline
        self._process_runner = process_runner or SubprocessRunner()

    @property
    def pipeline(self) -> Pipeline:
        """Return the pipeline being run."""
        return self._pipeline

    def run(
        self,
        *,
        dry_run: bool = False,
        stdout: OutputSink = None,
        stderr: OutputSink = None,
    ) -> PipelineResult:
        """Run every step in order.

        Args:
            dry_run: If True, log each command line instead of running it.
            stdout: Sink for the children's standard output (None inherits).
            stderr: Sink for the children's standard error (None inherits).

        Returns:
            PipelineResult with one StepResult per step.

        Raises:
            StepFailedError: At the first failing step. Its ``result`` holds
                the results so far, the last one FAILED.
        """
        pipeline_result = PipelineResult()
        start = time.monotonic()
        logger.info(
            "Pipeline started (%d steps%s)",
            len(self._pipeline),
            ", dry_run=True" if dry_run else "",
        )

        if dry_run:
            would_run = 0
            for step in self._pipeline:
                pipeline_result.results.append(self._dry_run_step(step))
                would_run += should_run(step)
            pipeline_result.duration = time.monotonic() - start
            logger.info(
                "[DRY RUN] Pipeline completed (%d would run, %d skipped)",
                would_run,
                len(pipeline_result.results) - would_run,
            )
            return pipeline_result

        for step in self._pipeline:
            step_start = time.monotonic()
            try:
                step_result = execute(step, self._process_runner, stdout=stdout, stderr=stderr)
            except StepFailedError as exc:
                pipeline_result.results.append(
                    StepResult(
                        name=step.name,
                        status=StepStatus.FAILED,
                        return_code=exc.return_code,
                        duration=time.monotonic() - step_start,
                        reason=exc.reason,
                    )
                )
                pipeline_result.duration = time.monotonic() - start
                exc.result = pipeline_result
                raise
            pipeline_result.results.append(step_result)

        pipeline_result.duration = time.monotonic() - start
        logger.info(
            "Pipeline completed in %.3fs (%d run, %d skipped)",
            pipeline_result.duration,
            len(pipeline_result.executed_steps),
            len(pipeline_result.skipped_steps),
        )
        return pipeline_result

    def _dry_run_step(self, step: Step) -> StepResult:
        unmet = unmet_condition(step)
        if unmet is not None:
            logger.info("[DRY RUN] Step '%s' would be skipped (%s)", step.name, unmet)
            return StepResult(name=step.name, status=StepStatus.SKIPPED, reason=unmet)
        command_line = shlex.join(step.command_line)
        logger.info("[DRY RUN] Step '%s': %s", step.name, command_line)
        return StepResult(name=step.name, status=StepStatus.SKIPPED, reason=f"{DRY_RUN_REASON}{command_line}")


__all__ = [
    "DRY_RUN_REASON",
    "PipelineRunner",
    "execute",
    "make_env",
    "should_run",
    "unmet_condition",
]
