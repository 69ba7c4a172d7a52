"""Declarative command pipelines.

Pipelines are YAML documents listing steps. Each step is resolved through a
registry of step-type parsers into a plain command with arguments and an
explicit environment, then executed in order.

Examples:
    Resolve and run a document:

    >>> from cmdpipe.pipeline import PipelineRunner, load_pipeline
    >>> pipeline = load_pipeline("steps: [{command: echo, args: [hello]}]", environ={})
    >>> pipeline.names
    ('step-0',)
    >>> result = PipelineRunner(pipeline).run()  # doctest: +SKIP

    Add a step type:

    >>> from cmdpipe.pipeline import Step, default_registry
    >>> registry = default_registry().register("noop", lambda record: Step(command="true"))
    >>> load_pipeline("steps: [{type: noop}]", environ={}, registry=registry).steps[0].command
    'true'
"""

from cmdpipe.pipeline.decoder import decode
from cmdpipe.pipeline.exceptions import (
    InvalidFieldError,
    MalformedDocumentError,
    MissingFieldError,
    PipelineConfigError,
    PipelineError,
    StepError,
    StepFailedError,
    TypeMismatchError,
    UnknownStepTypeError,
)
from cmdpipe.pipeline.models import Pipeline, PipelineResult, Step, StepResult, StepStatus
from cmdpipe.pipeline.process import ProcessRunner, SubprocessRunner
from cmdpipe.pipeline.registry import StepParser, StepRegistry, default_registry
from cmdpipe.pipeline.resolver import load_pipeline, load_pipeline_file, resolve
from cmdpipe.pipeline.runner import PipelineRunner, execute, make_env, should_run

__all__ = [
    "InvalidFieldError",
    "MalformedDocumentError",
    "MissingFieldError",
    "Pipeline",
    "PipelineConfigError",
    "PipelineError",
    "PipelineResult",
    "PipelineRunner",
    "ProcessRunner",
    "Step",
    "StepError",
    "StepFailedError",
    "StepParser",
    "StepRegistry",
    "StepResult",
    "StepStatus",
    "SubprocessRunner",
    "TypeMismatchError",
    "UnknownStepTypeError",
    "decode",
    "default_registry",
    "execute",
    "load_pipeline",
    "load_pipeline_file",
    "make_env",
    "resolve",
    "should_run",
]
