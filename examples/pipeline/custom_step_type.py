"""Register a custom step type and run a pipeline using it.

Usage:
    python examples/pipeline/custom_step_type.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cmdpipe.logging import init_logging
from cmdpipe.pipeline import (
    MissingFieldError,
    PipelineRunner,
    Step,
    StepFailedError,
    decode,
    default_registry,
    load_pipeline,
)

PIPELINE = """
steps:
  - name: version
    type: python
    code: "import sys; print(sys.version.split()[0])"
  - name: greet
    command: /bin/echo
    args: ["hello from ${USER:-nobody}"]
"""


@dataclass(frozen=True)
class PythonSnippet:
    """Fields of the ``python`` step type."""

    code: str = ""
    interpreter: str = "python3"


def parse_python_step(record: Mapping[str, Any]) -> Step:
    """Run a Python snippet with ``<interpreter> -c <code>``."""
    snippet = decode(record, PythonSnippet)
    if not snippet.code:
        raise MissingFieldError("code")
    return Step(command=snippet.interpreter, args=("-c", snippet.code), env={"PATH": "/usr/local/bin:/usr/bin:/bin"})


def main() -> None:
    """Resolve and run the pipeline with the extra step type."""
    init_logging("INFO")
    registry = default_registry().register("python", parse_python_step)
    pipeline = load_pipeline(PIPELINE, registry=registry)

    try:
        result = PipelineRunner(pipeline).run()
    except StepFailedError as e:
        print(f"Aborted at step '{e.step_name}': {e.reason}")
        return
    for step in result.results:
        print(f"  [{step.status.value:>7}] {step.name}")


if __name__ == "__main__":
    main()
