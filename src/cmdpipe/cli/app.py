"""The ``cmdpipe`` command.

Usage::

    cmdpipe pipeline.yml
    cmdpipe pipeline.yml --dry-run --log-level info
    CMDPIPE_PRINT_RENDERED=1 cmdpipe pipeline.yml

Exits 0 when every step succeeded or was skipped, 1 when the document could
not be resolved or a step failed. Step output goes straight to the
terminal.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from cmdpipe import meta
from cmdpipe.cli.common import console, exit_error
from cmdpipe.exceptions import CmdpipeError
from cmdpipe.logging import LEVELS, get_logger, init_logging
from cmdpipe.pipeline.registry import default_registry
from cmdpipe.pipeline.resolver import read_pipeline_text, resolve
from cmdpipe.pipeline.runner import PipelineRunner
from cmdpipe.templating import ambient_environ, render_pipeline

logger = get_logger(__name__)

app = typer.Typer(
    name=meta.__app_name__,
    help=meta.__description__,
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{meta.__app_name__} {meta.__version__}")
        raise typer.Exit()


def _validate_level(value: str) -> str:
    if value.upper() not in LEVELS:
        raise typer.BadParameter(f"expected one of {', '.join(LEVELS)}")
    return value.upper()


@app.command()
def run(
    pipeline_file: Annotated[
        Path,
        typer.Argument(help="Pipeline document (YAML, templated).", show_default=False),
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", envvar="CMDPIPE_DRY_RUN", help="Log each command instead of running it."),
    ] = False,
    print_rendered: Annotated[
        bool,
        typer.Option(
            "--print-rendered",
            envvar="CMDPIPE_PRINT_RENDERED",
            help="Print the templated document before resolving it.",
        ),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            "-l",
            envvar="CMDPIPE_LOG_LEVEL",
            callback=_validate_level,
            help=f"Logging level ({', '.join(LEVELS)}).",
        ),
    ] = "WARNING",
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = None,
) -> None:
    """Run the steps of PIPELINE_FILE in order."""
    init_logging(log_level)

    try:
        text = read_pipeline_text(pipeline_file)
    except OSError as exc:
        exit_error(f"failed to read pipeline file {pipeline_file}: {exc.strerror or exc}")
    except CmdpipeError as exc:
        exit_error(f"failed to read pipeline file: {exc}")

    environ = ambient_environ()
    try:
        payload = render_pipeline(text, environ, source=str(pipeline_file))
        if print_rendered:
            console.print(payload, markup=False, soft_wrap=True)
        pipeline = resolve(payload, default_registry())
    except CmdpipeError as exc:
        exit_error(f"failed to parse pipeline file: {exc}")
    logger.debug("Loaded %s (%d steps)", pipeline_file, len(pipeline))

    try:
        PipelineRunner(pipeline).run(dry_run=dry_run)
    except CmdpipeError as exc:
        exit_error(str(exc))


__all__ = ["app"]
