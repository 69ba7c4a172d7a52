"""Shared CLI helpers."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console

console = Console(highlight=False)


def exit_error(message: str, code: int = 1) -> NoReturn:
    """Print ``message`` to standard output and exit with ``code``."""
    console.print(message, markup=False, soft_wrap=True)
    raise typer.Exit(code)


__all__ = [
    "console",
    "exit_error",
]
