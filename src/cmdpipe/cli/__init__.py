"""Command-line interface for cmdpipe."""

from cmdpipe.cli.app import app

__all__ = ["app"]
