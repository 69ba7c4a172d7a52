"""Base exceptions shared by every cmdpipe module.

Exception hierarchy::

    CmdpipeError
        TemplateError (variable substitution or template rendering failed)
        PipelineError (see ``cmdpipe.pipeline.exceptions``)
"""

from __future__ import annotations


class CmdpipeError(Exception):
    """Root of the cmdpipe exception hierarchy.

    The CLI catches this class, prints the message and exits with status 1.
    """


class TemplateError(CmdpipeError):
    """The pipeline document could not be templated.

    Attributes:
        source: Where the template came from (file path), if known.
        reason: Description of the failure.
    """

    def __init__(self, reason: str, *, source: str | None = None) -> None:
        """Initialize TemplateError.

        Args:
            reason: Description of the failure.
            source: Template origin used in the message.
        """
        where = f" in {source}" if source else ""
        super().__init__(f"Template error{where}: {reason}")
        self.source = source
        self.reason = reason


__all__ = [
    "CmdpipeError",
    "TemplateError",
]
