"""cmdpipe: run templated command pipelines declared in YAML."""

from cmdpipe.meta import __app_name__, __version__

__all__ = [
    "__app_name__",
    "__version__",
]
