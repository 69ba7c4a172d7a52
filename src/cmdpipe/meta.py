"""Package metadata for cmdpipe."""

__app_name__ = "cmdpipe"
__version__ = "0.3.0"
__description__ = "Run templated command pipelines declared in YAML"
__license_type__ = "MIT"

__all__ = [
    "__app_name__",
    "__description__",
    "__license_type__",
    "__version__",
]
