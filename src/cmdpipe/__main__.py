"""Entry point for ``python -m cmdpipe``."""

from cmdpipe.cli.app import app


def main() -> None:
    """Run the cmdpipe CLI."""
    app(prog_name="cmdpipe")


if __name__ == "__main__":
    main()
