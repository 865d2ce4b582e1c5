"""Command-line entry point; ``cli`` is installed as the ``kubealert`` script."""

from kubealert.cli.main import cli

__all__ = ["cli"]
