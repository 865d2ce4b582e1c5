"""``python -m kubealert``: same commands as the ``kubealert`` script."""

from kubealert.cli import cli

cli(prog_name="kubealert")
