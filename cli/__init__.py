from cli.cli import cli
from cli import filter_commands  # noqa: F401
