"""Output helpers for CLI commands with clear intent.

user_output: human-facing messages on stderr
machine_output: results meant for pipes (digests, JSON, verdicts) on stdout
"""

import click


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a human-facing message to stderr."""
    click.echo(message, err=True, nl=nl)


def machine_output(message: str, nl: bool = True) -> None:
    """Write a machine-readable result to stdout."""
    click.echo(message, nl=nl)


def error_output(message: str) -> None:
    """Write a message with the red "Error: " prefix to stderr."""
    user_output(click.style("Error: ", fg="red") + message)
