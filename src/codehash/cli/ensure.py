"""CLI error handling utilities with styled output.

All hard failures use the red "Error:" prefix and exit with code 1.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from codehash.cli.output import error_output
from codehash.errors import CodehashError

logger = logging.getLogger(__name__)


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            error_output(error_message)
            raise SystemExit(1)

    @staticmethod
    @contextmanager
    def no_hard_failure() -> Iterator[None]:
        """Turn codehash errors raised in the block into a styled exit 1.

        The full chain (e.g. a cleanup failure raised while another error
        was propagating) is printed so teardown problems are never hidden.

        Raises:
            SystemExit: If a CodehashError escapes the block
        """
        try:
            yield
        except CodehashError as e:
            logger.debug("Exception caught: %s: %s", type(e).__name__, str(e))
            logger.debug("Exception details:", exc_info=True)
            error_output(str(e))
            primary = _interrupted_error(e)
            if primary is not None:
                error_output(f"while handling: {primary}")
            raise SystemExit(1) from None


def _interrupted_error(error: BaseException) -> CodehashError | None:
    """Find an earlier codehash error that error was raised on top of."""
    seen: set[int] = {id(error)}
    current = error.__context__
    while current is not None and id(current) not in seen:
        if isinstance(current, CodehashError):
            return current
        seen.add(id(current))
        current = current.__context__
    return None
