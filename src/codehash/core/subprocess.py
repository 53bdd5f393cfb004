"""Subprocess execution with enriched error context.

Integration classes run external tools (git) through this wrapper so that a
failure surfaces as a RuntimeError naming the operation, the command line,
the exit code and whatever the tool printed.
"""

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def _decode(stream: str | bytes | None) -> str:
    if not stream:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace").strip()
    return stream.strip()


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command, raising RuntimeError with context if it fails.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description, e.g. "clone repository"
        cwd: Working directory for the command
        env: Full environment for the child process (inherits when None)
        timeout: Seconds before the command is killed

    Returns:
        CompletedProcess with captured text output

    Raises:
        RuntimeError: If the command exits non-zero, times out, or is not found
    """
    cmd_str = " ".join(str(arg) for arg in cmd)
    logger.debug("Running: %s (cwd=%s)", cmd_str, cwd)

    try:
        return subprocess.run(
            list(cmd),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=True,
            timeout=timeout,
        )

    except subprocess.CalledProcessError as e:
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        stdout_text = _decode(e.stdout)
        if stdout_text:
            error_msg += f"\nstdout: {stdout_text}"

        stderr_text = _decode(e.stderr)
        if stderr_text:
            error_msg += f"\nstderr: {stderr_text}"

        raise RuntimeError(error_msg) from e

    except subprocess.TimeoutExpired as e:
        error_msg = f"Timed out after {e.timeout}s trying to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        raise RuntimeError(error_msg) from e

    except FileNotFoundError as e:
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise RuntimeError(error_msg) from e
