"""Production Git implementation using subprocess."""

import os
from pathlib import Path

from codehash.core.git.abc import Git
from codehash.core.subprocess import run_subprocess_with_context


class RealGit(Git):
    """Runs the git CLI.

    Interactive credential prompts are disabled so a private or missing
    repository fails fast instead of blocking the run.
    """

    def __init__(self, *, depth: int | None = 1, timeout: float | None = None) -> None:
        self._depth = depth
        self._timeout = timeout

    def clone(self, url: str, dest: Path) -> None:
        cmd = ["git", "clone", "--quiet"]
        if self._depth is not None:
            cmd.extend(["--depth", str(self._depth)])
        cmd.extend(["--", url, str(dest)])

        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"

        run_subprocess_with_context(
            cmd,
            operation_context=f"clone repository '{url}'",
            env=env,
            timeout=self._timeout,
        )
