"""Tests for RealGit command construction."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from codehash.core.git.real import RealGit

URL = "https://github.com/MORpheus-Software/NFA"


def test_clone_is_shallow_by_default(tmp_path: Path) -> None:
    dest = tmp_path / "repo-0"
    with patch("codehash.core.subprocess.subprocess.run") as mock_run:
        RealGit().clone(URL, dest)

    args, kwargs = mock_run.call_args
    assert args[0] == ["git", "clone", "--quiet", "--depth", "1", "--", URL, str(dest)]
    assert kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0"
    assert kwargs["timeout"] is None


def test_clone_full_history_omits_depth(tmp_path: Path) -> None:
    dest = tmp_path / "repo-0"
    with patch("codehash.core.subprocess.subprocess.run") as mock_run:
        RealGit(depth=None, timeout=60.0).clone(URL, dest)

    args, kwargs = mock_run.call_args
    assert args[0] == ["git", "clone", "--quiet", "--", URL, str(dest)]
    assert kwargs["timeout"] == 60.0


def test_clone_failure_raises_runtime_error(tmp_path: Path) -> None:
    with patch("codehash.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.CalledProcessError(
            returncode=128,
            cmd=["git", "clone"],
            stderr="fatal: could not read Username for 'https://github.com'",
        )

        with pytest.raises(RuntimeError) as exc_info:
            RealGit().clone(URL, tmp_path / "repo-0")

    message = str(exc_info.value)
    assert f"Failed to clone repository '{URL}'" in message
    assert "could not read Username" in message
