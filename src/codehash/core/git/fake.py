"""Fake Git implementation for testing."""

from pathlib import Path

from codehash.core.git.abc import Git


class FakeGit(Git):
    """In-memory fake that materializes predefined trees on clone.

    All state is provided via constructor. Clone calls are recorded for
    assertions.

    Examples:
        >>> git = FakeGit(repos={"https://example.com/a.git": {"README": b"hi"}})
        >>> git.clone("https://example.com/a.git", tmp_path / "repo-0")
        >>> (tmp_path / "repo-0" / "README").read_bytes()
        b'hi'
    """

    def __init__(
        self,
        *,
        repos: dict[str, dict[str, bytes]] | None = None,
        failing_urls: set[str] | None = None,
    ) -> None:
        """Create FakeGit.

        Args:
            repos: Mapping of URL to tree, where a tree maps POSIX relative
                paths to file contents
            failing_urls: URLs whose clone raises RuntimeError
        """
        self._repos = repos or {}
        self._failing_urls = failing_urls or set()
        self._clone_calls: list[tuple[str, Path]] = []

    @property
    def clone_calls(self) -> list[tuple[str, Path]]:
        """(url, dest) pairs passed to clone(), for test assertions."""
        return list(self._clone_calls)

    def clone(self, url: str, dest: Path) -> None:
        self._clone_calls.append((url, dest))

        if url in self._failing_urls:
            # Leave a partial checkout behind like an interrupted clone would
            dest.mkdir(parents=True)
            (dest / ".git").mkdir()
            raise RuntimeError(f"Failed to clone repository '{url}'\nExit code: 128")

        if url not in self._repos:
            raise RuntimeError(
                f"Failed to clone repository '{url}'\nstderr: fatal: repository not found"
            )

        dest.mkdir(parents=True)
        (dest / ".git").mkdir()
        (dest / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        for rel_path, content in self._repos[url].items():
            target = dest / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
