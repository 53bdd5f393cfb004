"""Artifact sources: references resolved into ordered byte streams.

Each source resolves one reference (a remote file URI or a repository URL)
into an iterator of byte chunks. Scratch storage created during resolution
lives under the scratch directory handed in by the caller and is removed in
the generator's finally block, so it never outlives the resolution call as
long as the caller closes the iterator (see contextlib.closing).

Repository digest contract:
- every regular file in the working tree is included, in ascending order of
  its POSIX path relative to the clone root (compared by code point)
- directories named ``.git`` are excluded at any depth
- symlinks and other non-regular files are skipped
- only raw file bytes are hashed; names and separators are not
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import closing
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from codehash.core.context import CodehashContext
from codehash.core.git.abc import Git
from codehash.core.http.abc import HttpClient
from codehash.errors import ConfigurationError, FilesystemError, NetworkError

logger = logging.getLogger(__name__)

SourceKind = Literal["file", "repo"]
KindOption = Literal["file", "repo", "auto"]

READ_CHUNK_SIZE = 64 * 1024
GIT_METADATA_DIR = ".git"
REPOSITORY_HOSTS = frozenset({"github.com", "gitlab.com", "bitbucket.org"})
REPOSITORY_SCHEMES = frozenset({"ssh", "git", "git+ssh", "git+https"})


class ArtifactSource(ABC):
    """A single artifact reference resolvable to an ordered byte stream."""

    kind: SourceKind

    def __init__(self, reference: str) -> None:
        self.reference = reference

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.reference!r})"

    @abstractmethod
    def resolve(self, index: int, scratch_dir: Path) -> Iterator[bytes]:
        """Yield the source's bytes in order, cleaning up scratch state.

        Args:
            index: Position of this source in the run; names scratch entries
                and appears in every error message
            scratch_dir: Existing directory owned by the current run

        Raises:
            NetworkError: Fetch or clone failure
            FilesystemError: Scratch write, read or cleanup failure
        """
        ...


def _describe_os_error(action: str, path: Path, error: OSError) -> str:
    return f"cannot {action} {path}: {error.strerror or error}"


def _read_chunks(index: int, reference: str, path: Path) -> Iterator[bytes]:
    try:
        handle = path.open("rb")
    except OSError as e:
        raise FilesystemError(index, reference, _describe_os_error("open", path, e)) from e
    with handle:
        while True:
            try:
                chunk = handle.read(READ_CHUNK_SIZE)
            except OSError as e:
                raise FilesystemError(index, reference, _describe_os_error("read", path, e)) from e
            if not chunk:
                return
            yield chunk


class RemoteFileSource(ArtifactSource):
    """A file fetched over HTTP(S).

    With persist enabled the body is first written to ``file-<index>`` in
    the scratch directory and read back from disk; the file is deleted
    before resolution ends.
    """

    kind: SourceKind = "file"

    def __init__(self, reference: str, http: HttpClient, *, persist: bool = True) -> None:
        super().__init__(reference)
        self._http = http
        self._persist = persist

    def _stream(self, index: int) -> Iterator[bytes]:
        try:
            yield from self._http.stream(self.reference)
        except RuntimeError as e:
            raise NetworkError(index, self.reference, str(e)) from e

    def _download(self, index: int, scratch_file: Path) -> int:
        try:
            handle = scratch_file.open("wb")
        except OSError as e:
            raise FilesystemError(
                index, self.reference, _describe_os_error("create", scratch_file, e)
            ) from e

        written = 0
        with handle, closing(self._stream(index)) as chunks:
            for chunk in chunks:
                try:
                    handle.write(chunk)
                except OSError as e:
                    raise FilesystemError(
                        index, self.reference, _describe_os_error("write", scratch_file, e)
                    ) from e
                written += len(chunk)
        return written

    def resolve(self, index: int, scratch_dir: Path) -> Iterator[bytes]:
        if not self._persist:
            logger.debug("Streaming source #%d without scratch copy: %s", index, self.reference)
            yield from self._stream(index)
            return

        scratch_file = scratch_dir / f"file-{index}"
        try:
            size = self._download(index, scratch_file)
            logger.debug("Downloaded source #%d (%d bytes) to %s", index, size, scratch_file)
            yield from _read_chunks(index, self.reference, scratch_file)
        finally:
            try:
                scratch_file.unlink(missing_ok=True)
            except OSError as e:
                raise FilesystemError(
                    index, self.reference, _describe_os_error("delete", scratch_file, e)
                ) from e


def list_repository_files(root: Path) -> list[Path]:
    """Return every regular file under root in canonical digest order.

    Raises:
        OSError: If any directory cannot be listed
    """

    def _raise(error: OSError) -> None:
        raise error

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = [name for name in dirnames if name != GIT_METADATA_DIR]
        for name in filenames:
            path = Path(dirpath) / name
            if path.is_symlink() or not path.is_file():
                continue
            files.append(path)

    return sorted(files, key=lambda path: path.relative_to(root).as_posix())


class RepositorySource(ArtifactSource):
    """A source repository cloned into ``repo-<index>`` and hashed file by file."""

    kind: SourceKind = "repo"

    def __init__(self, reference: str, git: Git) -> None:
        super().__init__(reference)
        self._git = git

    def resolve(self, index: int, scratch_dir: Path) -> Iterator[bytes]:
        clone_dir = scratch_dir / f"repo-{index}"
        try:
            try:
                self._git.clone(self.reference, clone_dir)
            except RuntimeError as e:
                raise NetworkError(index, self.reference, str(e)) from e

            try:
                files = list_repository_files(clone_dir)
            except OSError as e:
                raise FilesystemError(
                    index, self.reference, _describe_os_error("walk", clone_dir, e)
                ) from e
            logger.debug("Hashing %d files from source #%d: %s", len(files), index, self.reference)

            for path in files:
                yield from _read_chunks(index, self.reference, path)
        finally:
            if clone_dir.exists():
                try:
                    shutil.rmtree(clone_dir)
                except OSError as e:
                    raise FilesystemError(
                        index, self.reference, _describe_os_error("remove", clone_dir, e)
                    ) from e


def detect_source_kind(reference: str) -> SourceKind:
    """Guess whether a reference names a repository or a plain file.

    Repositories: scp-style ``git@host:path``, ssh/git schemes, a ``.git``
    suffix, or an ``https://<known host>/<owner>/<name>`` URL.
    """
    if reference.startswith("git@"):
        return "repo"

    parsed = urlparse(reference)
    if parsed.scheme in REPOSITORY_SCHEMES:
        return "repo"

    path = parsed.path.rstrip("/")
    if path.endswith(".git"):
        return "repo"

    segments = [segment for segment in path.split("/") if segment]
    if parsed.scheme in ("http", "https") and parsed.hostname in REPOSITORY_HOSTS:
        if len(segments) == 2:
            return "repo"

    return "file"


def build_source(reference: str, kind: KindOption, ctx: CodehashContext) -> ArtifactSource:
    """Create the source for one reference, detecting the kind if asked."""
    if not reference:
        raise ConfigurationError("Artifact reference cannot be empty")

    resolved_kind = detect_source_kind(reference) if kind == "auto" else kind
    if resolved_kind == "repo":
        return RepositorySource(reference, ctx.git)
    return RemoteFileSource(reference, ctx.http, persist=ctx.config.persist_downloads)


def build_sources(
    references: Iterable[str], kind: KindOption, ctx: CodehashContext
) -> list[ArtifactSource]:
    """Create sources for references, preserving their order."""
    return [build_source(reference, kind, ctx) for reference in references]
