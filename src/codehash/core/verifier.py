"""Ordered digest computation over a set of artifact sources.

Sources are folded into a single digest engine strictly in list order. With
more than one worker, sources are fetched concurrently but each one is
buffered and folded only after every earlier source, so the digest is the
same as a sequential run. The first failure aborts the run and no digest is
produced.
"""

import errno
import logging
import shutil
import tempfile
import threading
from collections.abc import Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import closing, contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO

from codehash.core.digest import DEFAULT_ALGORITHM, IncrementalDigestEngine, normalize_hex_digest
from codehash.core.sources import READ_CHUNK_SIZE, ArtifactSource
from codehash.errors import ConfigurationError, ScratchDirectoryError, VerificationMismatch

logger = logging.getLogger(__name__)

# Per-source buffers above this size spill to disk inside the run directory
SPOOL_MAX_BYTES = 8 * 1024 * 1024
RUN_DIR_PREFIX = "codehash-run-"


class Verdict(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    UNCHECKED = "unchecked"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one verifier run.

    expected is None when the caller only asked for a digest.
    """

    digest: str
    expected: str | None
    source_count: int
    bytes_hashed: int

    @property
    def verdict(self) -> Verdict:
        if self.expected is None:
            return Verdict.UNCHECKED
        if self.digest == self.expected:
            return Verdict.MATCH
        return Verdict.MISMATCH

    @property
    def matched(self) -> bool:
        return self.verdict is Verdict.MATCH

    def raise_for_mismatch(self) -> "VerificationResult":
        """Return self, or raise VerificationMismatch if the digests differ."""
        if self.expected is not None and self.digest != self.expected:
            raise VerificationMismatch(expected=self.expected, actual=self.digest)
        return self


class _Cancelled(Exception):
    """Raised inside a worker when the run has already failed."""


# Concurrent runs may remove a shared root between our mkdir and mkdtemp
CREATE_ATTEMPTS = 3


def _missing_directories(path: Path) -> list[Path]:
    """path and its missing ancestors, deepest first."""
    missing: list[Path] = []
    for candidate in (path, *path.parents):
        if candidate.exists():
            break
        missing.append(candidate)
    return missing


def _create_run_dir(scratch_root: Path) -> Path:
    attempt = 1
    while True:
        try:
            scratch_root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=RUN_DIR_PREFIX, dir=scratch_root))
        except FileNotFoundError as e:
            if attempt >= CREATE_ATTEMPTS:
                raise ScratchDirectoryError(scratch_root, "create", e.strerror or str(e)) from e
            logger.debug("Scratch root %s vanished during setup, retrying", scratch_root)
            attempt += 1
        except OSError as e:
            raise ScratchDirectoryError(scratch_root, "create", e.strerror or str(e)) from e


def _remove_if_empty(directory: Path) -> bool:
    """Remove directory unless another run still uses it; False if it was kept."""
    try:
        directory.rmdir()
    except FileNotFoundError:
        return True
    except OSError as e:
        if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
            return False
        raise ScratchDirectoryError(directory, "remove", e.strerror or str(e)) from e
    return True


@contextmanager
def run_directory(scratch_root: Path) -> Iterator[Path]:
    """Create a private run directory and remove it on exit.

    Directories created on the way to scratch_root are removed too, but only
    once no other run is using them.

    Raises:
        ScratchDirectoryError: If the directory cannot be created or removed
    """
    created = _missing_directories(scratch_root)
    run_dir = _create_run_dir(scratch_root)

    logger.debug("Run directory: %s (created: %s)", run_dir, [str(path) for path in created])
    try:
        yield run_dir
    finally:
        try:
            shutil.rmtree(run_dir)
        except OSError as e:
            raise ScratchDirectoryError(run_dir, "remove", e.strerror or str(e)) from e
        for directory in created:
            if not _remove_if_empty(directory):
                logger.debug("Keeping %s, still in use by another run", directory)
                break


class ArtifactSetVerifier:
    """Compute the combined digest of an ordered list of sources.

    One instance may be reused for several runs; each run owns its own
    digest engine and run directory.
    """

    def __init__(
        self,
        scratch_root: Path,
        *,
        max_workers: int = 1,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {max_workers}")
        self._scratch_root = scratch_root
        self._max_workers = max_workers
        self._algorithm = algorithm

    def run(
        self, sources: Sequence[ArtifactSource], expected: str | None = None
    ) -> VerificationResult:
        """Hash every source in order and compare with expected if given.

        Args:
            sources: Sources in digest order
            expected: Optional commitment, hex with or without ``0x``

        Returns:
            VerificationResult; a mismatch is a result, not an exception

        Raises:
            ConfigurationError: Empty source list or malformed expected digest
            NetworkError: A source could not be fetched or cloned
            FilesystemError: A source's scratch storage failed
            ScratchDirectoryError: The run directory could not be managed
        """
        if not sources:
            raise ConfigurationError("At least one artifact source is required")

        engine = IncrementalDigestEngine(self._algorithm)
        expected_digest = None
        if expected is not None:
            expected_digest = normalize_hex_digest(
                expected, size=engine.digest_size, label="expected digest"
            )

        with run_directory(self._scratch_root) as run_dir:
            if self._max_workers > 1 and len(sources) > 1:
                self._fold_concurrently(sources, run_dir, engine)
            else:
                self._fold_sequentially(sources, run_dir, engine)
            digest = engine.finalize()

        logger.debug(
            "Digest %s over %d sources (%d bytes)", digest, len(sources), engine.bytes_consumed
        )
        return VerificationResult(
            digest=digest,
            expected=expected_digest,
            source_count=len(sources),
            bytes_hashed=engine.bytes_consumed,
        )

    def _fold_sequentially(
        self, sources: Sequence[ArtifactSource], run_dir: Path, engine: IncrementalDigestEngine
    ) -> None:
        for index, source in enumerate(sources):
            logger.debug("Resolving source #%d: %s", index, source.reference)
            with closing(source.resolve(index, run_dir)) as chunks:
                for chunk in chunks:
                    engine.update(chunk)

    def _fold_concurrently(
        self, sources: Sequence[ArtifactSource], run_dir: Path, engine: IncrementalDigestEngine
    ) -> None:
        cancelled = threading.Event()

        def buffer_source(index: int, source: ArtifactSource) -> IO[bytes]:
            if cancelled.is_set():
                raise _Cancelled()
            buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES, dir=run_dir)
            try:
                with closing(source.resolve(index, run_dir)) as chunks:
                    for chunk in chunks:
                        if cancelled.is_set():
                            raise _Cancelled()
                        buffer.write(chunk)
            except BaseException:
                buffer.close()
                raise
            buffer.seek(0)
            return buffer

        def cancel_on_failure(future: Future[IO[bytes]]) -> None:
            if future.cancelled():
                return
            error = future.exception()
            if error is not None and not isinstance(error, _Cancelled):
                cancelled.set()

        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(sources)),
            thread_name_prefix="codehash-source",
        )
        futures = [
            pool.submit(buffer_source, index, source) for index, source in enumerate(sources)
        ]
        for future in futures:
            future.add_done_callback(cancel_on_failure)
        try:
            for index, future in enumerate(futures):
                logger.debug("Folding source #%d: %s", index, sources[index].reference)
                try:
                    buffer = future.result()
                except _Cancelled:
                    raise _first_failure(futures) from None
                with buffer:
                    while chunk := buffer.read(READ_CHUNK_SIZE):
                        engine.update(chunk)
        except BaseException:
            cancelled.set()
            raise
        finally:
            # Running workers observe the event and clean up before shutdown returns
            pool.shutdown(wait=True, cancel_futures=True)
            _close_unconsumed(futures)


def _first_failure(futures: list[Future[IO[bytes]]]) -> BaseException:
    """Lowest-index failure that caused the other sources to be cancelled."""
    wait(futures)
    for future in futures:
        if future.cancelled():
            continue
        error = future.exception()
        if error is not None and not isinstance(error, _Cancelled):
            return error
    return RuntimeError("sources were cancelled but no failure was recorded")


def _close_unconsumed(futures: list[Future[IO[bytes]]]) -> None:
    for future in futures:
        if future.done() and not future.cancelled() and future.exception() is None:
            future.result().close()
