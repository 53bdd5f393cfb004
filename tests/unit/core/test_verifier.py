"""Tests for ArtifactSetVerifier: ordering, cleanup and verdicts."""

import hashlib
import threading
from pathlib import Path

import pytest

from codehash.core.digest import EMPTY_SHA256
from codehash.core.http.fake import FakeHttpClient
from codehash.core.sources import RemoteFileSource, build_sources
from codehash.core.verifier import RUN_DIR_PREFIX, ArtifactSetVerifier, Verdict
from codehash.errors import (
    ConfigurationError,
    NetworkError,
    ScratchDirectoryError,
    VerificationMismatch,
)
from tests.fakes.artifacts import (
    BlockingSource,
    FailingSource,
    StaticSource,
    create_test_context,
    scratch_entries,
)

URI_A = "https://cdn.example.com/a.py"
URI_B = "https://cdn.example.com/b.py"
URI_C = "https://cdn.example.com/c.py"


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


# ============================================================================
# Digest semantics
# ============================================================================


def test_two_files_hash_as_their_concatenation(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"A", URI_B: b"B"})

    result = ArtifactSetVerifier(tmp_path).run(build_sources([URI_A, URI_B], "file", ctx))

    assert result.digest == _sha256(b"AB")
    assert result.source_count == 2
    assert result.bytes_hashed == 2
    assert result.verdict is Verdict.UNCHECKED


@pytest.mark.parametrize("chunk_size", [None, 1, 3, 4096])
def test_digest_does_not_depend_on_transport_chunking(
    tmp_path: Path, chunk_size: int | None
) -> None:
    body_a = bytes(range(256)) * 5
    body_b = b"second artifact\n" * 40
    ctx = create_test_context(bodies={URI_A: body_a, URI_B: body_b}, chunk_size=chunk_size)

    result = ArtifactSetVerifier(tmp_path).run(build_sources([URI_A, URI_B], "file", ctx))

    assert result.digest == _sha256(body_a + body_b)


def test_same_inputs_give_same_digest(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"alpha", URI_B: b"beta"})
    verifier = ArtifactSetVerifier(tmp_path)

    first = verifier.run(build_sources([URI_A, URI_B], "file", ctx))
    second = verifier.run(build_sources([URI_A, URI_B], "file", ctx))

    assert first.digest == second.digest


def test_source_order_changes_digest(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"alpha", URI_B: b"beta"})
    verifier = ArtifactSetVerifier(tmp_path)

    forward = verifier.run(build_sources([URI_A, URI_B], "file", ctx))
    reverse = verifier.run(build_sources([URI_B, URI_A], "file", ctx))

    assert forward.digest != reverse.digest


def test_single_empty_file_hashes_to_empty_digest(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b""})

    result = ArtifactSetVerifier(tmp_path).run(build_sources([URI_A], "file", ctx))

    assert result.digest == EMPTY_SHA256
    assert result.bytes_hashed == 0


def test_files_and_repositories_mix_in_list_order(tmp_path: Path) -> None:
    repo = "https://github.com/org/app"
    ctx = create_test_context(bodies={URI_A: b"head-"}, repos={repo: {"x": b"X", "y": b"Y"}})

    result = ArtifactSetVerifier(tmp_path).run(build_sources([URI_A, repo], "auto", ctx))

    assert result.digest == _sha256(b"head-XY")


def test_empty_source_list_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="At least one"):
        ArtifactSetVerifier(tmp_path).run([])


def test_worker_count_below_one_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="max_workers"):
        ArtifactSetVerifier(tmp_path, max_workers=0)


# ============================================================================
# Verdicts
# ============================================================================


def test_expected_digest_match_accepts_prefix_and_case(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"A", URI_B: b"B"})
    expected = "0x" + _sha256(b"AB").upper()

    result = ArtifactSetVerifier(tmp_path).run(
        build_sources([URI_A, URI_B], "file", ctx), expected=expected
    )

    assert result.verdict is Verdict.MATCH
    assert result.matched
    assert result.expected == _sha256(b"AB")
    assert result.raise_for_mismatch() is result


def test_mismatch_is_a_result_not_an_error(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"tampered"})
    committed = _sha256(b"original")

    result = ArtifactSetVerifier(tmp_path).run(
        build_sources([URI_A], "file", ctx), expected=committed
    )

    assert result.verdict is Verdict.MISMATCH
    assert not result.matched
    assert result.digest == _sha256(b"tampered")

    with pytest.raises(VerificationMismatch) as exc_info:
        result.raise_for_mismatch()
    assert exc_info.value.expected == committed
    assert exc_info.value.actual == _sha256(b"tampered")


def test_malformed_expected_digest_fails_before_any_fetch(tmp_path: Path) -> None:
    http = FakeHttpClient(bodies={URI_A: b"A"})
    scratch_root = tmp_path / "scratch"

    with pytest.raises(ConfigurationError, match="expected digest"):
        ArtifactSetVerifier(scratch_root).run([RemoteFileSource(URI_A, http)], expected="abc")

    assert http.fetch_calls == []
    assert not scratch_root.exists()


# ============================================================================
# Scratch lifecycle
# ============================================================================


def test_success_leaves_scratch_root_empty(tmp_path: Path) -> None:
    sources = [StaticSource("one", b"1"), StaticSource("two", b"2")]

    result = ArtifactSetVerifier(tmp_path).run(sources)

    assert result.digest == _sha256(b"12")
    assert scratch_entries(tmp_path) == []
    # Sources wrote into the private run directory, not the root itself
    assert all(path.parent.name.startswith(RUN_DIR_PREFIX) for path in sources[0].scratch_paths)


def test_scratch_root_created_by_run_is_removed(tmp_path: Path) -> None:
    scratch_root = tmp_path / "nested" / "scratch"

    ArtifactSetVerifier(scratch_root).run([StaticSource("one", b"1")])

    assert not (tmp_path / "nested").exists()


def test_existing_scratch_root_is_kept(tmp_path: Path) -> None:
    scratch_root = tmp_path / "scratch"
    scratch_root.mkdir()
    (scratch_root / "unrelated.txt").write_text("keep me", encoding="utf-8")

    ArtifactSetVerifier(scratch_root).run([StaticSource("one", b"1")])

    assert scratch_entries(scratch_root) == [scratch_root / "unrelated.txt"]


def test_failure_on_second_of_three_stops_and_cleans_up(tmp_path: Path) -> None:
    ctx = create_test_context(bodies={URI_A: b"A", URI_C: b"C"})

    with pytest.raises(NetworkError) as exc_info:
        ArtifactSetVerifier(tmp_path).run(build_sources([URI_A, URI_B, URI_C], "file", ctx))

    assert exc_info.value.index == 1
    assert exc_info.value.reference == URI_B
    assert ctx.http.fetch_calls == [URI_A, URI_B]  # type: ignore[attr-defined]
    assert scratch_entries(tmp_path) == []


def test_failing_source_that_leaks_scratch_is_still_reclaimed(tmp_path: Path) -> None:
    third = StaticSource("third", b"3")
    sources = [StaticSource("first", b"1"), FailingSource("second", leak=True), third]

    with pytest.raises(NetworkError):
        ArtifactSetVerifier(tmp_path).run(sources)

    assert third.scratch_paths == []
    assert scratch_entries(tmp_path) == []


def test_unusable_scratch_root_raises_scratch_directory_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ScratchDirectoryError) as exc_info:
        ArtifactSetVerifier(blocker / "scratch").run([StaticSource("one", b"1")])

    assert exc_info.value.action == "create"


# ============================================================================
# Concurrent fetching
# ============================================================================


def test_concurrent_run_matches_sequential_digest(tmp_path: Path) -> None:
    bodies = {URI_A: b"a" * 1000, URI_B: b"b" * 10, URI_C: b"c" * 5000}
    ctx = create_test_context(bodies=bodies, chunk_size=7)
    references = [URI_C, URI_A, URI_B]

    sequential = ArtifactSetVerifier(tmp_path).run(build_sources(references, "file", ctx))
    concurrent = ArtifactSetVerifier(tmp_path, max_workers=3).run(
        build_sources(references, "file", ctx)
    )

    assert concurrent.digest == sequential.digest
    assert concurrent.digest == _sha256(b"c" * 5000 + b"a" * 1000 + b"b" * 10)
    assert scratch_entries(tmp_path) == []


def test_concurrent_failure_reports_failing_source_and_cleans_up(tmp_path: Path) -> None:
    sources = [StaticSource("first", b"1"), FailingSource("second"), StaticSource("third", b"3")]

    with pytest.raises(NetworkError) as exc_info:
        ArtifactSetVerifier(tmp_path, max_workers=3).run(sources)

    assert exc_info.value.index == 1
    assert scratch_entries(tmp_path) == []


def test_concurrent_failure_cancels_in_flight_sources(tmp_path: Path) -> None:
    release = threading.Event()
    blocking = BlockingSource("slow", release)
    # Unblocks the source if cancellation never reaches it, so the test fails instead of hanging
    watchdog = threading.Timer(5.0, release.set)
    watchdog.start()
    try:
        with pytest.raises(NetworkError):
            ArtifactSetVerifier(tmp_path, max_workers=2).run([FailingSource("bad"), blocking])
    finally:
        watchdog.cancel()

    assert not release.is_set()
    assert blocking.closed.is_set() or not blocking.started.is_set()
    assert scratch_entries(tmp_path) == []


def test_failure_after_slow_source_cancels_it_early(tmp_path: Path) -> None:
    release = threading.Event()
    blocking = BlockingSource("slow", release)
    watchdog = threading.Timer(5.0, release.set)
    watchdog.start()
    try:
        with pytest.raises(NetworkError) as exc_info:
            ArtifactSetVerifier(tmp_path, max_workers=2).run([blocking, FailingSource("bad")])
    finally:
        watchdog.cancel()

    assert exc_info.value.index == 1
    assert exc_info.value.reference == "bad"
    assert not release.is_set()
    assert blocking.closed.is_set()
    assert scratch_entries(tmp_path) == []


def test_unchecked_result_never_raises_mismatch(tmp_path: Path) -> None:
    result = ArtifactSetVerifier(tmp_path).run([StaticSource("one", b"1")])

    assert result.verdict is Verdict.UNCHECKED
    assert result.raise_for_mismatch() is result


# ============================================================================
# Overlapping runs on a shared scratch root
# ============================================================================


def _run_in_thread(
    scratch_root: Path, source: BlockingSource, errors: dict[str, BaseException]
) -> threading.Thread:
    def target() -> None:
        try:
            ArtifactSetVerifier(scratch_root).run([source])
        except BaseException as e:
            errors[source.reference] = e

    thread = threading.Thread(target=target)
    thread.start()
    assert source.started.wait(timeout=5.0)
    return thread


def test_run_that_created_root_keeps_it_while_another_run_uses_it(tmp_path: Path) -> None:
    scratch_root = tmp_path / "codehash"
    release_a = threading.Event()
    release_b = threading.Event()
    errors: dict[str, BaseException] = {}

    first = _run_in_thread(scratch_root, BlockingSource("A", release_a), errors)
    second = _run_in_thread(scratch_root, BlockingSource("B", release_b), errors)
    release_a.set()
    first.join(timeout=5.0)
    assert scratch_root.exists()
    release_b.set()
    second.join(timeout=5.0)

    assert errors == {}
    assert scratch_entries(scratch_root) == []


def test_created_root_removed_by_last_run_that_created_it(tmp_path: Path) -> None:
    scratch_root = tmp_path / "codehash"
    release = threading.Event()
    errors: dict[str, BaseException] = {}

    blocked = _run_in_thread(scratch_root, BlockingSource("A", release), errors)
    ArtifactSetVerifier(scratch_root).run([StaticSource("B", b"b")])
    assert scratch_root.exists()
    release.set()
    blocked.join(timeout=5.0)

    assert errors == {}
    assert not scratch_root.exists()
