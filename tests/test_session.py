"""Tests for passwordsafe_utils.session module."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from conftest import FakeSessionTransport
from passwordsafe_utils.passwordsafe_api import (
    ApiError,
    AuthenticationError,
    Session,
    SessionNotAcquiredError,
)
from passwordsafe_utils.session import SessionManager

THREADS = 16


def _assert_unlocked(sessions: SessionManager) -> None:
    assert not sessions._lock.locked()
    assert not sessions._sign_in_lock.locked()
    assert not sessions._sign_out_lock.locked()


def test_acquire_signs_in_once(fake_transport: FakeSessionTransport) -> None:
    sessions = SessionManager(fake_transport)

    first = sessions.acquire()
    second = sessions.acquire()

    assert first is second
    assert fake_transport.sign_in_calls == 1
    assert sessions.reference_count == 2
    assert sessions.current_session is first


def test_concurrent_acquire_single_sign_in(
    fake_transport: FakeSessionTransport,
) -> None:
    """N concurrent acquire() calls sign in exactly once."""
    fake_transport.sign_in_delay = 0.05
    sessions = SessionManager(fake_transport)
    barrier = threading.Barrier(THREADS)

    def worker() -> Session:
        barrier.wait()
        return sessions.acquire()

    with ThreadPoolExecutor(max_workers=THREADS) as pool:
        results = [f.result() for f in [pool.submit(worker) for _ in range(THREADS)]]

    assert fake_transport.sign_in_calls == 1
    assert sessions.reference_count == THREADS
    assert all(r is results[0] for r in results)
    _assert_unlocked(sessions)


def test_sign_out_only_at_zero(fake_transport: FakeSessionTransport) -> None:
    sessions = SessionManager(fake_transport)
    for _ in range(5):
        sessions.acquire()

    for _ in range(4):
        sessions.release()
    assert fake_transport.sign_out_calls == 0
    assert sessions.reference_count == 1

    sessions.release()
    assert fake_transport.sign_out_calls == 1
    assert sessions.reference_count == 0
    assert sessions.current_session is None


def test_concurrent_release_single_sign_out(
    fake_transport: FakeSessionTransport,
) -> None:
    sessions = SessionManager(fake_transport)
    for _ in range(THREADS):
        sessions.acquire()
    barrier = threading.Barrier(THREADS)

    def worker() -> None:
        barrier.wait()
        sessions.release()

    with ThreadPoolExecutor(max_workers=THREADS) as pool:
        for f in [pool.submit(worker) for _ in range(THREADS)]:
            f.result()

    assert fake_transport.sign_out_calls == 1
    assert sessions.reference_count == 0
    _assert_unlocked(sessions)


def test_paired_acquire_release_symmetry(fake_transport: FakeSessionTransport) -> None:
    """Concurrent paired acquire/release calls always return to zero."""
    sessions = SessionManager(fake_transport)

    def worker() -> None:
        for _ in range(20):
            sessions.acquire()
            sessions.release()

    with ThreadPoolExecutor(max_workers=8) as pool:
        for f in [pool.submit(worker) for _ in range(8)]:
            f.result()

    assert sessions.reference_count == 0
    assert sessions.current_session is None
    assert fake_transport.sign_in_calls == fake_transport.sign_out_calls
    _assert_unlocked(sessions)


def test_failed_sign_in_keeps_count(fake_transport: FakeSessionTransport) -> None:
    fake_transport.sign_in_error = AuthenticationError(401, "bad key")
    sessions = SessionManager(fake_transport)

    with pytest.raises(AuthenticationError):
        sessions.acquire()

    assert sessions.reference_count == 0
    assert sessions.current_session is None
    _assert_unlocked(sessions)

    fake_transport.sign_in_error = None
    sessions.acquire()
    assert sessions.reference_count == 1
    assert fake_transport.sign_in_calls == 2


def test_failed_sign_out_still_releases(fake_transport: FakeSessionTransport) -> None:
    """A failed sign-out drops the reference, frees the locks and raises."""
    fake_transport.sign_out_error = ApiError(500, "boom")
    sessions = SessionManager(fake_transport)
    sessions.acquire()

    with pytest.raises(ApiError):
        sessions.release()

    assert sessions.reference_count == 0
    assert sessions.current_session is None
    _assert_unlocked(sessions)

    # next caller gets a fresh session
    fake_transport.sign_out_error = None
    sessions.acquire()
    sessions.release()
    assert fake_transport.sign_in_calls == 2
    assert fake_transport.sign_out_calls == 2


def test_release_without_acquire(fake_transport: FakeSessionTransport) -> None:
    sessions = SessionManager(fake_transport)

    with pytest.raises(SessionNotAcquiredError):
        sessions.release()

    assert sessions.reference_count == 0
    assert fake_transport.sign_out_calls == 0
    _assert_unlocked(sessions)


def test_acquire_waits_for_last_sign_out(fake_transport: FakeSessionTransport) -> None:
    """An acquire() racing the last release() signs in after the sign-out."""
    signing_out = threading.Event()
    proceed = threading.Event()

    def block_sign_out() -> None:
        signing_out.set()
        proceed.wait(timeout=5)

    fake_transport.before_sign_out = block_sign_out
    sessions = SessionManager(fake_transport)
    sessions.acquire()

    releaser = threading.Thread(target=sessions.release)
    releaser.start()
    assert signing_out.wait(timeout=5)

    acquirer = threading.Thread(target=sessions.acquire)
    acquirer.start()
    acquirer.join(timeout=0.1)
    assert acquirer.is_alive()
    assert fake_transport.sign_in_calls == 1

    proceed.set()
    releaser.join(timeout=5)
    acquirer.join(timeout=5)

    assert fake_transport.sign_out_calls == 1
    assert fake_transport.sign_in_calls == 2
    assert sessions.reference_count == 1
    _assert_unlocked(sessions)


def test_session_context_manager(fake_transport: FakeSessionTransport) -> None:
    sessions = SessionManager(fake_transport)

    with sessions.session() as session:
        assert session.user_name == "svc-terraform"
        assert sessions.reference_count == 1

    assert sessions.reference_count == 0
    assert fake_transport.sign_out_calls == 1


def test_session_context_manager_releases_on_error(
    fake_transport: FakeSessionTransport,
) -> None:
    sessions = SessionManager(fake_transport)

    with pytest.raises(RuntimeError), sessions.session():
        raise RuntimeError("caller failed")

    assert sessions.reference_count == 0
    assert fake_transport.sign_out_calls == 1


def test_independent_managers(fake_transport: FakeSessionTransport) -> None:
    """Managers do not share state."""
    first = SessionManager(fake_transport)
    second = SessionManager(fake_transport)

    first.acquire()
    second.acquire()

    assert fake_transport.sign_in_calls == 2
    assert first.reference_count == 1
    assert second.reference_count == 1
