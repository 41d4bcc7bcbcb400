"""Reference counted Password Safe session shared by concurrent callers.

Any number of threads may run Password Safe flows at the same time, but the
broker session behind the shared API client must be signed in once and
signed out only after the last caller is done:

    sessions = SessionManager(api)

    # thread 1                       # thread 2
    sessions.acquire()  # sign-in    sessions.acquire()  # no sign-in
    ...                              ...
    sessions.release()  # no-op      sessions.release()  # sign-out

Locking:
- _sign_in_lock serializes physical sign-ins; concurrent acquire() calls
  queue behind the first one and reuse its session.
- _sign_out_lock serializes release() calls.
- _lock guards (_count, _session) and is never held across a network call.

The last release additionally takes _sign_in_lock, so a sign-out never
overlaps a sign-in on the shared cookie jar and an acquire() racing the last
release() either keeps the session alive or signs in afresh afterwards.
This departs from fully independent sign-in and sign-out locks on purpose:
an acquire() arriving during the final sign-out waits for it to finish
instead of being handed a session that is being torn down.
Lock order: _sign_out_lock -> _sign_in_lock -> _lock.
"""

import contextlib
import threading
from collections.abc import Generator
from typing import Protocol

import structlog

from passwordsafe_utils.metrics import (
    session_references,
    session_sign_in,
    session_sign_out,
)
from passwordsafe_utils.passwordsafe_api.errors import SessionNotAcquiredError
from passwordsafe_utils.passwordsafe_api.models import Session

logger = structlog.get_logger(__name__)


class SessionTransport(Protocol):
    """The part of PasswordSafeApi the session manager drives."""

    def sign_in(self) -> Session: ...

    def sign_out(self) -> None: ...


class SessionManager:
    """Lazy, reference counted Password Safe session.

    One instance per API client, injected into every caller that needs a
    session. acquire() and release() must be paired; session() does the
    pairing for you.
    """

    def __init__(self, transport: SessionTransport) -> None:
        self._transport = transport
        self._count = 0
        self._session: Session | None = None
        self._lock = threading.Lock()
        self._sign_in_lock = threading.Lock()
        self._sign_out_lock = threading.Lock()

    @property
    def reference_count(self) -> int:
        with self._lock:
            return self._count

    @property
    def current_session(self) -> Session | None:
        with self._lock:
            return self._session

    def acquire(self) -> Session:
        """Return the shared session, signing in if nobody holds it.

        The reference count only changes when this returns.

        Raises:
            AuthenticationError: sign-in rejected, nothing was acquired
        """
        with self._sign_in_lock:
            with self._lock:
                if self._count > 0 and self._session is not None:
                    self._count += 1
                    session_references.set(self._count)
                    logger.debug("Already signed in", references=self._count)
                    return self._session

            try:
                session = self._transport.sign_in()
            except Exception:
                session_sign_in.labels("error").inc()
                logger.warning("Sign-in failed")
                raise
            session_sign_in.labels("success").inc()

            with self._lock:
                self._session = session
                self._count += 1
                session_references.set(self._count)
                logger.debug(
                    "Signed in", user_name=session.user_name, references=self._count
                )
            return session

    def release(self) -> None:
        """Drop one reference, signing out when it was the last one.

        A failed sign-out still drops the reference and forgets the session,
        then re-raises the sign-out error.

        Raises:
            SessionNotAcquiredError: no reference is held
        """
        with self._sign_out_lock:
            if self._release_shared():
                return

            with self._sign_in_lock:
                # an acquire() may have slipped in before we got the lock
                if self._release_shared():
                    return

                try:
                    self._transport.sign_out()
                except Exception:
                    session_sign_out.labels("error").inc()
                    logger.warning("Sign-out failed, dropping session anyway")
                    raise
                else:
                    session_sign_out.labels("success").inc()
                    logger.debug("Signed out")
                finally:
                    with self._lock:
                        self._count -= 1
                        self._session = None
                        session_references.set(self._count)

    def _release_shared(self) -> bool:
        """Decrement if other references remain. False means: last reference."""
        with self._lock:
            if self._count == 0:
                raise SessionNotAcquiredError(
                    "release() called without a matching acquire()"
                )
            if self._count > 1:
                self._count -= 1
                session_references.set(self._count)
                logger.debug("Ignore sign-out", references=self._count)
                return True
            return False

    @contextlib.contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Hold a reference for the duration of the block.

        Example:
            >>> with sessions.session() as session:
            ...     api.managed_account("Computer01", "User04")
        """
        session = self.acquire()
        try:
            yield session
        finally:
            self.release()
