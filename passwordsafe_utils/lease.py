"""Managed account credential checkout.

Runs the lease protocol against Password Safe inside a shared session:

1. resolve (system name, account name) to a managed account
2. create a time-boxed release request
3. fetch the credential released under that request
4. check the request back in

Any failure releases the session (best effort) before the original error
propagates.
"""

from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from passwordsafe_utils.passwordsafe_api.errors import InputValidationError
from passwordsafe_utils.passwordsafe_api.models import (
    ConflictOption,
    CredentialLease,
    CredentialRequest,
    ManagedAccountRef,
)
from passwordsafe_utils.session import SessionManager

logger = structlog.get_logger(__name__)

DEFAULT_DURATION_MINUTES = 5
# one week, the broker maximum
MAX_DURATION_MINUTES = 7 * 24 * 60


class LeasePolicy(BaseModel):
    """How release requests are created.

    Attributes:
        reason: Audit reason recorded with every request
        duration_minutes: Request lifetime if it is never checked in
        conflict_option: Reuse or fail when the account already has an active request
        checkin_on_failure: Check the request in when fetching the credential fails
    """

    model_config = ConfigDict(frozen=True)

    reason: str = Field(..., min_length=1)
    duration_minutes: int = Field(
        DEFAULT_DURATION_MINUTES, ge=1, le=MAX_DURATION_MINUTES
    )
    conflict_option: ConflictOption = ConflictOption.REUSE
    checkin_on_failure: bool = True


class LeaseTransport(Protocol):
    """The part of PasswordSafeApi the lease protocol needs."""

    def managed_account(
        self, system_name: str, account_name: str
    ) -> ManagedAccountRef: ...

    def create_request(self, request: CredentialRequest) -> str: ...

    def credential(self, request_id: str) -> str: ...

    def checkin(self, request_id: str) -> None: ...


def release_quietly(sessions: SessionManager) -> None:
    """Release after a failure; the original error wins over cleanup errors."""
    try:
        sessions.release()
    except Exception as e:
        logger.warning(
            "Ignoring sign-out failure during cleanup", error=str(e), exc_info=True
        )


class CredentialLeaseClient:
    """Check out managed account credentials.

    Example:
        >>> api = PasswordSafeApi.from_settings(settings)
        >>> sessions = SessionManager(api)
        >>> client = CredentialLeaseClient(api, sessions, LeasePolicy(reason="terraform apply"))
        >>> password = client.checkout("Computer01", "User04")
    """

    def __init__(
        self,
        api: LeaseTransport,
        sessions: SessionManager,
        policy: LeasePolicy,
    ) -> None:
        self._api = api
        self._sessions = sessions
        self.policy = policy

    def checkout(self, system_name: str, account_name: str) -> str:
        """Return the current credential of a managed account.

        Raises:
            InputValidationError: empty system or account name, nothing was sent
            PasswordSafeError: any failing protocol step, unchanged
        """
        system_name = system_name.strip()
        account_name = account_name.strip()
        if not system_name:
            raise InputValidationError("Please use a valid system_name value")
        if not account_name:
            raise InputValidationError("Please use a valid account_name value")

        self._sessions.acquire()
        try:
            lease = self.lease(system_name, account_name)
        except Exception:
            release_quietly(self._sessions)
            raise
        self._sessions.release()
        return lease.secret

    def lease(self, system_name: str, account_name: str) -> CredentialLease:
        """Run the lease protocol. The caller must hold a session."""
        account = self._api.managed_account(system_name, account_name)
        request_id = self._api.create_request(
            CredentialRequest(
                system_id=account.system_id,
                account_id=account.account_id,
                duration_minutes=self.policy.duration_minutes,
                reason=self.policy.reason,
                conflict_option=self.policy.conflict_option,
            )
        )
        log = logger.bind(
            system_id=account.system_id,
            account_id=account.account_id,
            request_id=request_id,
        )
        log.debug("Request created")

        try:
            secret = self._api.credential(request_id)
        except Exception:
            if self.policy.checkin_on_failure:
                self._checkin_quietly(request_id)
            raise

        self._api.checkin(request_id)
        log.debug("Request checked in")
        return CredentialLease(request_id=request_id, secret=secret)

    def _checkin_quietly(self, request_id: str) -> None:
        try:
            self._api.checkin(request_id)
        except Exception as e:
            logger.warning(
                "Ignoring check-in failure during cleanup",
                request_id=request_id,
                error=str(e),
                exc_info=True,
            )
