"""Secrets Safe lookups by folder path and title."""

from typing import Protocol

import structlog

from passwordsafe_utils.lease import release_quietly
from passwordsafe_utils.passwordsafe_api.errors import (
    InputValidationError,
    SecretNotFoundError,
)
from passwordsafe_utils.passwordsafe_api.models import SecretsSafeSecret
from passwordsafe_utils.session import SessionManager

logger = structlog.get_logger(__name__)

DEFAULT_SEPARATOR = "/"


class SecretsTransport(Protocol):
    def secrets_by_path(
        self, path: str, title: str, separator: str = DEFAULT_SEPARATOR
    ) -> list[SecretsSafeSecret]: ...

    def secret_file(self, secret_id: str) -> str: ...


class SecretsSafeClient:
    """Read Secrets Safe secrets inside a shared session.

    FILE secrets return the downloaded file content, all others their
    password.
    """

    def __init__(self, api: SecretsTransport, sessions: SessionManager) -> None:
        self._api = api
        self._sessions = sessions

    def get_secret(
        self, path: str, title: str, separator: str = DEFAULT_SEPARATOR
    ) -> str:
        path = path.strip()
        title = title.strip()
        separator = separator.strip() or DEFAULT_SEPARATOR
        if not path:
            raise InputValidationError("Please use a valid Path value")
        if not title:
            raise InputValidationError("Please use a valid Title value")

        self._sessions.acquire()
        try:
            value = self._read(path, title, separator)
        except Exception:
            release_quietly(self._sessions)
            raise
        self._sessions.release()
        return value

    def _read(self, path: str, title: str, separator: str) -> str:
        secrets = self._api.secrets_by_path(path, title, separator)
        if not secrets:
            raise SecretNotFoundError(
                f"Secret was not found: path={path!r} title={title!r}"
            )
        secret = secrets[0]
        if secret.is_file:
            logger.debug("Downloading file secret", secret_id=secret.id)
            return self._api.secret_file(secret.id)
        return secret.password
