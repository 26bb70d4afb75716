"""
Login endpoint wired through the brute-force gate.

Credential checking belongs to the host application; it is passed in as a
callable so the gate can wrap it: pre-check, verify, then record the
outcome.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from loginguard.api.dependencies import ClientIP, Guard
from loginguard.core import InvalidCredentialsError, get_logger
from loginguard.db import get_db

logger = get_logger(__name__)


@dataclass(frozen=True)
class VerifiedUser:
    """Account returned by a successful credential check."""

    id: str
    username: str


@dataclass(frozen=True)
class CredentialResult:
    """
    Outcome of a credential check.

    ``user`` is set on success. On failure, ``user_exists`` and ``user_id``
    tell the security log whether the username matched an account. They
    never change the response.
    """

    user: VerifiedUser | None = None
    user_exists: bool | None = None
    user_id: str | None = None

    @classmethod
    def success(cls, user: VerifiedUser) -> "CredentialResult":
        return cls(user=user, user_exists=True, user_id=user.id)

    @classmethod
    def unknown_user(cls) -> "CredentialResult":
        return cls(user_exists=False)

    @classmethod
    def wrong_password(cls, user_id: str) -> "CredentialResult":
        return cls(user_exists=True, user_id=user_id)

    @classmethod
    def of(cls, outcome: "VerifiedUser | CredentialResult | None") -> "CredentialResult":
        """Accept the shorter return forms a verifier may use."""
        if isinstance(outcome, CredentialResult):
            return outcome
        if outcome is None:
            return cls()
        return cls.success(outcome)


# (db, username, password) -> CredentialResult. A bare VerifiedUser means
# success and None means failure with the account left unknown.
CredentialVerifier = Callable[[Session, str, str], VerifiedUser | CredentialResult | None]


class LoginRequest(BaseModel):
    """Login request body."""

    username: str = Field(..., min_length=1, max_length=255)  # Can be username or email
    password: str = Field(..., min_length=1, max_length=1024)


class UserResponse(BaseModel):
    """User info response."""

    id: str
    username: str


def create_login_router(
    verify_credentials: CredentialVerifier, prefix: str = "/auth"
) -> APIRouter:
    """Build the login router around the host's credential check."""
    router = APIRouter(prefix=prefix, tags=["auth"])

    @router.post("/login")
    def login(
        body: LoginRequest,
        db: Annotated[Session, Depends(get_db)],
        guard: Guard,
        ip_address: ClientIP,
    ) -> dict[str, Any]:
        """
        Log in with username/email and password.

        Locked-out callers are rejected before the password is looked at,
        so the response never depends on whether it was correct.
        """
        guard.enforce(ip_address, body.username)

        result = CredentialResult.of(verify_credentials(db, body.username, body.password))
        user = result.user
        if user is None:
            guard.on_failure(
                ip_address,
                body.username,
                user_exists=result.user_exists,
                user_id=result.user_id,
            )
            raise InvalidCredentialsError()

        guard.on_success(ip_address, body.username)
        logger.info("Login succeeded", data={"user_id": user.id})

        return {"user": UserResponse(id=user.id, username=user.username).model_dump()}

    return router
