"""HTTP integration for login limiting."""

from loginguard.api.dependencies import (
    ClientIP,
    Guard,
    get_client_ip,
    get_limit_config,
    get_login_guard,
)
from loginguard.api.login import (
    CredentialResult,
    CredentialVerifier,
    LoginRequest,
    VerifiedUser,
    create_login_router,
)

__all__ = [
    "ClientIP",
    "Guard",
    "get_client_ip",
    "get_limit_config",
    "get_login_guard",
    "CredentialResult",
    "CredentialVerifier",
    "LoginRequest",
    "VerifiedUser",
    "create_login_router",
]
