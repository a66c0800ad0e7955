"""
Session data models.

Data classes for the authenticated identity, the persisted session and the
outcome of a login attempt.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import jwt
from loguru import logger


class Role(str, Enum):
    """Roles the backend assigns to accounts."""
    USER = "user"
    ADMIN = "admin"


class AuthState(str, Enum):
    """
    Authorization state of a session store.

    UNKNOWN is the state before the persisted session has been loaded; views
    must neither grant nor deny access while in it.
    """
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class LoginStatus(str, Enum):
    """Non-error outcomes of a login attempt."""
    AUTHENTICATED = "authenticated"
    OTP_REQUIRED = "otp_required"


# Response keys the backend uses to say "verify with a one-time code first"
OTP_PENDING_KEYS = ("otp_required", "otpRequired", "otp")


@dataclass(frozen=True)
class Identity:
    """
    Authenticated user.

    Attributes:
        id: Backend user id (numeric, or the backend's string object id)
        email: User email address
        role: Account role
    """
    id: Union[int, str]
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @classmethod
    def from_dict(cls, data: Any) -> "Identity":
        """
        Parse the backend's user record.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("user record must be an object")

        user_id = data.get("id")
        email = data.get("email")
        role = data.get("role")

        if isinstance(user_id, bool) or not isinstance(user_id, (int, str)) or user_id == "":
            raise ValueError("user record has no valid id")
        if not isinstance(email, str) or not email:
            raise ValueError("user record has no valid email")
        if not isinstance(role, str):
            raise ValueError("user record has no valid role")

        return cls(id=user_id, email=email, role=Role(role))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "role": self.role.value}


@dataclass(frozen=True)
class Session:
    """
    A credential together with the identity it was issued for.

    The two are only ever created, stored and destroyed as a pair.

    Attributes:
        credential: Opaque bearer token issued by the backend
        identity: User the token belongs to
    """
    credential: str
    identity: Identity

    def expires_at(self) -> Optional[datetime]:
        """
        Expiry time encoded in the credential, if it is a JWT with an exp claim.

        Informational only: the signature is not verified and an expired
        credential is not dropped here.
        """
        try:
            payload = jwt.decode(self.credential, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            logger.debug(f"Credential is not a decodable JWT: {e}")
            return None

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)


@dataclass(frozen=True)
class LoginResult:
    """
    Outcome of login() when the backend did not reject the request.

    Attributes:
        status: AUTHENTICATED or OTP_REQUIRED
        identity: Adopted identity (None while verification is pending)
        data: Raw backend response, for callers that need extra fields
    """
    status: LoginStatus
    identity: Optional[Identity]
    data: Dict[str, Any]

    @property
    def otp_required(self) -> bool:
        return self.status is LoginStatus.OTP_REQUIRED
