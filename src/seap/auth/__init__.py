"""
Authentication module for SEAP clients.

Provides the session store, its durable storage, and role-based view access.
"""

from .models import AuthState, Identity, LoginResult, LoginStatus, Role, Session
from .storage import CorruptSessionError, SessionStorage, StorageError
from .session_store import SessionStore
from .permissions import (
    ROLE_VIEWS,
    AccessDecision,
    AccessDeniedError,
    AccessStatus,
    RouteGuard,
    View,
    decide,
    navigation_for,
)
from .validation import validate_email, validate_otp_code, validate_password

__all__ = [
    # Session models
    "AuthState",
    "Identity",
    "LoginResult",
    "LoginStatus",
    "Role",
    "Session",
    # Storage
    "CorruptSessionError",
    "SessionStorage",
    "StorageError",
    "SessionStore",
    # View access
    "ROLE_VIEWS",
    "AccessDecision",
    "AccessDeniedError",
    "AccessStatus",
    "RouteGuard",
    "View",
    "decide",
    "navigation_for",
    # Input checks
    "validate_email",
    "validate_otp_code",
    "validate_password",
]
