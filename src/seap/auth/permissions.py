"""
Role-based view access for SEAP clients.

This module provides:
- The set of views (screens/commands) a client exposes
- Which roles may open which views
- A route guard that turns the session state into allow/redirect/pending
- The navigation entries a session should see
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..errors import SEAPError
from .models import AuthState, Identity, Role


LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"


class View(str, Enum):
    """Every view in the client, named by its route."""
    LOGIN = "/login"
    REGISTER = "/register"
    SIMULATE = "/simulate"
    AWARENESS = "/awareness"

    DASHBOARD = "/dashboard"
    CAMPAIGNS = "/campaigns"
    CAMPAIGN_NEW = "/campaigns/new"
    CAMPAIGN_EDIT = "/campaigns/edit"
    ANALYTICS = "/analytics"
    PROFILE = "/profile"

    ADMIN_CAMPAIGNS = "/admin/campaigns"
    ADMIN_USERS = "/admin/users"
    ADMIN_ANALYTICS = "/admin/analytics"
    ADMIN_LEADERBOARD = "/admin/leaderboard"
    ADMIN_AUDIT_LOGS = "/admin/audit-logs"

    @property
    def is_admin_view(self) -> bool:
        return self.value.startswith("/admin/")


# Reachable without a session
PUBLIC_VIEWS: Set[View] = {
    View.LOGIN,
    View.REGISTER,
    View.SIMULATE,
    View.AWARENESS,
}

USER_VIEWS: Set[View] = {
    View.DASHBOARD,
    View.CAMPAIGNS,
    View.CAMPAIGN_NEW,
    View.CAMPAIGN_EDIT,
    View.ANALYTICS,
    View.PROFILE,
}

ADMIN_VIEWS: Set[View] = {view for view in View if view.is_admin_view}

# Map each role to the non-public views it may open
ROLE_VIEWS: Dict[Role, Set[View]] = {
    Role.ADMIN: USER_VIEWS | ADMIN_VIEWS,
    Role.USER: set(USER_VIEWS),
}

# Navigation bar entries, in display order: (label, view)
USER_NAVIGATION: List[Tuple[str, View]] = [
    ("Dashboard", View.DASHBOARD),
    ("My Campaigns", View.CAMPAIGNS),
    ("Analytics", View.ANALYTICS),
    ("Profile", View.PROFILE),
]

ADMIN_NAVIGATION: List[Tuple[str, View]] = [
    ("Admin Panel", View.ADMIN_CAMPAIGNS),
    ("Users", View.ADMIN_USERS),
    ("Analytics", View.ADMIN_ANALYTICS),
    ("Leaderboard", View.ADMIN_LEADERBOARD),
    ("Audit Logs", View.ADMIN_AUDIT_LOGS),
]


class AccessStatus(str, Enum):
    PENDING = "pending"
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class AccessDecision:
    """
    Result of a guard check.

    Attributes:
        status: PENDING while the session is still loading, else ALLOW or REDIRECT
        redirect_to: Target path when status is REDIRECT
    """
    status: AccessStatus
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.status is AccessStatus.ALLOW


PENDING = AccessDecision(AccessStatus.PENDING)
ALLOW = AccessDecision(AccessStatus.ALLOW)


class AccessDeniedError(SEAPError):
    """
    Raised when a view is opened without the required session or role.

    Attributes:
        view: The view that was denied
        redirect_to: Where the caller should send the user instead
    """

    def __init__(self, view: View, redirect_to: Optional[str]):
        self.view = view
        self.redirect_to = redirect_to

        message = f"Access to {view.value} denied"
        if redirect_to:
            message += f" (redirect to {redirect_to})"

        super().__init__(message)


def decide(state: AuthState, identity: Optional[Identity], view: View) -> AccessDecision:
    """
    Decide whether a session may open a view.

    Admin views treat "no identity" and "not an admin" the same way: both are
    sent to the dashboard. Nothing is decided while the state is UNKNOWN.

    Args:
        state: Current authorization state
        identity: Current identity (None when logged out)
        view: View being opened

    Returns:
        AccessDecision
    """
    if view in PUBLIC_VIEWS:
        return ALLOW

    if state is AuthState.UNKNOWN:
        return PENDING

    if view.is_admin_view:
        if identity is not None and view in ROLE_VIEWS.get(identity.role, set()):
            return ALLOW
        return AccessDecision(AccessStatus.REDIRECT, DASHBOARD_PATH)

    if identity is None:
        return AccessDecision(AccessStatus.REDIRECT, LOGIN_PATH)
    if view in ROLE_VIEWS.get(identity.role, set()):
        return ALLOW
    return AccessDecision(AccessStatus.REDIRECT, DASHBOARD_PATH)


class RouteGuard:
    """
    Checks views against a session store.

    The guard holds no state of its own; every check reads the store's
    current state and identity.
    """

    def __init__(self, store):
        """
        Initialize guard.

        Args:
            store: SessionStore to read state and identity from
        """
        self.store = store

    def check(self, view: View) -> AccessDecision:
        return decide(self.store.state, self.store.identity, view)

    def require(self, view: View):
        """
        Require access to a view.

        Raises:
            AccessDeniedError: If the decision is REDIRECT or still PENDING
        """
        decision = self.check(view)
        if not decision.allowed:
            raise AccessDeniedError(view, decision.redirect_to)


def navigation_for(identity: Optional[Identity]) -> List[Tuple[str, str]]:
    """
    Navigation entries a session should see.

    Returns:
        List of (label, path); empty when logged out
    """
    if identity is None:
        return []

    entries = [USER_NAVIGATION[0]]
    if identity.is_admin:
        entries.extend(ADMIN_NAVIGATION)
    entries.extend(USER_NAVIGATION[1:])
    return [(label, view.value) for label, view in entries]
