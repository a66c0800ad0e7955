"""
Tests for route guarding and navigation.
"""

import io

import pytest
from rich.console import Console

from seap.api.http import APIClient
from seap.auth import (
    AccessDeniedError,
    AccessStatus,
    AuthState,
    Identity,
    Role,
    RouteGuard,
    SessionStorage,
    SessionStore,
    View,
    decide,
    navigation_for,
)
from seap.auth.permissions import ADMIN_VIEWS, PUBLIC_VIEWS, USER_VIEWS
from seap.errors import SEAPError
from seap.notify import Notifier


ADMIN = Identity(1, "root@b.com", Role.ADMIN)
USER = Identity(2, "a@b.com", Role.USER)


class TestDecide:
    """decide() across states, identities and views."""

    @pytest.mark.parametrize("view", sorted(PUBLIC_VIEWS))
    @pytest.mark.parametrize("state", list(AuthState))
    def test_public_views_always_allowed(self, state, view):
        """Test public views are allowed in every state."""
        assert decide(state, None, view).allowed

    @pytest.mark.parametrize("view", sorted(USER_VIEWS | ADMIN_VIEWS))
    def test_unknown_state_is_pending(self, view):
        """Test nothing is decided while the session loads."""
        decision = decide(AuthState.UNKNOWN, None, view)
        assert decision.status is AccessStatus.PENDING
        assert decision.redirect_to is None

    @pytest.mark.parametrize("view", sorted(USER_VIEWS))
    def test_logged_out_user_view_redirects_to_login(self, view):
        """Test logged-out users are sent to login."""
        decision = decide(AuthState.UNAUTHENTICATED, None, view)
        assert decision.status is AccessStatus.REDIRECT
        assert decision.redirect_to == "/login"

    @pytest.mark.parametrize("view", sorted(ADMIN_VIEWS))
    @pytest.mark.parametrize(
        "state,identity",
        [(AuthState.UNAUTHENTICATED, None), (AuthState.AUTHENTICATED, USER)],
    )
    def test_admin_views_redirect_non_admins_to_dashboard(self, state, identity, view):
        """Test non-admins are sent to the dashboard."""
        decision = decide(state, identity, view)
        assert decision.status is AccessStatus.REDIRECT
        assert decision.redirect_to == "/dashboard"

    @pytest.mark.parametrize("view", sorted(USER_VIEWS | ADMIN_VIEWS))
    def test_admin_opens_everything(self, view):
        """Test admins open every guarded view."""
        assert decide(AuthState.AUTHENTICATED, ADMIN, view).allowed

    @pytest.mark.parametrize("view", sorted(USER_VIEWS))
    def test_user_opens_user_views(self, view):
        """Test users open the user views."""
        assert decide(AuthState.AUTHENTICATED, USER, view).allowed

    def test_view_sets_are_disjoint(self):
        """Test every view belongs to exactly one group."""
        assert not PUBLIC_VIEWS & USER_VIEWS
        assert not USER_VIEWS & ADMIN_VIEWS
        assert PUBLIC_VIEWS | USER_VIEWS | ADMIN_VIEWS == set(View)


class TestRouteGuard:
    """RouteGuard reads the live store state."""

    def make_store(self, tmp_path):
        return SessionStore(SessionStorage(tmp_path / "session"), APIClient("http://localhost:1"))

    def test_pending_before_initialize(self, tmp_path):
        """Test the guard is pending before initialize."""
        guard = RouteGuard(self.make_store(tmp_path))
        assert guard.check(View.DASHBOARD).status is AccessStatus.PENDING

        with pytest.raises(AccessDeniedError) as exc_info:
            guard.require(View.DASHBOARD)
        assert exc_info.value.redirect_to is None

    def test_require_raises_with_redirect_target(self, tmp_path):
        """Test require raises with the redirect target."""
        store = self.make_store(tmp_path)
        store.initialize()
        guard = RouteGuard(store)

        with pytest.raises(AccessDeniedError) as exc_info:
            guard.require(View.ADMIN_USERS)

        assert exc_info.value.view is View.ADMIN_USERS
        assert exc_info.value.redirect_to == "/dashboard"
        assert "/admin/users" in str(exc_info.value)

    def test_require_passes_for_public_view(self, tmp_path):
        """Test require allows a public view."""
        RouteGuard(self.make_store(tmp_path)).require(View.SIMULATE)

    def test_denial_is_recovered_by_notifier(self, tmp_path):
        """Test a denied require() is reported like any other client error."""
        store = self.make_store(tmp_path)
        store.initialize()
        console = Console(file=io.StringIO(), width=200, color_system=None)
        notifier = Notifier(console=console)

        with notifier.guard():
            RouteGuard(store).require(View.PROFILE)

        assert notifier.error_count == 1
        assert "/profile" in console.file.getvalue()
        assert issubclass(AccessDeniedError, SEAPError)


class TestNavigation:
    """Navigation entries depend on the role."""

    def test_logged_out_has_no_entries(self):
        """Test logged-out sessions get no navigation."""
        assert navigation_for(None) == []

    def test_user_navigation(self):
        """Test the user navigation order."""
        assert navigation_for(USER) == [
            ("Dashboard", "/dashboard"),
            ("My Campaigns", "/campaigns"),
            ("Analytics", "/analytics"),
            ("Profile", "/profile"),
        ]

    def test_admin_navigation_adds_admin_entries_after_dashboard(self):
        """Test admin entries follow the dashboard."""
        entries = navigation_for(ADMIN)
        paths = [path for _, path in entries]

        assert paths[0] == "/dashboard"
        assert paths[1:6] == [
            "/admin/campaigns",
            "/admin/users",
            "/admin/analytics",
            "/admin/leaderboard",
            "/admin/audit-logs",
        ]
        assert paths[6:] == ["/campaigns", "/analytics", "/profile"]
