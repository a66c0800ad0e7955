"""
Tests for the client-side session store.
"""

import asyncio
import json
import socket

import pytest

from fake_backend import FakeBackend, login_response, user_record
from seap.api.http import APIClient
from seap.auth import AuthState, Identity, LoginStatus, Role, SessionStorage, SessionStore
from seap.errors import APIError, TransportError, ValidationError


def run(coro):
    return asyncio.run(coro)


def write_session(path, token="t1", user=None):
    user = user if user is not None else user_record()
    path.write_text(json.dumps({"token": token, "user": json.dumps(user)}))


def unused_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "seap_session"


class TestInitialize:
    """Loading the persisted session at start-up."""

    def test_state_unknown_before_initialize(self, session_file):
        """Test the store starts UNKNOWN."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        assert store.state is AuthState.UNKNOWN
        assert store.loading
        assert store.identity is None

    def test_no_file_means_unauthenticated(self, session_file):
        """Test a missing file initializes as logged out."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        assert store.initialize() is AuthState.UNAUTHENTICATED
        assert not store.loading
        assert store.identity is None

    def test_restores_stored_session(self, session_file):
        """Test a stored session is restored."""
        write_session(session_file, token="abc", user=user_record(7, "x@y.org", "admin"))
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))

        assert store.initialize() is AuthState.AUTHENTICATED
        assert store.identity == Identity(7, "x@y.org", Role.ADMIN)
        assert store.credential == "abc"
        assert store.is_admin

    @pytest.mark.parametrize(
        "content",
        [
            "not json at all",
            json.dumps({"token": "t1", "user": "{broken"}),
            json.dumps({"token": "t1"}),
            json.dumps({"user": json.dumps(user_record())}),
            json.dumps({"token": "t1", "user": json.dumps({"id": 1, "email": "a@b.com", "role": "root"})}),
            json.dumps(["token", "user"]),
        ],
    )
    def test_corrupt_storage_is_cleared(self, session_file, content):
        """Test corrupt storage is cleared silently."""
        session_file.write_text(content)
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))

        assert store.initialize() is AuthState.UNAUTHENTICATED
        assert store.identity is None
        assert store.credential is None
        assert not session_file.exists()


class TestLogin:
    """login() outcomes."""

    def test_successful_login_adopts_and_persists(self, session_file):
        """Test login adopts, persists, and logout clears."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/login", login_response("t1", user_id=1, email="a@b.com", role="user"))

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                result = await store.login("a@b.com", "secret1")
                return store, result

        store, result = run(scenario())

        assert result.status is LoginStatus.AUTHENTICATED
        assert store.identity == Identity(1, "a@b.com", Role.USER)
        assert store.state is AuthState.AUTHENTICATED
        assert backend.requests[0].body == {"email": "a@b.com", "password": "secret1"}
        assert backend.requests[0].authorization is None

        # Reload from disk yields the same identity
        reloaded = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        reloaded.initialize()
        assert reloaded.identity == store.identity
        assert reloaded.credential == "t1"

        store.logout()
        assert store.identity is None
        assert not session_file.exists()

    def test_otp_pending_leaves_session_empty(self, session_file):
        """Test OTP-pending login adopts nothing."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/login", {"otp_required": True, "message": "OTP sent"})

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                return store, await store.login("a@b.com", "secret1")

        store, result = run(scenario())

        assert result.otp_required
        assert result.identity is None
        assert store.identity is None
        assert store.state is AuthState.UNAUTHENTICATED
        assert not session_file.exists()

    def test_rejected_login_propagates_backend_message(self, session_file):
        """Test a rejected login keeps the previous session."""
        write_session(session_file, token="old", user=user_record(3, "old@b.com"))
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/login", {"error": "Invalid credentials"}, status=401)

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(APIError, match="Invalid credentials") as exc_info:
                    await store.login("a@b.com", "wrong-password")
                return store, exc_info.value

        store, error = run(scenario())

        assert error.status == 401
        assert store.identity == Identity(3, "old@b.com", Role.USER)
        assert store.credential == "old"

    def test_success_status_without_token_is_an_error(self, session_file):
        """Test a 2xx login without a token fails."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/login", {"error": "Account locked"})

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(APIError, match="Account locked"):
                    await store.login("a@b.com", "secret1")
                return store

        assert run(scenario()).identity is None

    def test_malformed_user_record_is_not_adopted(self, session_file):
        """Test a bad user record is not adopted."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/login", {"token": "t1", "user": {"email": "a@b.com"}})

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(APIError):
                    await store.login("a@b.com", "secret1")
                return store

        store = run(scenario())
        assert store.identity is None
        assert not session_file.exists()

    def test_invalid_email_is_rejected_before_any_request(self, session_file):
        """Test a bad email fails locally."""
        backend = FakeBackend()

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(ValidationError) as exc_info:
                    await store.login("not-an-email", "secret1")
                return exc_info.value

        error = run(scenario())
        assert error.field == "email"
        assert backend.requests == []

    def test_unreachable_backend_raises_transport_error(self, session_file):
        """Test an unreachable backend raises TransportError."""
        async def scenario():
            async with APIClient(f"http://127.0.0.1:{unused_port()}", timeout=2) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(TransportError):
                    await store.login("a@b.com", "secret1")
                return store

        store = run(scenario())
        assert store.identity is None
        assert store.state is AuthState.UNAUTHENTICATED


class TestRegister:
    """register() never establishes a session."""

    def test_register_does_not_adopt_returned_token(self, session_file):
        """Test register never adopts a token."""
        backend = FakeBackend()
        backend.respond(
            "POST",
            "/api/auth/register",
            {"message": "User registered successfully", **login_response("t9", email="new@b.com")},
            status=201,
        )

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                data = await store.register("new@b.com", "secret1", Role.ADMIN)
                return store, data

        store, data = run(scenario())

        assert data["message"] == "User registered successfully"
        assert backend.requests[0].body == {"email": "new@b.com", "password": "secret1", "role": "admin"}
        assert store.identity is None
        assert not session_file.exists()

    def test_short_password_is_rejected_locally(self, session_file):
        """Test a short password fails locally."""
        backend = FakeBackend()

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                with pytest.raises(ValidationError, match="at least 6"):
                    await store.register("new@b.com", "12345")

        run(scenario())
        assert backend.requests == []

    def test_duplicate_email_surfaces_backend_message(self, session_file):
        """Test the duplicate-email message is surfaced."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/register", {"error": "Email already registered"}, status=409)

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                with pytest.raises(APIError, match="Email already registered"):
                    await store.register("new@b.com", "secret1")

        run(scenario())


class TestVerifyOtp:
    """verify_otp() exchanges a code for a session."""

    def test_valid_code_adopts_session(self, session_file):
        """Test a valid code adopts the session."""
        backend = FakeBackend()
        backend.respond(
            "POST",
            "/api/auth/verify-otp",
            {"message": "Email verified successfully", **login_response("t2", user_id="65a1f0", email="a@b.com")},
        )

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                identity = await store.verify_otp("a@b.com", "123456")
                return store, identity

        store, identity = run(scenario())

        assert identity == Identity("65a1f0", "a@b.com", Role.USER)
        assert store.credential == "t2"
        assert backend.requests[0].body == {"email": "a@b.com", "code": "123456"}
        assert SessionStorage(session_file).load().credential == "t2"

    def test_invalid_code_leaves_state_untouched(self, session_file):
        """Test a rejected code adopts nothing."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/verify-otp", {"error": "OTP expired"}, status=400)

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(APIError, match="OTP expired"):
                    await store.verify_otp("a@b.com", "000000")
                return store

        store = run(scenario())
        assert store.identity is None
        assert not session_file.exists()

    def test_response_without_token_raises_with_message(self, session_file):
        """Test a tokenless verify response raises its message."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/verify-otp", {"message": "Code not recognised"})

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                with pytest.raises(APIError, match="Code not recognised"):
                    await store.verify_otp("a@b.com", "111111")

        run(scenario())

    def test_resend_otp_does_not_touch_session(self, session_file):
        """Test resend returns the backend response only."""
        backend = FakeBackend()
        backend.respond("POST", "/api/auth/resend-otp", {"message": "OTP sent successfully", "otp": "424242"})

        async def scenario():
            async with backend.running() as url, APIClient(url) as api:
                store = SessionStore(SessionStorage(session_file), api)
                store.initialize()
                return store, await store.resend_otp("a@b.com")

        store, data = run(scenario())
        assert data["otp"] == "424242"
        assert store.identity is None


class TestLogout:
    """logout() always ends in an empty session."""

    def test_logout_clears_memory_and_storage(self, session_file):
        """Test logout clears memory and storage."""
        write_session(session_file)
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        store.initialize()

        store.logout()

        assert store.identity is None
        assert store.credential is None
        assert store.state is AuthState.UNAUTHENTICATED
        assert not session_file.exists()

    def test_logout_is_idempotent(self, session_file):
        """Test logout twice is harmless."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        store.initialize()

        store.logout()
        store.logout()

        assert store.identity is None
        assert not session_file.exists()

    def test_logout_before_initialize_still_clears(self, session_file):
        """Test logout works before initialize."""
        write_session(session_file)
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))

        store.logout()

        assert store.state is AuthState.UNAUTHENTICATED
        assert not session_file.exists()


class TestSubscription:
    """Listeners observe state transitions."""

    def test_listener_sees_current_state_then_transitions(self, session_file):
        """Test listeners see the current state, then each change once."""
        write_session(session_file)
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        seen = []

        store.subscribe(lambda state, identity: seen.append((state, identity)))
        store.initialize()
        store.logout()
        store.logout()

        assert [state for state, _ in seen] == [
            AuthState.UNKNOWN,
            AuthState.AUTHENTICATED,
            AuthState.UNAUTHENTICATED,
        ]
        assert seen[1][1] == Identity(1, "a@b.com", Role.USER)
        assert seen[2][1] is None

    def test_unsubscribe_stops_notifications(self, session_file):
        """Test unsubscribe stops notifications."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        seen = []

        unsubscribe = store.subscribe(lambda state, identity: seen.append(state))
        unsubscribe()
        unsubscribe()
        store.initialize()

        assert seen == [AuthState.UNKNOWN]

    def test_teardown_drops_listeners(self, session_file):
        """Test teardown drops every listener."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        seen = []

        store.subscribe(lambda state, identity: seen.append(state))
        store.teardown()
        store.initialize()

        assert seen == [AuthState.UNKNOWN]

    def test_failing_listener_does_not_break_others(self, session_file):
        """Test a failing listener does not stop the rest."""
        store = SessionStore(SessionStorage(session_file), APIClient("http://localhost:1"))
        seen = []

        def broken(state, identity):
            if state is not AuthState.UNKNOWN:
                raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda state, identity: seen.append(state))
        store.initialize()

        assert seen == [AuthState.UNKNOWN, AuthState.UNAUTHENTICATED]
