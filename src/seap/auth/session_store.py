"""
Client-side session store.

Single source of truth for "who is logged in". Owns the credential and the
identity, persists them through SessionStorage, and notifies subscribed
views whenever the authorization state changes.
"""

from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..api.http import APIClient
from ..errors import APIError, ValidationError
from .models import (
    OTP_PENDING_KEYS,
    AuthState,
    Identity,
    LoginResult,
    LoginStatus,
    Role,
    Session,
)
from .storage import CorruptSessionError, SessionStorage
from .validation import require_text, validate_email, validate_otp_code, validate_password


Listener = Callable[[AuthState, Optional[Identity]], None]

LOGIN_FAILED = "Login failed"
OTP_FAILED = "OTP verification failed"
MALFORMED_SESSION = "Server returned an invalid session"


class SessionStore:
    """
    Holds the authenticated session for one client.

    Lifecycle:
        store = SessionStore(storage, api)
        store.initialize()      # UNKNOWN -> AUTHENTICATED / UNAUTHENTICATED
        ...
        store.teardown()

    Views never mutate the session directly; they call login(),
    verify_otp() or logout() and read state through properties or
    subscribe().
    """

    def __init__(self, storage: SessionStorage, api: APIClient):
        """
        Initialize store.

        Args:
            storage: Durable storage for the credential/identity pair
            api: Transport used for the auth endpoints
        """
        self.storage = storage
        self.api = api
        self._session: Optional[Session] = None
        self._state = AuthState.UNKNOWN
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def loading(self) -> bool:
        """True until initialize() has completed."""
        return self._state is AuthState.UNKNOWN

    @property
    def identity(self) -> Optional[Identity]:
        return self._session.identity if self._session else None

    @property
    def credential(self) -> Optional[str]:
        return self._session.credential if self._session else None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_admin(self) -> bool:
        identity = self.identity
        return identity is not None and identity.is_admin

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for state changes.

        The listener is called immediately with the current state and then on
        every transition.

        Returns:
            Callable that removes the listener (safe to call twice)
        """
        self._listeners.append(listener)
        listener(self._state, self.identity)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Optional[Session]):
        previous = (self._state, self.identity)
        self._session = session
        self._state = AuthState.AUTHENTICATED if session else AuthState.UNAUTHENTICATED

        if (self._state, self.identity) == previous:
            return

        for listener in list(self._listeners):
            try:
                listener(self._state, self.identity)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> AuthState:
        """
        Load the persisted session, if any.

        A corrupted session file is cleared and treated as logged out.

        Returns:
            The resulting state (never UNKNOWN)
        """
        try:
            session = self.storage.load()
        except CorruptSessionError as e:
            logger.warning(f"Discarding stored session: {e}")
            self.storage.clear()
            session = None

        self._set_session(session)

        if session:
            logger.info(f"Restored session for {session.identity.email}")
        else:
            logger.debug("No stored session")
        return self._state

    def teardown(self):
        """Drop every listener. The persisted session is kept."""
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _adopt(self, data: Dict[str, Any]) -> Session:
        """Parse a {token, user} response, persist it, then adopt it."""
        if not isinstance(data.get("token"), str):
            raise APIError(0, MALFORMED_SESSION)
        try:
            identity = Identity.from_dict(data.get("user"))
        except ValueError as e:
            logger.error(f"Invalid user record in auth response: {e}")
            raise APIError(0, MALFORMED_SESSION) from e

        session = Session(credential=data["token"], identity=identity)
        self.storage.save(session)
        self._set_session(session)
        return session

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Log in with email and password.

        Returns:
            LoginResult with status AUTHENTICATED (session adopted) or
            OTP_REQUIRED (session untouched)

        Raises:
            ValidationError: Malformed input (no request sent)
            APIError: Backend rejected the credentials
            TransportError: Backend unreachable
        """
        email = validate_email(email)
        require_text(password, "password", "Password is required")

        data = await self.api.post(
            "/api/auth/login", {"email": email, "password": password}, auth=False
        )
        if not isinstance(data, dict):
            raise APIError(0, LOGIN_FAILED)

        if data.get("token"):
            session = self._adopt(data)
            logger.info(f"Logged in as {session.identity.email} ({session.identity.role.value})")
            return LoginResult(LoginStatus.AUTHENTICATED, session.identity, data)

        if any(data.get(key) for key in OTP_PENDING_KEYS):
            logger.info(f"Login for {email} requires OTP verification")
            return LoginResult(LoginStatus.OTP_REQUIRED, None, data)

        raise APIError(0, data.get("error") or LOGIN_FAILED)

    async def register(self, email: str, password: str, role: Role = Role.USER) -> Dict[str, Any]:
        """
        Register a new account.

        Never adopts a credential, even if the backend returns one; the
        caller continues with verify_otp() or login().

        Returns:
            Raw backend response
        """
        email = validate_email(email)
        validate_password(password)
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError("role", f"Unknown role: {role}")

        data = await self.api.post(
            "/api/auth/register",
            {"email": email, "password": password, "role": role.value},
            auth=False,
        )
        logger.info(f"Registered {email} as {role.value}")
        return data if isinstance(data, dict) else {}

    async def verify_otp(self, email: str, code: str) -> Identity:
        """
        Exchange a one-time passcode for a session.

        Returns:
            The adopted identity

        Raises:
            APIError: Code rejected; carries the backend's message
        """
        email = validate_email(email)
        code = validate_otp_code(code)

        data = await self.api.post(
            "/api/auth/verify-otp", {"email": email, "code": code}, auth=False
        )
        if not isinstance(data, dict):
            raise APIError(0, OTP_FAILED)
        if not data.get("token"):
            raise APIError(0, data.get("message") or data.get("error") or OTP_FAILED)

        session = self._adopt(data)
        logger.info(f"Verified {session.identity.email}")
        return session.identity

    async def resend_otp(self, email: str) -> Dict[str, Any]:
        """Ask the backend to issue a fresh one-time passcode."""
        email = validate_email(email)
        data = await self.api.post("/api/auth/resend-otp", {"email": email}, auth=False)
        logger.info(f"Requested a new OTP for {email}")
        return data if isinstance(data, dict) else {}

    def logout(self):
        """Clear the session in memory and on disk. Idempotent, never raises."""
        was_authenticated = self._session is not None
        self.storage.clear()
        self._set_session(None)
        if was_authenticated:
            logger.info("Logged out")
