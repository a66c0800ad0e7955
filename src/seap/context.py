"""
Application context.

Builds one session store, one transport and the endpoint groups on top of
them, and hands them to views explicitly. Nothing here is module-global.
"""

from typing import Optional

from loguru import logger

from .api import AdminAPI, AnalyticsAPI, APIClient, CampaignsAPI, ProfileAPI, SimulationAPI
from .auth import RouteGuard, SessionStorage, SessionStore
from .config import ClientConfig


class SEAPContext:
    """
    Everything a view needs, with an explicit lifecycle.

    Usage:
        async with SEAPContext(config) as ctx:
            if ctx.guard.check(View.CAMPAIGNS).allowed:
                campaigns = await ctx.campaigns.list()
    """

    def __init__(self, config: ClientConfig, storage: Optional[SessionStorage] = None):
        """
        Initialize context.

        Args:
            config: Client configuration
            storage: Session storage (default: file at config.session_file)
        """
        self.config = config
        self.api = APIClient(
            config.api_url,
            timeout=config.timeout,
            credential_provider=self._current_credential,
            on_unauthorized=self._handle_unauthorized,
        )
        self.store = SessionStore(storage or SessionStorage(config.session_file), self.api)
        self.guard = RouteGuard(self.store)

        self.profile = ProfileAPI(self.api)
        self.campaigns = CampaignsAPI(self.api)
        self.analytics = AnalyticsAPI(self.api)
        self.admin = AdminAPI(self.api)
        self.simulation = SimulationAPI(self.api)

    def _current_credential(self) -> Optional[str]:
        return self.store.credential

    def _handle_unauthorized(self):
        if not self.config.logout_on_unauthorized:
            return
        if self.store.is_authenticated:
            logger.warning("Stored credential was rejected by the server; logging out")
            self.store.logout()

    def initialize(self):
        self.store.initialize()

    async def teardown(self):
        self.store.teardown()
        await self.api.close()

    async def __aenter__(self) -> "SEAPContext":
        self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.teardown()
