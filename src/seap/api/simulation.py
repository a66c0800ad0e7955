"""
Public simulation endpoints reached through a campaign's tracking token.

No session is needed or sent: these are what a recipient's browser hits.
"""

from loguru import logger

from ..auth.validation import require_text
from .http import APIClient
from .models import AwarenessPage, HealthStatus, SimulationLanding, SimulationSubmitResult, parse


class SimulationAPI:
    def __init__(self, api: APIClient):
        self.api = api

    async def landing(self, token: str) -> SimulationLanding:
        """Open the simulated landing page (records a link_opened event)."""
        token = require_text(token, "token", "Tracking token is required")
        return parse(SimulationLanding, await self.api.get(f"/api/simulate/{token}", auth=False))

    async def submit(self, token: str) -> SimulationSubmitResult:
        """Submit the simulated form. Nothing typed into it is sent."""
        token = require_text(token, "token", "Tracking token is required")
        data = await self.api.post(f"/api/simulate/{token}/submit", {}, auth=False)
        logger.debug(f"Simulated submission recorded for {token}")
        return parse(SimulationSubmitResult, data)

    async def awareness(self, token: str) -> AwarenessPage:
        """Fetch the educational page shown after a simulated submission."""
        token = require_text(token, "token", "Tracking token is required")
        return parse(AwarenessPage, await self.api.get(f"/api/awareness/{token}", auth=False))

    async def health(self) -> HealthStatus:
        data = await self.api.get("/api/health", auth=False)
        return parse(HealthStatus, {} if data is None else data)
