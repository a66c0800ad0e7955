"""
Endpoints available to any logged-in user: profile, campaigns, analytics.
"""

from datetime import datetime
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..auth.validation import validate_email, validate_password
from ..errors import ValidationError
from .http import APIClient
from .models import Campaign, CampaignDraft, Profile, RecordId, UserAnalytics, parse, parse_list, parse_message


def make_draft(
    title: str,
    email_text: str,
    description: str = "",
    landing_page_url: str = "",
    expiry_date: Optional[datetime] = None,
) -> CampaignDraft:
    """
    Build a campaign body, failing before any request if it is incomplete.

    Raises:
        ValidationError: Missing title or email text
    """
    try:
        return CampaignDraft(
            title=title,
            description=description or "",
            email_text=email_text,
            landing_page_url=landing_page_url or "",
            expiry_date=expiry_date,
        )
    except PydanticValidationError as e:
        field = str(e.errors()[0]["loc"][0]) if e.errors() else "campaign"
        raise ValidationError(field, "Title and email text are required") from e


class ProfileAPI:
    def __init__(self, api: APIClient):
        self.api = api

    async def get(self) -> Profile:
        return parse(Profile, await self.api.get("/api/user/profile"))

    async def update(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        confirm_password: Optional[str] = None,
    ) -> str:
        """
        Change email and/or password.

        The session store is not updated; the new email shows up after the
        next login.

        Returns:
            Backend confirmation message
        """
        payload = {}
        if email:
            payload["email"] = validate_email(email)
        if password:
            payload["password"] = validate_password(password, confirm_password)
        if not payload:
            raise ValidationError("profile", "Nothing to update")

        data = await self.api.put("/api/user/profile", payload)
        logger.info(f"Profile updated ({', '.join(sorted(payload))})")
        return parse_message(data, "Profile updated successfully")


class CampaignsAPI:
    """The current user's own campaigns."""

    def __init__(self, api: APIClient):
        self.api = api

    async def list(self) -> List[Campaign]:
        return parse_list(Campaign, await self.api.get("/api/user/campaigns"))

    async def get(self, campaign_id: RecordId) -> Campaign:
        return parse(Campaign, await self.api.get(f"/api/user/campaigns/{campaign_id}"))

    async def create(self, draft: CampaignDraft) -> Campaign:
        """Submit a new campaign; it starts in the pending state."""
        campaign = parse(Campaign, await self.api.post("/api/user/campaigns", draft.to_payload()))
        logger.info(f"Campaign created: {campaign.title} ({campaign.id})")
        return campaign

    async def update(self, campaign_id: RecordId, draft: CampaignDraft) -> str:
        data = await self.api.put(f"/api/user/campaigns/{campaign_id}", draft.to_payload())
        logger.info(f"Campaign updated: {campaign_id}")
        return parse_message(data, "Campaign updated successfully")

    async def delete(self, campaign_id: RecordId) -> str:
        data = await self.api.delete(f"/api/user/campaigns/{campaign_id}")
        logger.info(f"Campaign deleted: {campaign_id}")
        return parse_message(data, "Campaign deleted successfully")


class AnalyticsAPI:
    def __init__(self, api: APIClient):
        self.api = api

    async def get(self) -> UserAnalytics:
        return parse(UserAnalytics, await self.api.get("/api/user/analytics"))
