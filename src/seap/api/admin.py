"""
Administrator endpoints: campaign review, user management, audit log,
leaderboard and platform analytics.

The backend enforces the admin role; callers should still run the route
guard first so non-admins are redirected instead of getting a 403.
"""

from typing import List

from loguru import logger

from ..auth.validation import require_text
from .http import APIClient
from .models import (
    AdminAnalytics,
    AdminCampaign,
    AdminUser,
    AuditLogEntry,
    LeaderboardEntry,
    RecordId,
    parse,
    parse_list,
    parse_message,
)


class AdminAPI:
    def __init__(self, api: APIClient):
        self.api = api

    async def campaigns(self) -> List[AdminCampaign]:
        return parse_list(AdminCampaign, await self.api.get("/api/admin/campaigns"))

    async def approve_campaign(self, campaign_id: RecordId, comment: str = "") -> str:
        data = await self.api.post(
            f"/api/admin/campaigns/{campaign_id}/approve", {"comment": comment or ""}
        )
        logger.info(f"Campaign approved: {campaign_id}")
        return parse_message(data, "Campaign approved successfully")

    async def reject_campaign(self, campaign_id: RecordId, comment: str) -> str:
        """
        Reject a campaign.

        Raises:
            ValidationError: If comment is empty (no request is sent)
        """
        comment = require_text(comment, "comment", "Comment is required for rejection")
        data = await self.api.post(
            f"/api/admin/campaigns/{campaign_id}/reject", {"comment": comment}
        )
        logger.info(f"Campaign rejected: {campaign_id}")
        return parse_message(data, "Campaign rejected successfully")

    async def users(self) -> List[AdminUser]:
        return parse_list(AdminUser, await self.api.get("/api/admin/users"))

    async def delete_user(self, user_id: RecordId) -> str:
        data = await self.api.delete(f"/api/admin/users/{user_id}")
        logger.info(f"User deleted: {user_id}")
        return parse_message(data, "User deleted successfully")

    async def audit_logs(self) -> List[AuditLogEntry]:
        return parse_list(AuditLogEntry, await self.api.get("/api/admin/audit-logs"))

    async def leaderboard(self) -> List[LeaderboardEntry]:
        return parse_list(LeaderboardEntry, await self.api.get("/api/admin/leaderboard"))

    async def analytics(self) -> AdminAnalytics:
        return parse(AdminAnalytics, await self.api.get("/api/admin/analytics"))
