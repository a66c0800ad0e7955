"""
REST client for the SEAP backend.
"""

from .http import APIClient
from .admin import AdminAPI
from .simulation import SimulationAPI
from .user import AnalyticsAPI, CampaignsAPI, ProfileAPI, make_draft
from .models import (
    AdminAnalytics,
    AdminCampaign,
    AdminUser,
    AuditLogEntry,
    AwarenessPage,
    Campaign,
    CampaignDraft,
    CampaignStatus,
    HealthStatus,
    LeaderboardEntry,
    Profile,
    SimulationLanding,
    SimulationSubmitResult,
    UserAnalytics,
)

__all__ = [
    "APIClient",
    "AdminAPI",
    "AnalyticsAPI",
    "CampaignsAPI",
    "ProfileAPI",
    "SimulationAPI",
    "make_draft",
    # Wire models
    "AdminAnalytics",
    "AdminCampaign",
    "AdminUser",
    "AuditLogEntry",
    "AwarenessPage",
    "Campaign",
    "CampaignDraft",
    "CampaignStatus",
    "HealthStatus",
    "LeaderboardEntry",
    "Profile",
    "SimulationLanding",
    "SimulationSubmitResult",
    "UserAnalytics",
]
