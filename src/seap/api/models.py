"""
Wire models for SEAP backend payloads.

These mirror the JSON the backend returns. They are display records only:
fetched per view, never cached, and tolerant of extra fields.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import UNEXPECTED_RESPONSE, APIError


RecordId = Union[int, str]


class CampaignStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WireModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class Campaign(WireModel):
    """A user's simulated phishing campaign."""
    id: RecordId
    user_id: Optional[RecordId] = None
    title: str
    description: str = ""
    email_text: str = ""
    landing_page_url: str = ""
    tracking_token: str = ""
    status: CampaignStatus = CampaignStatus.PENDING
    expiry_date: Optional[datetime] = None
    admin_comment: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminCampaign(Campaign):
    """Campaign as listed for review, with the owner's email."""
    user_email: str = ""


class CampaignDraft(BaseModel):
    """
    Body for creating or updating a campaign.

    Attributes:
        title: Campaign title (required)
        description: Free-text description
        email_text: Body of the simulated phishing email (required)
        landing_page_url: Page recipients are sent to
        expiry_date: Optional expiry; None clears it on update
    """
    title: str
    description: str = ""
    email_text: str
    landing_page_url: str = ""
    expiry_date: Optional[datetime] = None

    @field_validator("title", "email_text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class AdminUser(WireModel):
    id: RecordId
    email: str
    role: str
    email_verified: bool = False
    created_at: Optional[str] = None


class Profile(WireModel):
    id: RecordId
    email: str
    role: str


class AuditLogEntry(WireModel):
    id: RecordId
    admin_id: Optional[RecordId] = None
    admin_email: str = ""
    action: str
    resource_type: str = ""
    resource_id: Optional[RecordId] = None
    details: str = ""
    created_at: Optional[str] = None


class LeaderboardEntry(WireModel):
    user_id: RecordId
    email: str
    total_clicks: int = 0
    total_conversions: int = 0
    total_campaigns: int = 0
    rejected_count: int = 0
    score: int = 0


class TimelineEntry(WireModel):
    date: str
    count: int = 0


class UserStats(WireModel):
    total_campaigns: int = 0
    approved_campaigns: int = 0
    pending_campaigns: int = 0
    rejected_campaigns: int = 0
    total_clicks: int = 0
    total_submissions: int = 0
    total_awareness_views: int = 0
    conversion_rate: float = 0.0


class CampaignStats(WireModel):
    id: RecordId
    title: str
    status: str = ""
    clicks: int = 0
    submissions: int = 0
    awareness_views: int = 0


class UserAnalytics(WireModel):
    stats: UserStats = Field(default_factory=UserStats)
    campaigns: List[CampaignStats] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)

    @field_validator("campaigns", "timeline", mode="before")
    @classmethod
    def _null_list(cls, value):
        return value or []


class AdminStats(WireModel):
    total_users: int = 0
    total_campaigns: int = 0
    approved_campaigns: int = 0
    pending_campaigns: int = 0
    rejected_campaigns: int = 0
    total_events: int = 0
    total_clicks: int = 0
    total_conversions: int = 0
    average_conversion_rate: float = 0.0


class StatusCount(WireModel):
    status: str
    count: int = 0


class AdminAnalytics(WireModel):
    stats: AdminStats = Field(default_factory=AdminStats)
    distribution: List[StatusCount] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)

    @field_validator("distribution", "timeline", mode="before")
    @classmethod
    def _null_list(cls, value):
        return value or []


class HealthStatus(WireModel):
    status: str = "up"


class SimulationLanding(WireModel):
    campaign_id: RecordId
    title: str = ""
    landing_url: str = ""
    token: str = ""


class SimulationSubmitResult(WireModel):
    redirect: str = ""
    message: str = ""


class AwarenessContent(WireModel):
    title: str = ""
    description: str = ""
    tips: str = ""


class AwarenessPage(WireModel):
    campaign_id: RecordId
    message: str = ""
    content: AwarenessContent = Field(default_factory=AwarenessContent)


def parse(model, data: Any):
    """
    Validate a backend payload into a model.

    Raises:
        APIError: If the payload does not match the model
    """
    try:
        return model.model_validate(data)
    except ValueError as e:
        raise APIError(0, f"{UNEXPECTED_RESPONSE}: {e}") from e


def parse_list(model, data: Any) -> list:
    """Validate a JSON array (null counts as empty) into a list of models."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise APIError(0, f"{UNEXPECTED_RESPONSE}: expected a list")
    return [parse(model, item) for item in data]


def parse_message(data: Any, default: str) -> str:
    """
    Confirmation text from a {"message": ...} body.

    Raises:
        APIError: If the body is JSON but not an object
    """
    if data is None:
        return default
    if not isinstance(data, dict):
        raise APIError(0, f"{UNEXPECTED_RESPONSE}: expected an object")
    return data.get("message") or default
