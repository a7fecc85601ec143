from typing import List, Optional, TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship
import uuid
from datetime import datetime, timezone
from enum import Enum

if TYPE_CHECKING:
    from leadflow.users.models import User
    from leadflow.leads.history_models import LeadActivity, LeadRemark

class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    NEGOTIATION = "negotiation"
    CONVERTED = "converted"
    LOST = "lost"
    REJECTED = "rejected"

# Leads in these states drop out of the working pipeline
TERMINAL_STATUSES = (LeadStatus.CONVERTED, LeadStatus.LOST, LeadStatus.REJECTED)

# Older pipeline screens still send pending/confirmed; they are mapped onto
# the canonical statuses above and never stored.
LEGACY_STATUS_MAP = {
    "pending": LeadStatus.NEW,
    "confirmed": LeadStatus.QUALIFIED,
    "rejected": LeadStatus.REJECTED,
    "converted": LeadStatus.CONVERTED,
}

def coerce_status(value):
    if isinstance(value, str) and value in LEGACY_STATUS_MAP:
        return LEGACY_STATUS_MAP[value]
    return value

class LeadCategory(str, Enum):
    HOT_DEAL = "hot_deal"
    WARM = "warm"
    COLD = "cold"
    FOLLOW_UP = "follow_up"

class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

class LeadSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    COLD_CALL = "cold_call"
    EMAIL = "email"
    SOCIAL_MEDIA = "social_media"
    EVENT = "event"
    OTHER = "other"

class Lead(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Assignment
    sales_person_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    assigned_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    assigned_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Client
    client_name: str = Field(index=True)
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    company: Optional[str] = None

    category: LeadCategory = Field(default=LeadCategory.WARM, index=True)
    priority: LeadPriority = Field(default=LeadPriority.MEDIUM)
    status: LeadStatus = Field(default=LeadStatus.NEW, index=True)
    source: LeadSource = Field(default=LeadSource.OTHER)

    estimated_value: float = Field(default=0)
    actual_value: Optional[float] = None

    description: Optional[str] = None
    lost_reason: Optional[str] = None

    next_follow_up_date: Optional[datetime] = Field(default=None, index=True)
    last_contacted_date: Optional[datetime] = None
    target_close_date: Optional[datetime] = None
    # Both stamped by the state machine on first conversion, never by callers
    actual_close_date: Optional[datetime] = None
    conversion_date: Optional[datetime] = Field(default=None, index=True)

    # Project records live outside this service; only the id is kept
    converted_to_project_id: Optional[uuid.UUID] = None

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    sales_person: "User" = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Lead.sales_person_id"}
    )
    assigned_by: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Lead.assigned_by_id"}
    )
    activities: List["LeadActivity"] = Relationship(
        back_populates="lead",
        sa_relationship_kwargs={
            "order_by": "LeadActivity.position",
            "cascade": "all, delete-orphan",
        },
    )
    remarks: List["LeadRemark"] = Relationship(
        back_populates="lead",
        sa_relationship_kwargs={
            "order_by": "LeadRemark.position",
            "cascade": "all, delete-orphan",
        },
    )
