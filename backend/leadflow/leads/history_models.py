from typing import Optional, TYPE_CHECKING
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
import uuid
from datetime import datetime, timezone
from enum import Enum

if TYPE_CHECKING:
    from leadflow.users.models import User
    from leadflow.leads.models import Lead

class ActivityType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"
    STATUS_CHANGE = "status_change"
    OTHER = "other"

# Logging one of these counts as having contacted the client
CONTACT_ACTIVITY_TYPES = (ActivityType.CALL, ActivityType.EMAIL, ActivityType.MEETING)

class LeadActivity(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("lead_id", "position", name="uq_leadactivity_lead_position"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)
    # Insertion order within the lead, starting at 0
    position: int

    type: ActivityType
    description: str
    notes: Optional[str] = None
    outcome: Optional[str] = None
    next_action: Optional[str] = None

    performed_by_id: uuid.UUID = Field(foreign_key="user.id")
    performed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    lead: "Lead" = Relationship(back_populates="activities")
    performed_by: "User" = Relationship()

class LeadRemark(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("lead_id", "position", name="uq_leadremark_lead_position"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)
    position: int

    text: str
    added_by_id: uuid.UUID = Field(foreign_key="user.id")
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    lead: "Lead" = Relationship(back_populates="remarks")
    added_by: "User" = Relationship()
