from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field, field_validator
from datetime import datetime
import uuid
from typing import Annotated, List, Optional
from leadflow.leads.models import LeadStatus, LeadCategory, LeadPriority, LeadSource, coerce_status
from leadflow.leads.history_models import ActivityType
from leadflow.periods import as_utc, ceil_days, utcnow
from leadflow.users.schemas import UserSummary

# Accepts the legacy pending/confirmed values as well as canonical ones
StatusInput = Annotated[LeadStatus, BeforeValidator(coerce_status)]

def _clean_text(value):
    if isinstance(value, str):
        return value.strip()
    return value

class LeadFields(BaseModel):
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    company: Optional[str] = None
    category: Optional[LeadCategory] = None
    priority: Optional[LeadPriority] = None
    source: Optional[LeadSource] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None
    target_close_date: Optional[datetime] = None

    @field_validator("client_email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("client_phone", "company", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _clean_text(value)

class LeadCreate(LeadFields):
    # Optional here so a missing name surfaces as a 400 from the service
    client_name: Optional[str] = None
    # Admin only: the sales person who will own the lead
    sales_person_id: Optional[uuid.UUID] = None

    @field_validator("client_name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return _clean_text(value)

class LeadUpdate(LeadFields):
    client_name: Optional[str] = None
    status: Optional[StatusInput] = None
    actual_value: Optional[float] = Field(default=None, ge=0)
    lost_reason: Optional[str] = None
    converted_to_project_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None

    @field_validator("client_name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return _clean_text(value)

class LeadAssign(BaseModel):
    sales_person_id: uuid.UUID

class ActivityCreate(BaseModel):
    type: ActivityType
    description: Optional[str] = None
    notes: Optional[str] = None
    outcome: Optional[str] = None
    next_action: Optional[str] = None

class RemarkCreate(BaseModel):
    text: Optional[str] = None

class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    position: int
    type: ActivityType
    description: str
    notes: Optional[str] = None
    outcome: Optional[str] = None
    next_action: Optional[str] = None
    performed_by_id: uuid.UUID
    performed_at: datetime

class RemarkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    position: int
    text: str
    added_by: UserSummary
    added_at: datetime

class LeadSummary(BaseModel):
    """Compact row used by list views and pipeline buckets."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_name: str
    company: Optional[str] = None
    category: LeadCategory
    priority: LeadPriority
    status: LeadStatus
    estimated_value: float
    actual_value: Optional[float] = None
    sales_person_id: uuid.UUID
    next_follow_up_date: Optional[datetime] = None
    conversion_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime

class LeadRead(LeadSummary):
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    source: LeadSource
    description: Optional[str] = None
    lost_reason: Optional[str] = None
    sales_person: UserSummary
    assigned_by_id: Optional[uuid.UUID] = None
    assigned_date: datetime
    last_contacted_date: Optional[datetime] = None
    target_close_date: Optional[datetime] = None
    actual_close_date: Optional[datetime] = None
    converted_to_project_id: Optional[uuid.UUID] = None
    updated_at: datetime
    activities: List[ActivityRead] = []
    remarks: List[RemarkRead] = []

    @computed_field
    @property
    def days_since_creation(self) -> int:
        return ceil_days(abs(utcnow() - as_utc(self.created_at)))

    @computed_field
    @property
    def days_until_follow_up(self) -> Optional[int]:
        if self.next_follow_up_date is None:
            return None
        return ceil_days(as_utc(self.next_follow_up_date) - utcnow())
