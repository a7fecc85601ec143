from typing import Optional, TYPE_CHECKING
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
import uuid
from datetime import datetime, timezone
from enum import Enum

if TYPE_CHECKING:
    from leadflow.users.models import User

class TargetType(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

class SalesTarget(SQLModel, table=True):
    # One target per sales person and period, enforced by the database
    __table_args__ = (
        UniqueConstraint(
            "sales_person_id", "target_type", "year", "period",
            name="uq_salestarget_person_period",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    sales_person_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    target_type: TargetType
    year: int
    month: Optional[int] = None
    week: Optional[int] = None
    quarter: Optional[int] = None
    # month, week or quarter number; 0 for yearly targets
    period: int = Field(default=0)

    leads_target: int = Field(default=0)
    conversions_target: int = Field(default=0)
    revenue_target: float = Field(default=0)

    # Overwritten by recalculation; admins may also edit them by hand
    leads_achieved: int = Field(default=0)
    conversions_achieved: int = Field(default=0)
    revenue_achieved: float = Field(default=0)

    set_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    notes: Optional[str] = None
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    sales_person: "User" = Relationship(
        sa_relationship_kwargs={"foreign_keys": "SalesTarget.sales_person_id"}
    )
