from pydantic import BaseModel, ConfigDict, Field, computed_field
from datetime import datetime
import uuid
from typing import Optional
from leadflow.targets.models import TargetType
from leadflow.users.schemas import UserSummary

def achievement_percentage(achieved: float, target: float) -> float:
    if not target or target <= 0:
        return 0.0
    return round(achieved / target * 100, 2)

class TargetCreate(BaseModel):
    sales_person_id: uuid.UUID
    target_type: TargetType
    year: int = Field(ge=2000, le=2100)
    month: Optional[int] = None
    week: Optional[int] = None
    quarter: Optional[int] = None
    leads_target: int = Field(default=0, ge=0)
    conversions_target: int = Field(default=0, ge=0)
    revenue_target: float = Field(default=0, ge=0)
    notes: Optional[str] = None

class TargetUpdate(BaseModel):
    leads_target: Optional[int] = Field(default=None, ge=0)
    conversions_target: Optional[int] = Field(default=None, ge=0)
    revenue_target: Optional[float] = Field(default=None, ge=0)
    leads_achieved: Optional[int] = Field(default=None, ge=0)
    conversions_achieved: Optional[int] = Field(default=None, ge=0)
    revenue_achieved: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    is_active: Optional[bool] = None

class TargetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sales_person_id: uuid.UUID
    sales_person: Optional[UserSummary] = None
    target_type: TargetType
    year: int
    month: Optional[int] = None
    week: Optional[int] = None
    quarter: Optional[int] = None
    leads_target: int
    conversions_target: int
    revenue_target: float
    leads_achieved: int
    conversions_achieved: int
    revenue_achieved: float
    set_by_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def leads_percentage(self) -> float:
        return achievement_percentage(self.leads_achieved, self.leads_target)

    @computed_field
    @property
    def conversions_percentage(self) -> float:
        return achievement_percentage(self.conversions_achieved, self.conversions_target)

    @computed_field
    @property
    def revenue_percentage(self) -> float:
        return achievement_percentage(self.revenue_achieved, self.revenue_target)
