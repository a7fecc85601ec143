from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional
import uuid
from leadflow.users.models import UserRole

class UserBase(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    phone: Optional[str] = None

class UserCreate(UserBase):
    # Roles are granted on approval; self-registration always starts as a client
    password: str

class UserRead(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    role: UserRole
    is_active: bool
    is_approved: bool
    created_at: datetime
    updated_at: datetime

class UserSummary(BaseModel):
    """Embedded representation used when a lead or target populates a user."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: Optional[str] = None
    email: str

class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None

class UserApproval(BaseModel):
    is_approved: bool = True
    role: Optional[UserRole] = None

class UserStatusUpdate(BaseModel):
    is_active: bool
