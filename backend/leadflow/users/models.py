from typing import Optional
from sqlmodel import SQLModel, Field
import uuid
from datetime import datetime, timezone
from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    SALES = "sales"
    DESIGNER = "designer"
    DEVELOPER = "developer"
    CLIENT = "client"

class User(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str

    name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = Field(default=UserRole.CLIENT, index=True)

    # Login requires both; new registrations wait for an admin to approve them
    is_active: bool = Field(default=True)
    is_approved: bool = Field(default=False)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
