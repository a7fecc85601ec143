from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from typing import List, Optional
import uuid

from leadflow.database import get_session
from leadflow.auth.router import CurrentUser
from leadflow.auth.permissions import Capability, authorize
from leadflow.users.schemas import UserCreate, UserRead, UserUpdate, UserApproval, UserStatusUpdate
from leadflow.users.models import UserRole
from leadflow.users import service

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserRead, status_code=201)
def register_user(user_create: UserCreate, session: Session = Depends(get_session)):
    if service.get_user_by_email(session, user_create.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    return service.create_user(session, user_create)

@router.get("/me", response_model=UserRead)
def read_me(current_user: CurrentUser):
    return current_user

@router.put("/me", response_model=UserRead)
def update_me(user_update: UserUpdate, current_user: CurrentUser, session: Session = Depends(get_session)):
    return service.update_user(session, current_user, user_update)

@router.get("/", response_model=List[UserRead])
def read_users(
    current_user: CurrentUser,
    offset: int = 0,
    limit: int = 100,
    role: Optional[UserRole] = Query(None),
    session: Session = Depends(get_session)
):
    authorize(current_user, Capability.MANAGE_USERS)
    return service.get_all_users(session, offset, limit, role)

@router.put("/{user_id}/approval", response_model=UserRead)
def approve_user(
    user_id: uuid.UUID,
    approval: UserApproval,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    authorize(current_user, Capability.MANAGE_USERS)
    return service.set_approval(session, user_id, approval)

@router.put("/{user_id}/status", response_model=UserRead)
def update_user_status(
    user_id: uuid.UUID,
    status_update: UserStatusUpdate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    authorize(current_user, Capability.MANAGE_USERS)
    return service.set_active(session, user_id, status_update.is_active)
