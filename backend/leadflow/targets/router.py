from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import List, Optional
import uuid

from leadflow.database import get_session
from leadflow.auth.router import CurrentUser
from leadflow.targets.schemas import TargetCreate, TargetRead, TargetUpdate
from leadflow.targets import service

router = APIRouter(tags=["targets"])

@router.post("/targets/", response_model=TargetRead, status_code=201)
def create_target(
    target_create: TargetCreate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    target = service.create_target(session, target_create, current_user)
    return TargetRead.model_validate(target)

@router.put("/targets/{target_id}", response_model=TargetRead)
def update_target(
    target_id: uuid.UUID,
    target_update: TargetUpdate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    target = service.update_target(session, target_id, target_update, current_user)
    return TargetRead.model_validate(target)

@router.get("/my-targets", response_model=List[TargetRead])
def read_my_targets(
    current_user: CurrentUser,
    sales_person_id: Optional[uuid.UUID] = Query(None),
    session: Session = Depends(get_session)
):
    targets = service.list_targets(session, current_user, sales_person_id)
    return [TargetRead.model_validate(target) for target in targets]
