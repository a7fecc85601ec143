import logging
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import List, Optional
import uuid

from leadflow.database import get_session
from leadflow.auth.router import CurrentUser
from leadflow.exceptions import PersistenceError
from leadflow.leads.schemas import (
    ActivityCreate,
    LeadAssign,
    LeadCreate,
    LeadRead,
    LeadSummary,
    LeadUpdate,
    RemarkCreate,
)
from leadflow.leads.models import LeadCategory, LeadStatus
from leadflow.leads import ledger, service
from leadflow.targets import service as targets_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])

MAX_PAGE_SIZE = 500

@router.post("/", response_model=LeadRead, status_code=201)
def create_lead(
    lead_create: LeadCreate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.create_lead(session, lead_create, current_user)
    return LeadRead.model_validate(lead)

@router.get("/", response_model=List[LeadSummary])
def read_leads(
    current_user: CurrentUser,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
    status: Optional[str] = Query(None),
    category: Optional[LeadCategory] = Query(None),
    sales_person_id: Optional[uuid.UUID] = Query(None),
    include_inactive: bool = False,
    session: Session = Depends(get_session)
):
    return service.get_leads(
        session,
        current_user,
        skip,
        limit,
        service.parse_status(status),
        category,
        sales_person_id,
        include_inactive,
    )

@router.get("/{lead_id}", response_model=LeadRead)
def read_lead(
    lead_id: uuid.UUID,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.get_lead(session, lead_id, current_user)
    return LeadRead.model_validate(lead)

@router.put("/{lead_id}", response_model=LeadRead)
def update_lead(
    lead_id: uuid.UUID,
    lead_update: LeadUpdate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.update_lead(session, lead_id, lead_update, current_user)

    # Conversions move the owner's numbers; refresh them in the same request.
    # The lead is already committed, so a failed recalculation does not fail
    # the update. Targets are recalculated again on the next /my-targets read.
    if lead.status == LeadStatus.CONVERTED:
        try:
            targets_service.recalculate(session, lead.sales_person_id)
        except PersistenceError:
            logger.warning(
                "Target recalculation failed for %s after updating lead %s",
                lead.sales_person_id, lead_id,
            )
        session.refresh(lead)

    return LeadRead.model_validate(lead)

@router.put("/{lead_id}/assign", response_model=LeadRead)
def assign_lead(
    lead_id: uuid.UUID,
    assignment: LeadAssign,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.reassign_lead(session, lead_id, assignment.sales_person_id, current_user)
    return LeadRead.model_validate(lead)

@router.post("/{lead_id}/activity", response_model=LeadRead, status_code=201)
def add_activity(
    lead_id: uuid.UUID,
    activity_create: ActivityCreate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.find_lead(session, lead_id)
    lead = ledger.add_activity(session, lead, activity_create, current_user)
    return LeadRead.model_validate(lead)

@router.post("/{lead_id}/remarks", response_model=LeadRead, status_code=201)
def add_remark(
    lead_id: uuid.UUID,
    remark: RemarkCreate,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    lead = service.find_lead(session, lead_id)
    lead = ledger.add_remark(session, lead, remark.text, current_user)
    return LeadRead.model_validate(lead)

@router.delete("/{lead_id}")
def delete_lead(
    lead_id: uuid.UUID,
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    service.delete_lead(session, lead_id, current_user)
    return {"ok": True, "message": "Lead deleted successfully"}
