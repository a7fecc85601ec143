import logging
from typing import Optional, List
from sqlmodel import Session, select
from datetime import datetime
import uuid

from leadflow.auth.permissions import Capability, authorize, scope_owner
from leadflow.database import commit
from leadflow.exceptions import ForbiddenError, NotFoundError, ValidationError
from leadflow.leads.history_models import ActivityType
from leadflow.leads.ledger import record_activity
from leadflow.leads.models import Lead, LeadCategory, LeadStatus, coerce_status
from leadflow.leads.schemas import LeadCreate, LeadUpdate
from leadflow.periods import utcnow
from leadflow.users.models import User
from leadflow.users.service import require_active_sales_person

logger = logging.getLogger(__name__)

# Columns that exist with a default but may never be cleared to null
NON_NULLABLE_FIELDS = (
    "client_name", "category", "priority", "source", "status", "estimated_value", "is_active",
)

def parse_status(value: Optional[str]) -> Optional[LeadStatus]:
    if value is None:
        return None
    try:
        return LeadStatus(coerce_status(value))
    except ValueError:
        raise ValidationError("status", f"unknown status '{value}'")

def find_lead(session: Session, lead_id: uuid.UUID) -> Lead:
    lead = session.get(Lead, lead_id)
    if not lead:
        raise NotFoundError("Lead")
    return lead

def get_lead(session: Session, lead_id: uuid.UUID, caller: User) -> Lead:
    lead = find_lead(session, lead_id)
    authorize(caller, Capability.READ, lead.sales_person_id)
    return lead

def get_leads(
    session: Session,
    caller: User,
    skip: int = 0,
    limit: int = 100,
    status: Optional[LeadStatus] = None,
    category: Optional[LeadCategory] = None,
    sales_person_id: Optional[uuid.UUID] = None,
    include_inactive: bool = False
) -> List[Lead]:
    owner_id = scope_owner(caller, sales_person_id)
    query = select(Lead)

    if owner_id:
        query = query.where(Lead.sales_person_id == owner_id)
    if status:
        query = query.where(Lead.status == status)
    if category:
        query = query.where(Lead.category == category)
    if not include_inactive:
        query = query.where(Lead.is_active == True)  # noqa: E712

    query = query.order_by(Lead.created_at.desc())
    return session.exec(query.offset(skip).limit(limit)).all()

def create_lead(session: Session, lead_create: LeadCreate, caller: User, now: Optional[datetime] = None) -> Lead:
    authorize(caller, Capability.WRITE)

    if not lead_create.client_name:
        raise ValidationError("client_name", "is required")

    owner_id = lead_create.sales_person_id
    if caller.is_admin:
        if owner_id is None:
            raise ValidationError("sales_person_id", "is required when an admin creates a lead")
    elif owner_id is not None and owner_id != caller.id:
        raise ForbiddenError("Only an admin can create leads for another sales person")
    else:
        owner_id = caller.id
    require_active_sales_person(session, owner_id)

    # Unset/None fields fall back to the column defaults
    data = {
        key: value
        for key, value in lead_create.model_dump(exclude_unset=True, exclude={"sales_person_id"}).items()
        if value is not None
    }
    now = now or utcnow()
    db_lead = Lead(
        **data,
        sales_person_id=owner_id,
        assigned_by_id=caller.id if caller.id != owner_id else None,
        assigned_date=now,
        status=LeadStatus.NEW,
        created_at=now,
        updated_at=now,
    )
    session.add(db_lead)
    commit(session)
    session.refresh(db_lead)

    logger.info("Lead %s created for sales person %s by %s", db_lead.id, owner_id, caller.id)
    return db_lead

def update_lead(
    session: Session,
    lead_id: uuid.UUID,
    lead_update: LeadUpdate,
    caller: User,
    now: Optional[datetime] = None
) -> Lead:
    """Apply a partial update and drive the status state machine.

    Any status may follow any other. A real status change appends one
    status_change activity; the first move to ``converted`` stamps
    ``conversion_date`` (and ``actual_close_date`` if unset), which are
    never touched again afterwards.

    Recalculating sales targets after a conversion is the caller's job.
    """
    db_lead = find_lead(session, lead_id)
    authorize(caller, Capability.WRITE, db_lead.sales_person_id)

    update_data = lead_update.model_dump(exclude_unset=True)
    for key in NON_NULLABLE_FIELDS:
        if key in update_data and update_data[key] in (None, ""):
            raise ValidationError(key, "cannot be empty")

    now = now or utcnow()
    new_status = update_data.pop("status", None)

    if new_status is not None and new_status != db_lead.status:
        old_status = db_lead.status
        record_activity(
            db_lead,
            ActivityType.STATUS_CHANGE,
            f"Status changed from {old_status.value} to {new_status.value}",
            caller.id,
            now=now,
        )
        db_lead.status = new_status
        logger.info("Lead %s status %s -> %s", db_lead.id, old_status.value, new_status.value)

    if db_lead.status == LeadStatus.CONVERTED and db_lead.conversion_date is None:
        db_lead.conversion_date = now
        if db_lead.actual_close_date is None:
            db_lead.actual_close_date = now
        logger.info("Lead %s converted", db_lead.id)

    for key, value in update_data.items():
        setattr(db_lead, key, value)

    db_lead.updated_at = now
    session.add(db_lead)
    commit(session)
    session.refresh(db_lead)
    return db_lead

def reassign_lead(
    session: Session,
    lead_id: uuid.UUID,
    new_owner_id: uuid.UUID,
    caller: User,
    now: Optional[datetime] = None
) -> Lead:
    authorize(caller, Capability.REASSIGN)
    db_lead = find_lead(session, lead_id)
    new_owner = require_active_sales_person(session, new_owner_id)

    now = now or utcnow()
    previous_owner_id = db_lead.sales_person_id
    db_lead.sales_person_id = new_owner.id
    db_lead.assigned_by_id = caller.id
    db_lead.assigned_date = now
    record_activity(
        db_lead,
        ActivityType.NOTE,
        f"Lead reassigned from {previous_owner_id} to {new_owner.id}",
        caller.id,
        now=now,
    )
    db_lead.updated_at = now

    session.add(db_lead)
    commit(session)
    session.refresh(db_lead)

    logger.info("Lead %s reassigned from %s to %s by %s", db_lead.id, previous_owner_id, new_owner.id, caller.id)
    return db_lead

def delete_lead(session: Session, lead_id: uuid.UUID, caller: User) -> None:
    db_lead = find_lead(session, lead_id)
    authorize(caller, Capability.WRITE, db_lead.sales_person_id)

    session.delete(db_lead)
    commit(session)
    logger.info("Lead %s deleted by %s", lead_id, caller.id)
