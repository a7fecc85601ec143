"""Append-only activity and remark history of a lead.

Entries are only ever appended; there is no update or delete path. Each new
entry takes the next ``position`` and a timestamp strictly later than the
previous entry's, so readers always see them in the order they were written.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
import uuid

from sqlmodel import Session

from leadflow.auth.permissions import Capability, authorize
from leadflow.database import commit
from leadflow.exceptions import ValidationError
from leadflow.leads.history_models import ActivityType, CONTACT_ACTIVITY_TYPES, LeadActivity, LeadRemark
from leadflow.leads.models import Lead
from leadflow.leads.schemas import ActivityCreate
from leadflow.periods import as_utc, utcnow
from leadflow.users.models import User

logger = logging.getLogger(__name__)

def _next_timestamp(previous: Optional[datetime], now: datetime) -> datetime:
    now = as_utc(now)
    if previous is not None:
        previous = as_utc(previous)
        if now <= previous:
            return previous + timedelta(microseconds=1)
    return now

def record_activity(
    lead: Lead,
    activity_type: ActivityType,
    description: str,
    performed_by_id: uuid.UUID,
    notes: Optional[str] = None,
    outcome: Optional[str] = None,
    next_action: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LeadActivity:
    """Append an activity to the lead in memory. The caller commits."""
    last = lead.activities[-1] if lead.activities else None
    activity = LeadActivity(
        lead_id=lead.id,
        position=last.position + 1 if last else 0,
        type=activity_type,
        description=description,
        notes=notes,
        outcome=outcome,
        next_action=next_action,
        performed_by_id=performed_by_id,
        performed_at=_next_timestamp(last.performed_at if last else None, now or utcnow()),
    )
    lead.activities.append(activity)
    return activity

def add_activity(
    session: Session,
    lead: Lead,
    activity_create: ActivityCreate,
    caller: User,
    now: Optional[datetime] = None,
) -> Lead:
    authorize(caller, Capability.WRITE, lead.sales_person_id)

    description = (activity_create.description or "").strip()
    if not description:
        raise ValidationError("description", "is required")

    activity = record_activity(
        lead,
        activity_create.type,
        description,
        caller.id,
        notes=activity_create.notes,
        outcome=activity_create.outcome,
        next_action=activity_create.next_action,
        now=now,
    )
    if activity.type in CONTACT_ACTIVITY_TYPES:
        lead.last_contacted_date = activity.performed_at
    lead.updated_at = utcnow()

    session.add(lead)
    commit(session)
    session.refresh(lead)
    logger.debug("Lead %s: %s activity at position %d", lead.id, activity.type.value, activity.position)
    return lead

def add_remark(
    session: Session,
    lead: Lead,
    text: Optional[str],
    caller: User,
    now: Optional[datetime] = None,
) -> Lead:
    authorize(caller, Capability.WRITE, lead.sales_person_id)

    text = (text or "").strip()
    if not text:
        raise ValidationError("text", "is required")

    last = lead.remarks[-1] if lead.remarks else None
    lead.remarks.append(
        LeadRemark(
            lead_id=lead.id,
            position=last.position + 1 if last else 0,
            text=text,
            added_by_id=caller.id,
            added_at=_next_timestamp(last.added_at if last else None, now or utcnow()),
        )
    )
    lead.updated_at = utcnow()

    session.add(lead)
    commit(session)
    session.refresh(lead)
    return lead
