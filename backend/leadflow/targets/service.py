"""Sales targets and the achievement recalculation engine.

Achievements are derived from lead data: for each active target whose period
contains "now", the achieved numbers are recomputed from scratch over that
period's window and overwritten, so running the engine twice in a row gives
the same result.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from leadflow.auth.permissions import Capability, authorize, scope_owner
from leadflow.database import commit
from leadflow.exceptions import DuplicateTargetError, NotFoundError, ValidationError
from leadflow.leads.models import Lead, LeadStatus
from leadflow.periods import (
    Window,
    as_utc,
    iso_week_window,
    month_window,
    quarter_of,
    quarter_window,
    utcnow,
    year_window,
)
from leadflow.targets.models import SalesTarget, TargetType
from leadflow.targets.schemas import TargetCreate, TargetUpdate
from leadflow.users.models import User
from leadflow.users.service import require_active_sales_person

logger = logging.getLogger(__name__)

# Which field names the period of each target type, and its valid range
PERIOD_FIELDS = {
    TargetType.MONTHLY: ("month", 1, 12),
    TargetType.WEEKLY: ("week", 1, 53),
    TargetType.QUARTERLY: ("quarter", 1, 4),
}

def resolve_period(target_type: TargetType, year: int, month=None, week=None, quarter=None) -> int:
    """Validate the period fields for ``target_type`` and return the period number."""
    given = {"month": month, "week": week, "quarter": quarter}
    bounds = PERIOD_FIELDS.get(target_type)

    for name, value in given.items():
        if value is not None and (bounds is None or name != bounds[0]):
            raise ValidationError(name, f"not allowed for {target_type.value} targets")
    if bounds is None:
        return 0

    name, low, high = bounds
    value = given[name]
    if value is None:
        raise ValidationError(name, f"is required for {target_type.value} targets")
    if not low <= value <= high:
        raise ValidationError(name, f"must be between {low} and {high}")
    if target_type == TargetType.WEEKLY:
        try:
            iso_week_window(year, value)
        except ValueError:
            raise ValidationError("week", f"{year} has no ISO week {value}")
    return value

def period_window(target_type: TargetType, year: int, period: int) -> Window:
    if target_type == TargetType.MONTHLY:
        return month_window(year, period)
    if target_type == TargetType.WEEKLY:
        return iso_week_window(year, period)
    if target_type == TargetType.QUARTERLY:
        return quarter_window(year, period)
    return year_window(year)

def current_period(target_type: TargetType, now: datetime) -> Tuple[int, int]:
    now = as_utc(now)
    if target_type == TargetType.MONTHLY:
        return now.year, now.month
    if target_type == TargetType.WEEKLY:
        iso = now.isocalendar()
        return iso[0], iso[1]
    if target_type == TargetType.QUARTERLY:
        return now.year, quarter_of(now.month)
    return now.year, 0

def find_target(session: Session, target_id: uuid.UUID) -> SalesTarget:
    target = session.get(SalesTarget, target_id)
    if not target:
        raise NotFoundError("Sales target")
    return target

def find_current_target(
    session: Session,
    sales_person_id: uuid.UUID,
    target_type: TargetType,
    now: Optional[datetime] = None
) -> Optional[SalesTarget]:
    year, period = current_period(target_type, now or utcnow())
    return session.exec(
        select(SalesTarget)
        .where(SalesTarget.sales_person_id == sales_person_id)
        .where(SalesTarget.target_type == target_type)
        .where(SalesTarget.year == year)
        .where(SalesTarget.period == period)
        .where(SalesTarget.is_active == True)  # noqa: E712
    ).first()

def create_target(session: Session, target_create: TargetCreate, caller: User) -> SalesTarget:
    authorize(caller, Capability.MANAGE_TARGETS)
    require_active_sales_person(session, target_create.sales_person_id)

    period = resolve_period(
        target_create.target_type,
        target_create.year,
        target_create.month,
        target_create.week,
        target_create.quarter,
    )
    db_target = SalesTarget(
        **target_create.model_dump(),
        period=period,
        set_by_id=caller.id,
    )
    session.add(db_target)
    try:
        commit(session, on_conflict=DuplicateTargetError())
    except DuplicateTargetError:
        logger.warning(
            "Duplicate %s target for %s (%s/%s) rejected",
            target_create.target_type.value, target_create.sales_person_id, target_create.year, period,
        )
        raise
    session.refresh(db_target)

    logger.info("Target %s created for %s by %s", db_target.id, db_target.sales_person_id, caller.id)
    return db_target

def update_target(
    session: Session,
    target_id: uuid.UUID,
    target_update: TargetUpdate,
    caller: User
) -> SalesTarget:
    authorize(caller, Capability.MANAGE_TARGETS)
    db_target = find_target(session, target_id)

    update_data = target_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if value is None and key != "notes":
            raise ValidationError(key, "cannot be empty")
        setattr(db_target, key, value)
    db_target.updated_at = utcnow()

    session.add(db_target)
    commit(session)
    session.refresh(db_target)
    return db_target

def compute_achievements(session: Session, sales_person_id: uuid.UUID, window: Window) -> Tuple[int, int, float]:
    """Leads created, leads converted and converted revenue inside ``window``."""
    start, end = window

    leads_created = session.exec(
        select(func.count(Lead.id))
        .where(Lead.sales_person_id == sales_person_id)
        .where(Lead.created_at >= start)
        .where(Lead.created_at < end)
    ).one()

    # Converted leads without an actual value still count, adding 0 revenue
    conversions, revenue = session.exec(
        select(func.count(Lead.id), func.coalesce(func.sum(Lead.actual_value), 0))
        .where(Lead.sales_person_id == sales_person_id)
        .where(Lead.status == LeadStatus.CONVERTED)
        .where(Lead.conversion_date >= start)
        .where(Lead.conversion_date < end)
    ).one()

    return leads_created, conversions, float(revenue)

def recalculate(session: Session, sales_person_id: uuid.UUID, now: Optional[datetime] = None) -> List[SalesTarget]:
    """Refresh the achieved numbers of the sales person's current targets.

    The monthly target is the one dashboards show; weekly, quarterly and
    yearly targets covering ``now`` are refreshed the same way. A period with
    no active target is skipped, so this never fails for lack of targets.
    """
    now = now or utcnow()
    updated = []

    for target_type in TargetType:
        target = find_current_target(session, sales_person_id, target_type, now)
        if target is None:
            continue

        window = period_window(target.target_type, target.year, target.period)
        leads_created, conversions, revenue = compute_achievements(session, sales_person_id, window)

        target.leads_achieved = leads_created
        target.conversions_achieved = conversions
        target.revenue_achieved = revenue
        target.updated_at = utcnow()
        session.add(target)
        updated.append(target)

    if not updated:
        return updated

    commit(session)
    for target in updated:
        session.refresh(target)
        logger.info(
            "Recalculated %s target %s: leads=%d conversions=%d revenue=%.2f",
            target.target_type.value, target.id,
            target.leads_achieved, target.conversions_achieved, target.revenue_achieved,
        )
    return updated

def list_targets(
    session: Session,
    caller: User,
    sales_person_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None
) -> List[SalesTarget]:
    """Active targets, recalculated first so the achievements are current."""
    owner_id = scope_owner(caller, sales_person_id, Capability.VIEW_TARGETS)

    query = select(SalesTarget).where(SalesTarget.is_active == True)  # noqa: E712
    if owner_id:
        query = query.where(SalesTarget.sales_person_id == owner_id)
        owners = [owner_id]
    else:
        owners = session.exec(
            select(SalesTarget.sales_person_id)
            .where(SalesTarget.is_active == True)  # noqa: E712
            .distinct()
        ).all()

    for owner in owners:
        recalculate(session, owner, now)

    query = query.order_by(SalesTarget.year.desc(), SalesTarget.period.desc())
    return session.exec(query).all()
