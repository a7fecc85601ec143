"""Read-only views over the lead store: daily pipeline, statistics, team performance."""
from datetime import datetime, timedelta
from typing import List, Optional
import uuid

from sqlalchemy import case, func
from sqlmodel import Session, select

from leadflow.auth.permissions import Capability, authorize, scope_owner
from leadflow.config import settings
from leadflow.leads.models import Lead, LeadCategory, LeadStatus, TERMINAL_STATUSES
from leadflow.leads.schemas import LeadSummary
from leadflow.periods import day_window, utcnow
from leadflow.reports.schemas import LeadStatistics, PipelineBucket, SalesPerformance, TodayPipeline
from leadflow.targets.models import TargetType
from leadflow.targets.schemas import TargetRead
from leadflow.targets.service import find_current_target
from leadflow.users.models import User, UserRole
from leadflow.users.schemas import UserSummary

def conversion_rate(converted: int, total: int) -> float:
    if not total:
        return 0.0
    return round(converted / total * 100, 2)

def _open_leads(owner_id: Optional[uuid.UUID]):
    query = (
        select(Lead)
        .where(Lead.is_active == True)  # noqa: E712
        .where(Lead.status.not_in(TERMINAL_STATUSES))
    )
    if owner_id:
        query = query.where(Lead.sales_person_id == owner_id)
    return query

def _bucket(session: Session, query) -> PipelineBucket:
    leads = session.exec(query).all()
    return PipelineBucket(
        count=len(leads),
        leads=[LeadSummary.model_validate(lead) for lead in leads],
    )

def today_pipeline(
    session: Session,
    caller: User,
    sales_person_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None
) -> TodayPipeline:
    """Split the caller's open leads into the four daily work buckets.

    The buckets are independent filters and a lead can sit in several.
    """
    owner_id = scope_owner(caller, sales_person_id, Capability.VIEW_REPORTS)
    now = now or utcnow()
    today_start, tomorrow_start = day_window(now)
    new_since = now - timedelta(days=settings.PIPELINE_NEW_LEAD_DAYS)
    open_leads = _open_leads(owner_id)

    return TodayPipeline(
        date=today_start,
        follow_ups_today=_bucket(
            session,
            open_leads
            .where(Lead.next_follow_up_date >= today_start)
            .where(Lead.next_follow_up_date < tomorrow_start)
            .order_by(Lead.next_follow_up_date),
        ),
        overdue=_bucket(
            session,
            open_leads
            .where(Lead.next_follow_up_date < today_start)
            .order_by(Lead.next_follow_up_date),
        ),
        new_leads=_bucket(
            session,
            open_leads
            .where(Lead.status == LeadStatus.NEW)
            .where(Lead.created_at >= new_since)
            .order_by(Lead.created_at.desc()),
        ),
        hot_deals=_bucket(
            session,
            open_leads
            .where(Lead.category == LeadCategory.HOT_DEAL)
            .order_by(Lead.estimated_value.desc()),
        ),
    )

def lead_statistics(
    session: Session,
    caller: User,
    sales_person_id: Optional[uuid.UUID] = None
) -> LeadStatistics:
    owner_id = scope_owner(caller, sales_person_id, Capability.VIEW_REPORTS)

    def scoped(query):
        query = query.where(Lead.is_active == True)  # noqa: E712
        if owner_id:
            query = query.where(Lead.sales_person_id == owner_id)
        return query

    by_status = {status.value: 0 for status in LeadStatus}
    for status, count in session.exec(
        scoped(select(Lead.status, func.count(Lead.id))).group_by(Lead.status)
    ).all():
        by_status[LeadStatus(status).value] = count

    by_category = {category.value: 0 for category in LeadCategory}
    for category, count in session.exec(
        scoped(select(Lead.category, func.count(Lead.id))).group_by(Lead.category)
    ).all():
        by_category[LeadCategory(category).value] = count

    pipeline_value = session.exec(
        scoped(select(func.coalesce(func.sum(Lead.estimated_value), 0)))
        .where(Lead.status.not_in(TERMINAL_STATUSES))
    ).one()
    revenue = session.exec(
        scoped(select(func.coalesce(func.sum(Lead.actual_value), 0)))
        .where(Lead.status == LeadStatus.CONVERTED)
    ).one()

    total = sum(by_status.values())
    converted = by_status[LeadStatus.CONVERTED.value]
    return LeadStatistics(
        total_leads=total,
        converted_leads=converted,
        conversion_rate=conversion_rate(converted, total),
        by_status=by_status,
        by_category=by_category,
        pipeline_value=float(pipeline_value),
        revenue=float(revenue),
    )

def admin_performance(session: Session, caller: User, now: Optional[datetime] = None) -> List[SalesPerformance]:
    """One row per active sales person, with their current monthly target as stored."""
    authorize(caller, Capability.VIEW_TEAM)
    now = now or utcnow()

    is_converted = Lead.status == LeadStatus.CONVERTED
    rows = session.exec(
        select(
            Lead.sales_person_id,
            func.count(Lead.id),
            func.sum(case((is_converted, 1), else_=0)),
            func.coalesce(func.sum(case((is_converted, Lead.actual_value), else_=0)), 0),
        )
        .where(Lead.is_active == True)  # noqa: E712
        .group_by(Lead.sales_person_id)
    ).all()
    totals = {row[0]: row[1:] for row in rows}

    sales_people = session.exec(
        select(User)
        .where(User.role == UserRole.SALES)
        .where(User.is_active == True)  # noqa: E712
        .order_by(User.name)
    ).all()

    performance = []
    for person in sales_people:
        total, converted, revenue = totals.get(person.id, (0, 0, 0))
        target = find_current_target(session, person.id, TargetType.MONTHLY, now)
        performance.append(
            SalesPerformance(
                sales_person=UserSummary.model_validate(person),
                total_leads=total,
                converted_leads=converted or 0,
                conversion_rate=conversion_rate(converted or 0, total),
                revenue=float(revenue or 0),
                current_target=TargetRead.model_validate(target) if target else None,
            )
        )
    return performance
