from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import List, Optional
import uuid

from leadflow.database import get_session
from leadflow.auth.router import CurrentUser
from leadflow.reports.schemas import LeadStatistics, SalesPerformance, TodayPipeline
from leadflow.reports import service

router = APIRouter(tags=["reports"])

@router.get("/today-pipeline", response_model=TodayPipeline)
def read_today_pipeline(
    current_user: CurrentUser,
    sales_person_id: Optional[uuid.UUID] = Query(None),
    session: Session = Depends(get_session)
):
    return service.today_pipeline(session, current_user, sales_person_id)

@router.get("/stats", response_model=LeadStatistics)
def read_statistics(
    current_user: CurrentUser,
    sales_person_id: Optional[uuid.UUID] = Query(None),
    session: Session = Depends(get_session)
):
    return service.lead_statistics(session, current_user, sales_person_id)

@router.get("/admin/performance", response_model=List[SalesPerformance])
def read_team_performance(
    current_user: CurrentUser,
    session: Session = Depends(get_session)
):
    return service.admin_performance(session, current_user)
