from pydantic import BaseModel
from datetime import datetime
from typing import Dict, List, Optional
from leadflow.leads.schemas import LeadSummary
from leadflow.targets.schemas import TargetRead
from leadflow.users.schemas import UserSummary

class PipelineBucket(BaseModel):
    count: int
    leads: List[LeadSummary]

class TodayPipeline(BaseModel):
    date: datetime
    follow_ups_today: PipelineBucket
    overdue: PipelineBucket
    new_leads: PipelineBucket
    hot_deals: PipelineBucket

class LeadStatistics(BaseModel):
    total_leads: int
    converted_leads: int
    conversion_rate: float
    by_status: Dict[str, int]
    by_category: Dict[str, int]
    pipeline_value: float
    revenue: float

class SalesPerformance(BaseModel):
    sales_person: UserSummary
    total_leads: int
    converted_leads: int
    conversion_rate: float
    revenue: float
    current_target: Optional[TargetRead] = None
