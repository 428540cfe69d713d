from pydantic import BaseModel
import datetime
from schemas.page_visit import PageVisitResponse


class PageViewCount(BaseModel):
    page_path: str
    count: int


class DailyVisitCount(BaseModel):
    date: datetime.date
    date_label: str  # Short chart label, e.g. "Oct 7"
    count: int


class AnalyticsSummary(BaseModel):
    total_visits: int
    today_visits: int
    weekly_visits: int
    monthly_visits: int
    page_views: list[PageViewCount] = []
    daily_visits: list[DailyVisitCount] = []
    recent_visits: list[PageVisitResponse] = []
