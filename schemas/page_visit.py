from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class RecordVisitRequest(BaseModel):
    page_path: str
    referrer: Optional[str] = None


class PageVisitResponse(BaseModel):
    id: str
    page_path: str
    visitor_id: Optional[str] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
