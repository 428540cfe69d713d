import uuid
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func
from database import Base


def _new_event_id():
    return str(uuid.uuid4())


class PageVisit(Base):
    """One navigation on the public site. Rows are append-only."""
    __tablename__ = 'page_visit_events'

    id = Column(String(36), primary_key=True, default=_new_event_id)
    page_path = Column(String(512), nullable=False)
    visitor_id = Column(String(64), nullable=True)  # Stored visitor identity, not tied to auth
    referrer = Column(String(1024), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now(), server_default=func.now())

    __table_args__ = (
        Index('idx_page_visit_events_created_at', 'created_at'),
        Index('idx_page_visit_events_page_path', 'page_path'),
    )
