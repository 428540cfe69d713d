import logging
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log
from models.page_visit import PageVisit
from utils.logger_factory import new_logger

fetch_retry_logger = logging.getLogger("page_visit_fetch_retry")


class PageVisitStore:
    """Append-only access to the page_visit_events table."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, page_path: str, visitor_id: Optional[str], referrer: Optional[str],
               user_agent: Optional[str]) -> PageVisit:
        visit = PageVisit(
            page_path=page_path,
            visitor_id=visitor_id,
            referrer=referrer,
            user_agent=user_agent,
        )
        try:
            self.db.add(visit)
            self.db.commit()
            self.db.refresh(visit)
        except Exception:
            self.db.rollback()
            raise
        return visit

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(fetch_retry_logger, logging.WARNING),
        reraise=True
    )
    def fetch_all(self) -> list:
        """Every recorded visit, newest first."""
        try:
            visits = (
                self.db.query(PageVisit)
                .order_by(PageVisit.created_at.desc())
                .all()
            )
        except OperationalError:
            self.db.rollback()
            raise
        new_logger("fetch_all_visits").info(f"Fetched {len(visits)} page visits")
        return visits
