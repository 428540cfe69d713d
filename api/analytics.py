from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from database import get_db
from schemas.analytics import AnalyticsSummary
from services.analytics_service import SummaryLoader
from services.page_visit_store import PageVisitStore
from utils.jwt_auth import require_roles
from utils.logger_factory import new_logger

router = APIRouter()


@router.get("/analytics/summary", response_model=AnalyticsSummary)
def get_analytics_summary(
    db: Session = Depends(get_db),
    current_user = Depends(require_roles("admin"))
):
    """
    Summary statistics over the full page-visit log for the admin analytics view.
    """
    log = new_logger("get_analytics_summary")
    log.info(f"Analytics summary requested by {current_user.get('user_id')}")

    loader = SummaryLoader(PageVisitStore(db))
    summary = loader.load()

    if loader.status == SummaryLoader.FAILED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load analytics"
        )

    log.info(f"Analytics summary built from {summary.total_visits} visits")
    return summary
