from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from database import get_db
from schemas.page_visit import RecordVisitRequest
from services.analytics_service import record_page_view
from services.page_visit_store import PageVisitStore
from utils.visitor_identity import CookieStorage, VisitorIdentityProvider
from utils.logger_factory import new_logger

router = APIRouter()


@router.post("/visits/record", status_code=status.HTTP_204_NO_CONTENT)
def record_visit(
    visit_data: RecordVisitRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Record a page view for the public site.
    Always answers 204; a failed insert is logged and dropped.
    """
    log = new_logger("record_visit")
    log.info(f"Recording visit to {visit_data.page_path}")

    identity = VisitorIdentityProvider(CookieStorage(request, response))
    record_page_view(
        PageVisitStore(db),
        identity,
        page_path=visit_data.page_path,
        referrer=visit_data.referrer,
        user_agent=request.headers.get("User-Agent"),
    )
