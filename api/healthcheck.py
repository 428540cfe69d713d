from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log
import logging
from database import get_db
from utils.logger_factory import new_logger

health_retry_logger = logging.getLogger("health_check_retry")

router = APIRouter()

@router.get("/health")
@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(OperationalError),
    before_sleep=before_sleep_log(health_retry_logger, logging.WARNING),
    reraise=True
)
def health_check(db: Session = Depends(get_db)):
    """
    Runs SELECT 1 against the database.

    Returns:
        200: API and database reachable
        500: database unreachable or answered unexpectedly
    """
    log = new_logger("health_check")

    try:
        row = db.execute(text("SELECT 1 AS health_check")).fetchone()
    except OperationalError:
        # Retried by the decorator
        raise
    except Exception as e:
        log.error(f"Health check failed: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail={"status": "unhealthy", "database": "disconnected", "error": str(e)}
        )

    if not row or row[0] != 1:
        log.error("Health check failed - unexpected database response")
        raise HTTPException(status_code=500, detail={"status": "unhealthy", "database": "error"})

    log.info("Health check passed")
    return {"status": "healthy", "database": "connected"}
