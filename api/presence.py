from fastapi import APIRouter, Depends, Request
from schemas.presence import PresenceSnapshotResponse
from utils.jwt_auth import require_roles

router = APIRouter()


@router.get("/presence", response_model=PresenceSnapshotResponse)
def get_presence(
    request: Request,
    current_user = Depends(require_roles("admin"))
):
    """Live visitor count for the admin dashboard, from the server's presence tracker if one is running."""
    tracker = getattr(request.app.state, "presence_tracker", None)
    if tracker is None:
        return PresenceSnapshotResponse(count=0, connected=False)
    snapshot = tracker.snapshot()
    return PresenceSnapshotResponse(count=snapshot.count, connected=snapshot.connected)
