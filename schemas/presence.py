from pydantic import BaseModel


class PresenceSnapshotResponse(BaseModel):
    count: int
    connected: bool
