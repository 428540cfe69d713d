import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from database import get_db
from utils.logger_factory import new_logger


def presence_enabled() -> bool:
    return os.getenv("PRESENCE_ENABLED", "false").lower() in ("1", "true", "yes")


async def start_presence_tracker():
    """Join the visitor presence channel for the admin live counter."""
    from services.presence_service import PresenceTracker
    from utils.supabase_realtime import create_realtime_client, supabase_channel_factory
    from utils.visitor_identity import JsonFileStorage, VisitorIdentityProvider

    client = await create_realtime_client()
    identity = VisitorIdentityProvider(JsonFileStorage(os.getenv("PRESENCE_IDENTITY_PATH", ".presence/identity.json")))
    tracker = PresenceTracker(
        supabase_channel_factory(client),
        identity,
        page=os.getenv("PRESENCE_PAGE", "/admin"),
    )
    await tracker.start()
    return tracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    log = new_logger("lifespan")
    app.state.presence_tracker = None
    if presence_enabled():
        try:
            app.state.presence_tracker = await start_presence_tracker()
        except Exception as e:
            log.warning(f"Presence tracker unavailable: {type(e).__name__}: {str(e)}")
    try:
        yield
    finally:
        if app.state.presence_tracker is not None:
            await app.state.presence_tracker.stop()


app = FastAPI(lifespan=lifespan)

@app.middleware("http")
async def log_request(request: Request, call_next):
    log = new_logger("log_request")
    log.info(f"INCOMING REQUEST: {request.method} {request.url.path}")
    response = await call_next(request)
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "Agency site API deployed."}

from api.visits import router as visits_router
from api.analytics import router as analytics_router
from api.presence import router as presence_router
from api.healthcheck import router as health_router

app.include_router(visits_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(presence_router, prefix="/api")
app.include_router(health_router, prefix="/api")
