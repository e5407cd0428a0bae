import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fieldbook.database import init_db
from fieldbook.routes import (
    auth,
    complexes,
    dashboard,
    fields,
    reservations,
    reviews,
    search,
    services,
)
from fieldbook.services.session_store import AuthEvent, SessionStore

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fieldbook API")


DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def get_build_info() -> str:
    """BUILD_HASH env var, else the short git revision, else the start time"""
    if os.getenv("BUILD_HASH"):
        return os.environ["BUILD_HASH"]
    try:
        revision = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
    except (OSError, subprocess.SubprocessError):
        revision = None
    if revision is not None and revision.returncode == 0:
        return revision.stdout.strip()
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def cors_origins() -> list:
    extra = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    return DEFAULT_CORS_ORIGINS + extra


BUILD_HASH = get_build_info()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(complexes.router, prefix="/api", tags=["complexes"])
app.include_router(fields.router, prefix="/api", tags=["fields"])
app.include_router(services.router, prefix="/api", tags=["services"])
app.include_router(reviews.router, prefix="/api", tags=["reviews"])
app.include_router(reservations.router, prefix="/api", tags=["reservations"])

# Public search (no auth)
app.include_router(search.router, prefix="/api", tags=["search"])

# Facility admin dashboard
app.include_router(dashboard.router, prefix="/api", tags=["dashboard"])


def _log_auth_event(event: AuthEvent, auth_session) -> None:
    if auth_session is not None:
        logger.info("Auth %s for user %s", event.value, auth_session.user_id)


@app.on_event("startup")
def on_startup():
    init_db()
    app.state.session_store = SessionStore()
    app.state.unsubscribe_auth_log = app.state.session_store.subscribe(_log_auth_event)
    logger.info("Fieldbook API started (build %s)", BUILD_HASH)


@app.on_event("shutdown")
def on_shutdown():
    app.state.unsubscribe_auth_log()


@app.get("/api/health")
def health_check():
    """Health check reporting the running build"""
    return {"app_name": "Fieldbook API", "build_hash": BUILD_HASH, "status": "healthy"}
