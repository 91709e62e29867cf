"""FastAPI application entry point."""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from campusconnect.config import settings
from campusconnect.database import Base, SessionLocal, engine
from campusconnect.errors import CampusConnectError
from campusconnect.logging_config import configure_logging

# Import routers
from campusconnect.routers import auth, clearance, conversations, notifications, organizations, users
from campusconnect.services import auth_service

# Import all models so Base.metadata knows about them
from campusconnect.models.user import User                              # noqa: F401
from campusconnect.models.organization import Club, Department          # noqa: F401
from campusconnect.models.clearance_request import ClearanceRequest     # noqa: F401
from campusconnect.models.conversation import Conversation, ConversationParticipant  # noqa: F401
from campusconnect.models.message import Message                        # noqa: F401

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CampusConnect",
    description="Student clearance workflow and campus messaging",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CampusConnectError)
async def campusconnect_error_handler(request: Request, exc: CampusConnectError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(organizations.departments_router, prefix="/api/departments", tags=["Departments"])
app.include_router(organizations.clubs_router, prefix="/api/clubs", tags=["Clubs"])
app.include_router(clearance.router, prefix="/api/clearance", tags=["Clearance"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["Conversations"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    if settings.BOOTSTRAP_ADMIN_EMAIL and settings.BOOTSTRAP_ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            auth_service.ensure_bootstrap_admin(
                db, settings.BOOTSTRAP_ADMIN_EMAIL, settings.BOOTSTRAP_ADMIN_PASSWORD, settings.BOOTSTRAP_ADMIN_NAME
            )
        finally:
            db.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
