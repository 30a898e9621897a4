from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
import logging
import os

from app.database import engine, SessionLocal
from app.database import Base
import app.models  # noqa: F401 (registers all models)
from app.models.user import User, Role
from app.config import settings
from app.services.user_service import hash_password
from app.routers import health, auth, equipment, transactions, users, logs, maintenance

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    # Ensure DB exists and tables are created (for dev mode without alembic)
    if settings.DATABASE_URL.startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)

    # Create first admin user if no users exist yet
    db = SessionLocal()
    try:
        if not db.query(User).first():
            admin = User(
                username=settings.FIRST_ADMIN_USER,
                email=f"{settings.FIRST_ADMIN_USER}@kittrack.example.com",
                name="Administrator",
                hashed_password=hash_password(settings.FIRST_ADMIN_PASS),
                role=Role.admin.value,
                is_active=True,
            )
            db.add(admin)
            db.commit()
            logger.info("Created first admin user: %s", settings.FIRST_ADMIN_USER)
    finally:
        db.close()

    yield


app = FastAPI(
    title="KitTrack",
    description="Equipment checkout and verification tracker",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    https_only=settings.APP_ENV == "production",
    same_site="lax",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.APP_ENV == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(SQLAlchemyError)
async def _store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"detail": {"reason": "store_error", "message": "The database could not complete the request"}},
    )


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(equipment.router)
app.include_router(transactions.router)
app.include_router(users.router)
app.include_router(logs.router)
app.include_router(maintenance.router)
