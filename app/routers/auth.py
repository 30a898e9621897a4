import logging
import time
from collections import defaultdict
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Request, Form
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.log import LogAction
from app.models.user import Role, User
from app.services.user_service import verify_password, get_user_by_username
import app.services.log_service as log_svc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

MANAGER_ROLES = {Role.manager.value, Role.admin.value}

# ── Rate limiting (in-memory, per IP) ──────────────────────────────────────
_login_attempts: dict[str, list[float]] = defaultdict(list)
_RATE_LIMIT_WINDOW = 60   # seconds
_RATE_LIMIT_MAX = 10      # max attempts per window


def _check_rate_limit(ip: str) -> bool:
    now = time.time()
    _login_attempts[ip] = [t for t in _login_attempts[ip] if now - t < _RATE_LIMIT_WINDOW]
    if len(_login_attempts[ip]) >= _RATE_LIMIT_MAX:
        return False
    _login_attempts[ip].append(now)
    return True


def _reset_rate_limit(ip: str) -> None:
    """Clear failed attempts after successful login."""
    _login_attempts.pop(ip, None)


def _safe_next(url: str) -> str:
    """Reject external/protocol-relative redirects, allow only same-origin paths."""
    parsed = urlparse(url)
    if parsed.scheme or parsed.netloc:
        return "/"
    return url if url.startswith("/") else "/"


# ── Session dependencies ───────────────────────────────────────────────────
def require_session_user(request: Request, db: Session = Depends(get_db)) -> int:
    """Any authenticated, still active user. Returns the actor id."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Login required")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        request.session.clear()
        raise HTTPException(status_code=401, detail="Account is no longer active")
    # Role edits apply to open sessions
    request.session["role"] = user.role
    return user.id


def require_session_manager(request: Request, user_id: int = Depends(require_session_user)) -> int:
    if request.session.get("role", "") not in MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user_id


def require_session_admin(request: Request, user_id: int = Depends(require_session_user)) -> int:
    if request.session.get("role") != Role.admin.value:
        raise HTTPException(status_code=403, detail="Administrators only")
    return user_id


def is_manager(request: Request) -> bool:
    return request.session.get("role", "") in MANAGER_ROLES


@router.post("/login")
def login_submit(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    next: str = Form(default="/"),
    db: Session = Depends(get_db),
):
    ip = request.client.host if request.client else "unknown"
    if not _check_rate_limit(ip):
        return JSONResponse({"detail": "Too many attempts, try again shortly"}, status_code=429)
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("AUDIT: failed login for '%s' from %s", username, ip)
        log_svc.record(db, LogAction.LOGIN_FAILED, username, None, f"Failed login from {ip}")
        return JSONResponse({"detail": "Wrong username or password"}, status_code=401)
    if not user.is_active:
        logger.warning("AUDIT: login attempt on deactivated account '%s' from %s", username, ip)
        log_svc.record(db, LogAction.LOGIN_FAILED, user.id, user.id, "Account is deactivated")
        return JSONResponse({"detail": "Account is deactivated"}, status_code=403)
    _reset_rate_limit(ip)
    logger.info("AUDIT: login '%s' (role=%s) from %s", username, user.role, ip)
    request.session["user_id"] = user.id
    request.session["username"] = user.username
    request.session["role"] = user.role
    log_svc.record(db, LogAction.LOGIN, user.id, user.id, f"Login from {ip}")
    return RedirectResponse(_safe_next(next), status_code=302)


@router.get("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    user_id = request.session.get("user_id")
    if user_id:
        log_svc.record(db, LogAction.LOGOUT, user_id, user_id)
    request.session.clear()
    return RedirectResponse("/login", status_code=302)
