from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.log import LogAction
from app.schemas.log import LogResponse
from app.schemas.pagination import Page
from app.routers.auth import require_session_admin
import app.services.log_service as svc

router = APIRouter(prefix="/api/logs", tags=["logs"])


@router.get("", response_model=Page[LogResponse])
def list_logs(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    action: LogAction | None = Query(None),
    search: str = Query(""),
    entity_id: str | None = Query(None),
    db: Session = Depends(get_db),
    _=Depends(require_session_admin),
):
    return svc.get_logs(db, page=page, size=size, action=action, search=search, entity_id=entity_id)
