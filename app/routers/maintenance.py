from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.maintenance import ReconcileReport, CleanupReport, FlushReport
from app.routers.auth import require_session_admin
import app.services.lifecycle_service as lifecycle_svc
import app.services.log_service as log_svc

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@router.post("/reconcile-transactions", response_model=ReconcileReport)
def reconcile_transactions(db: Session = Depends(get_db), actor_id=Depends(require_session_admin)):
    return lifecycle_svc.reconcile_stale_transactions(db, actor_id=actor_id)


@router.post("/cleanup-assignments", response_model=CleanupReport)
def cleanup_assignments(db: Session = Depends(get_db), actor_id=Depends(require_session_admin)):
    return lifecycle_svc.cleanup_stale_assignments(db, actor_id=actor_id)


@router.post("/flush-logs", response_model=FlushReport)
def flush_logs(db: Session = Depends(get_db), _=Depends(require_session_admin)):
    return log_svc.flush_pending(db)
