from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from app.database import get_db
import app.services.log_service as log_svc

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "pending_logs": log_svc.pending_count()}


@router.get("/")
def root():
    return {"app": "KitTrack"}
