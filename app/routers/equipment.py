from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import NotFoundError
from app.models.equipment import EquipmentStatus
from app.schemas.equipment import (
    EquipmentCreate, EquipmentUpdate, EquipmentResponse,
    ReturnRequest, VerifyRequest, VerifyResponse,
)
from app.schemas.log import LogResponse
from app.schemas.pagination import Page
from app.routers.auth import require_session_user, require_session_manager, is_manager
import app.services.equipment_service as svc
import app.services.lifecycle_service as lifecycle_svc

router = APIRouter(prefix="/api/equipment", tags=["equipment"])


@router.get("", response_model=Page[EquipmentResponse])
def list_equipment(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    search: str = Query(""),
    category: str = Query(""),
    status: EquipmentStatus | None = Query(None),
    db: Session = Depends(get_db),
    _=Depends(require_session_user),
):
    return svc.get_equipment_list(db, page=page, size=size, search=search, category=category, status=status)


@router.post("", response_model=EquipmentResponse, status_code=201)
def create_equipment(data: EquipmentCreate, db: Session = Depends(get_db), actor_id=Depends(require_session_manager)):
    return svc.create_equipment(db, data, user_id=actor_id)


@router.get("/pending", response_model=list[EquipmentResponse])
def pending_verification(db: Session = Depends(get_db), _=Depends(require_session_manager)):
    return svc.get_pending_verification(db)


@router.get("/by-barcode/{barcode}", response_model=EquipmentResponse)
def get_equipment_by_barcode(barcode: str, db: Session = Depends(get_db), _=Depends(require_session_user)):
    item = svc.get_equipment_by_barcode(db, barcode)
    if not item:
        raise NotFoundError("equipment_not_found", f"No equipment with barcode {barcode}", barcode=barcode)
    return item


@router.get("/{equipment_id}", response_model=EquipmentResponse)
def get_equipment(equipment_id: int, db: Session = Depends(get_db), _=Depends(require_session_user)):
    return svc.get_equipment(db, equipment_id)


@router.put("/{equipment_id}", response_model=EquipmentResponse)
def update_equipment(
    equipment_id: int,
    data: EquipmentUpdate,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_manager),
):
    return svc.update_equipment(db, equipment_id, data, user_id=actor_id)


@router.get("/{equipment_id}/history", response_model=list[LogResponse])
def equipment_history(equipment_id: int, db: Session = Depends(get_db), _=Depends(require_session_user)):
    return svc.get_equipment_history(db, equipment_id)


@router.post("/{equipment_id}/return", response_model=EquipmentResponse)
def submit_return(
    request: Request,
    equipment_id: int,
    data: ReturnRequest,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_user),
):
    item = svc.get_equipment(db, equipment_id)
    if item.assigned_to is not None and item.assigned_to != actor_id and not is_manager(request):
        raise HTTPException(status_code=403, detail="Only the holder or a manager can return this item")
    return lifecycle_svc.submit_return(db, equipment_id, data.condition, actor_id=actor_id)


@router.post("/{equipment_id}/verify", response_model=VerifyResponse)
def verify(
    equipment_id: int,
    data: VerifyRequest,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_manager),
):
    result = lifecycle_svc.verify(db, equipment_id, data.outcome, actor_id=actor_id)
    return {
        "equipment": result.equipment,
        "auto_closed": result.auto_closed,
        "transaction_id": result.closed_transaction_id,
    }
