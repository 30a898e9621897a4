from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.transaction import TransactionStatus
from app.schemas.transaction import (
    CheckoutRequest, AddItemRequest, TransactionResponse, TransactionDetailResponse,
)
from app.schemas.pagination import Page
from app.routers.auth import require_session_user, require_session_manager, is_manager
import app.services.transaction_service as svc
import app.services.lifecycle_service as lifecycle_svc

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=Page[TransactionResponse])
def list_transactions(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status: TransactionStatus | None = Query(None),
    user_id: int | None = Query(None),
    db: Session = Depends(get_db),
    _=Depends(require_session_user),
):
    return svc.get_transactions(db, page=page, size=size, status=status, user_id=user_id)


@router.post("", response_model=TransactionResponse, status_code=201)
def checkout(
    request: Request,
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_user),
):
    holder_id = data.holder_id or actor_id
    if holder_id != actor_id and not is_manager(request):
        raise HTTPException(status_code=403, detail="Only managers can check out on behalf of another user")
    return lifecycle_svc.checkout(
        db,
        data.equipment_ids,
        holder_id,
        additional_holder_ids=data.additional_holder_ids,
        project=data.project,
        actor_id=actor_id,
    )


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
def get_transaction(transaction_id: str, db: Session = Depends(get_db), _=Depends(require_session_user)):
    return svc.get_transaction_detail(db, transaction_id)


@router.post("/{transaction_id}/items", response_model=TransactionResponse, status_code=201)
def add_item(
    transaction_id: str,
    data: AddItemRequest,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_manager),
):
    return lifecycle_svc.add_item_to_transaction(db, transaction_id, data.equipment_id, actor_id=actor_id)


@router.delete("/{transaction_id}/items/{equipment_id}", response_model=TransactionResponse)
def remove_item(
    transaction_id: str,
    equipment_id: int,
    db: Session = Depends(get_db),
    actor_id=Depends(require_session_manager),
):
    return lifecycle_svc.remove_item_from_transaction(db, transaction_id, equipment_id, actor_id=actor_id)
