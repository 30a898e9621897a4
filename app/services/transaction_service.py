from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func
from app import lifecycle
from app.models.equipment import Equipment
from app.models.transaction import Transaction, TransactionStatus
from app.schemas.pagination import Page
import app.services.lifecycle_service as lifecycle_svc


def get_transactions(
    db: Session,
    page: int = 1,
    size: int = 50,
    status: TransactionStatus | None = None,
    user_id: int | None = None,
) -> Page:
    query = select(Transaction).options(
        selectinload(Transaction.entries), selectinload(Transaction.additional_users)
    )
    if status is not None:
        query = query.where(Transaction.status == status)
    if user_id is not None:
        query = query.where(Transaction.user_id == user_id)
    query = query.order_by(Transaction.timestamp_out.desc())
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    rows = db.scalars(query.offset((page - 1) * size).limit(size)).all()
    return Page.build(rows, total, page, size)


def get_transaction(db: Session, transaction_id: str) -> Transaction:
    return lifecycle_svc.fetch_transaction(db, transaction_id)


def get_transaction_detail(db: Session, transaction_id: str) -> dict:
    txn = get_transaction(db, transaction_id)
    equipment = {
        e.id: e for e in db.scalars(
            select(Equipment)
            .where(Equipment.id.in_(txn.items))
            .execution_options(populate_existing=True)
        ).all()
    }
    entries = []
    for entry in txn.entries:
        item = equipment[entry.equipment_id]
        entries.append({
            "equipment_id": item.id,
            "barcode": item.barcode,
            "name": item.name,
            "status": item.status,
            "pre_checkout_condition": entry.pre_checkout_condition,
            "current_condition": item.condition,
        })
    return {
        "id": txn.id,
        "user_id": txn.user_id,
        "additional_user_ids": txn.additional_user_ids,
        "items": txn.items,
        "pre_checkout_conditions": txn.pre_checkout_conditions,
        "status": txn.status,
        "project": txn.project,
        "timestamp_out": txn.timestamp_out,
        "closed_at": txn.closed_at,
        "entries": entries,
        "outstanding": lifecycle.outstanding_count(e["status"] for e in entries),
    }
