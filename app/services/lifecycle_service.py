"""
Lifecycle engine: the only code path that changes ``Equipment.status``,
``Equipment.assigned_to``, transaction membership and ``Transaction.status``.

Every operation re-reads the rows it is about to touch, validates against
``app.lifecycle``, and applies status changes as compare-and-set updates
(``UPDATE ... WHERE status IN (...)``). Zero affected rows means another
session changed the record after we read it, and the operation is rejected
instead of overwriting that change. Each write is committed on its own; the
audit entry is appended afterwards and never rolls the write back.
"""
import logging
import secrets
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app import lifecycle
from app.config import settings
from app.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.models.equipment import Condition, Equipment, EquipmentStatus
from app.models.log import LogAction
from app.models.transaction import Transaction, TransactionItem, TransactionStatus
from app.models.user import User
import app.services.log_service as log_svc

logger = logging.getLogger(__name__)

# No 0/O/1/I/L, so ids survive being read aloud or handwritten
TXN_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
TXN_LENGTH = 6
_TXN_ID_ATTEMPTS = 10


@dataclass
class TransitionResult:
    equipment: Equipment
    closed_transaction_id: str | None = None

    @property
    def auto_closed(self) -> bool:
        return self.closed_transaction_id is not None


def generate_transaction_id() -> str:
    return "TXN-" + "".join(secrets.choice(TXN_ALPHABET) for _ in range(TXN_LENGTH))


# ── Reads ──────────────────────────────────────────────────────────────────

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"invalid_{field}", f"{value!r} is not a valid {field}", value=str(value)) from None


def fetch_equipment(db: Session, equipment_id: int) -> Equipment:
    """Load an item straight from the database, bypassing the identity map."""
    item = db.scalar(
        select(Equipment)
        .where(Equipment.id == equipment_id)
        .execution_options(populate_existing=True)
    )
    if item is None:
        raise NotFoundError(
            "equipment_not_found", f"Equipment {equipment_id} does not exist", equipment_id=equipment_id
        )
    return item


def fetch_transaction(db: Session, transaction_id: str) -> Transaction:
    txn = db.scalar(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .options(selectinload(Transaction.entries), selectinload(Transaction.additional_users))
        .execution_options(populate_existing=True)
    )
    if txn is None:
        raise NotFoundError(
            "transaction_not_found", f"Transaction {transaction_id} does not exist", transaction_id=transaction_id
        )
    return txn


def open_transactions_holding(db: Session, equipment_id: int) -> list[str]:
    return list(db.scalars(
        select(TransactionItem.transaction_id)
        .join(Transaction, Transaction.id == TransactionItem.transaction_id)
        .where(TransactionItem.equipment_id == equipment_id, Transaction.status == TransactionStatus.OPEN)
    ).all())


def item_statuses(db: Session, transaction_id: str) -> list[EquipmentStatus]:
    return list(db.scalars(
        select(Equipment.status)
        .join(TransactionItem, TransactionItem.equipment_id == Equipment.id)
        .where(TransactionItem.transaction_id == transaction_id)
    ).all())


# ── Writes ─────────────────────────────────────────────────────────────────

def _compare_and_set(db: Session, equipment_id: int, expected: Iterable[EquipmentStatus], **values) -> bool:
    result = db.execute(
        update(Equipment)
        .where(Equipment.id == equipment_id, Equipment.status.in_(list(expected)))
        .values(last_activity=_now(), **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _still_open(db: Session, transaction_id: str) -> bool:
    """Touch the transaction row only if it is OPEN, locking it for this write."""
    result = db.execute(
        update(Transaction)
        .where(Transaction.id == transaction_id, Transaction.status == TransactionStatus.OPEN)
        .values(status=TransactionStatus.OPEN)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _guard_open(db: Session, transaction_id: str) -> None:
    """Fail unless the transaction is still OPEN at write time."""
    if not _still_open(db, transaction_id):
        db.rollback()
        raise InvalidStateError(
            "transaction_closed", f"Transaction {transaction_id} is closed", transaction_id=transaction_id
        )


def _close(db: Session, transaction_id: str, actor_id: int | None, details: str) -> bool:
    result = db.execute(
        update(Transaction)
        .where(Transaction.id == transaction_id, Transaction.status == TransactionStatus.OPEN)
        .values(status=TransactionStatus.CLOSED, closed_at=_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Closed by a concurrent call; that call wrote the log entry.
        db.rollback()
        return False
    db.commit()
    logger.info("AUDIT: transaction %s closed (%s)", transaction_id, details)
    log_svc.record(db, LogAction.EDIT, transaction_id, actor_id, details)
    return True


def _close_if_resolved(db: Session, transaction_id: str, actor_id: int | None, details: str) -> bool:
    statuses = item_statuses(db, transaction_id)
    if not lifecycle.should_close(TransactionStatus.OPEN, statuses):
        return False
    return _close(db, transaction_id, actor_id, details)


def _auto_close_for(db: Session, equipment_id: int, actor_id: int | None, details: str) -> str | None:
    for transaction_id in open_transactions_holding(db, equipment_id):
        if _close_if_resolved(db, transaction_id, actor_id, details):
            return transaction_id
    return None


def _new_transaction_id(db: Session) -> str:
    for _ in range(_TXN_ID_ATTEMPTS):
        candidate = generate_transaction_id()
        if db.get(Transaction, candidate) is None:
            return candidate
    raise ConflictError("transaction_id_exhausted", "Could not allocate a free transaction id")


def _describe(item: Equipment) -> str:
    return f"{item.name} ({item.barcode})"


# ── Operations ─────────────────────────────────────────────────────────────

def checkout(
    db: Session,
    equipment_ids: list[int],
    holder_id: int,
    additional_holder_ids: Iterable[int] = (),
    project: str | None = None,
    actor_id: int | None = None,
) -> Transaction:
    """Open a transaction for ``equipment_ids`` held by ``holder_id``.

    All items are validated before any is touched; a single unavailable item
    rejects the whole checkout. Items are then claimed one commit at a time,
    each claim writing the status change and the membership row together.
    """
    equipment_ids = list(equipment_ids)
    if not equipment_ids:
        raise ValidationError("empty_checkout", "Checkout needs at least one item")
    duplicates = sorted({i for i in equipment_ids if equipment_ids.count(i) > 1})
    if duplicates:
        raise ValidationError("duplicate_items", "Checkout lists the same item more than once", items=duplicates)

    holder = db.get(User, holder_id)
    if holder is None:
        raise NotFoundError("user_not_found", f"User {holder_id} does not exist", user_id=holder_id)
    if not holder.is_active:
        raise ValidationError("holder_inactive", f"User {holder.username} is deactivated", user_id=holder_id)

    extras = []
    for user_id in dict.fromkeys(additional_holder_ids):
        if user_id == holder_id:
            continue
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("user_not_found", f"User {user_id} does not exist", user_id=user_id)
        extras.append(user)

    items = [fetch_equipment(db, equipment_id) for equipment_id in equipment_ids]
    unavailable = [
        {"id": i.id, "barcode": i.barcode, "status": i.status.value}
        for i in items
        if not lifecycle.can_transition("checkout", i.status, EquipmentStatus.CHECKED_OUT)
    ]
    if unavailable:
        raise ValidationError(
            "not_available",
            "Items not available: " + ", ".join(f"{u['barcode']} is {u['status']}" for u in unavailable),
            items=unavailable,
        )
    claimed = []
    for item in items:
        for other in open_transactions_holding(db, item.id):
            claimed.append({"id": item.id, "barcode": item.barcode, "transaction_id": other})
    if claimed:
        raise ConflictError(
            "already_in_open_transaction",
            "Items still belong to an open transaction: " + ", ".join(c["barcode"] for c in claimed),
            items=claimed,
        )

    # Snapshot before the first commit expires the loaded objects.
    snapshot = [(i.id, i.condition, _describe(i)) for i in items]
    holder_id, holder_name = holder.id, holder.username
    project = (project or "").strip() or settings.DEFAULT_PROJECT

    txn = Transaction(
        id=_new_transaction_id(db),
        user_id=holder_id,
        project=project,
        status=TransactionStatus.OPEN,
        additional_users=extras,
    )
    db.add(txn)
    db.commit()
    transaction_id = txn.id

    applied: list[int] = []
    for equipment_id, condition, label in snapshot:
        if not _still_open(db, transaction_id) or not _compare_and_set(
            db, equipment_id, lifecycle.allowed_from("checkout"),
            status=EquipmentStatus.CHECKED_OUT, assigned_to=holder_id,
        ):
            db.rollback()
            _release(db, transaction_id, applied)
            raise ConflictError(
                "claimed_concurrently",
                f"{label} was taken by another checkout while this one was in progress",
                equipment_id=equipment_id,
            )
        db.add(TransactionItem(
            transaction_id=transaction_id,
            equipment_id=equipment_id,
            pre_checkout_condition=condition,
        ))
        db.commit()
        applied.append(equipment_id)

    log_svc.record(
        db, LogAction.CHECKOUT, transaction_id, actor_id,
        f"Checked out {len(snapshot)} item(s) to {holder_name} for {project}: "
        + ", ".join(label for _, _, label in snapshot),
    )
    return fetch_transaction(db, transaction_id)


def _release(db: Session, transaction_id: str, applied: list[int]) -> None:
    """Undo a checkout that lost a race part-way through."""
    logger.warning(
        "Checkout %s lost a race after claiming %d item(s), releasing them", transaction_id, len(applied)
    )
    for equipment_id in applied:
        _compare_and_set(
            db, equipment_id, {EquipmentStatus.CHECKED_OUT},
            status=EquipmentStatus.AVAILABLE, assigned_to=None,
        )
    txn = db.get(Transaction, transaction_id)
    if txn is not None:
        db.delete(txn)
    db.commit()


def submit_return(db: Session, equipment_id: int, reported_condition, actor_id: int | None = None) -> Equipment:
    """Hand an item back for verification. The assignee is kept until verified."""
    condition = _coerce(Condition, reported_condition, "condition")
    item = fetch_equipment(db, equipment_id)
    if not lifecycle.can_transition("return", item.status, EquipmentStatus.PENDING_VERIFICATION):
        raise InvalidStateError(
            "not_checked_out",
            f"{_describe(item)} is {item.status.value}, only CHECKED_OUT items can be returned",
            equipment_id=item.id,
            status=item.status.value,
        )
    label = _describe(item)
    if not _compare_and_set(
        db, item.id, lifecycle.allowed_from("return"),
        status=EquipmentStatus.PENDING_VERIFICATION, condition=condition,
    ):
        db.rollback()
        raise InvalidStateError(
            "status_changed", f"{label} changed status while being returned", equipment_id=equipment_id
        )
    db.commit()
    log_svc.record(
        db, LogAction.RETURN, equipment_id, actor_id,
        f"Submitted for return: {label} (Condition: {condition.value})",
    )
    return fetch_equipment(db, equipment_id)


def verify(db: Session, equipment_id: int, outcome, actor_id: int | None = None) -> TransitionResult:
    """Resolve a returned item and close its transaction if nothing is left out."""
    outcome = _coerce(EquipmentStatus, outcome, "outcome")
    if outcome not in lifecycle.VERIFY_OUTCOMES:
        raise ValidationError(
            "invalid_outcome",
            f"Verification outcome must be one of {', '.join(sorted(s.value for s in lifecycle.VERIFY_OUTCOMES))}",
            outcome=outcome.value,
        )
    item = fetch_equipment(db, equipment_id)
    if not lifecycle.can_transition("verify", item.status, outcome):
        raise InvalidStateError(
            "not_pending_verification",
            f"{_describe(item)} is {item.status.value}, only PENDING_VERIFICATION items can be verified",
            equipment_id=item.id,
            status=item.status.value,
        )
    label = _describe(item)
    if not _compare_and_set(
        db, item.id, lifecycle.allowed_from("verify"),
        status=outcome, assigned_to=lifecycle.assignee_after(outcome, item.assigned_to),
    ):
        db.rollback()
        raise InvalidStateError(
            "status_changed", f"{label} was verified by someone else", equipment_id=equipment_id
        )
    db.commit()
    log_svc.record(db, LogAction.VERIFY, equipment_id, actor_id, f"Verified {label} as {outcome.value}")

    closed = _auto_close_for(
        db, equipment_id, actor_id, "Transaction auto-closed: all items returned and verified"
    )
    return TransitionResult(fetch_equipment(db, equipment_id), closed)


def manual_status(status) -> EquipmentStatus:
    """Validate a status a manager wants to set directly."""
    status = _coerce(EquipmentStatus, status, "status")
    if not lifecycle.can_set_manually(status):
        raise InvalidStateError(
            "status_requires_workflow",
            f"{status.value} can only be reached through checkout or return",
            status=status.value,
        )
    return status


def set_status(db: Session, equipment_id: int, status, actor_id: int | None = None) -> TransitionResult:
    """Direct manager edit of an item's status.

    Outstanding statuses cannot be set by hand. Taking an item out of an
    outstanding status counts as resolving it for auto-close purposes.
    """
    status = manual_status(status)
    item = fetch_equipment(db, equipment_id)
    previous = item.status
    if previous == status:
        return TransitionResult(item)
    label = _describe(item)
    if not _compare_and_set(
        db, item.id, {previous},
        status=status, assigned_to=lifecycle.assignee_after(status, item.assigned_to),
    ):
        db.rollback()
        raise InvalidStateError(
            "status_changed", f"{label} changed status while being edited", equipment_id=equipment_id
        )
    db.commit()
    log_svc.record(
        db, LogAction.EDIT, equipment_id, actor_id,
        f"Status of {label} changed from {previous.value} to {status.value}",
    )

    closed = None
    if lifecycle.holds_assignment(previous):
        closed = _auto_close_for(
            db, equipment_id, actor_id, f"Transaction auto-closed: last outstanding item set to {status.value}"
        )
    return TransitionResult(fetch_equipment(db, equipment_id), closed)


def add_item_to_transaction(
    db: Session, transaction_id: str, equipment_id: int, actor_id: int | None = None
) -> Transaction:
    txn = fetch_transaction(db, transaction_id)
    if txn.status != TransactionStatus.OPEN:
        raise InvalidStateError(
            "transaction_closed", f"Transaction {transaction_id} is closed and cannot be modified",
            transaction_id=transaction_id,
        )
    if equipment_id in txn.items:
        raise ConflictError(
            "already_in_transaction", f"Item {equipment_id} is already in {transaction_id}",
            transaction_id=transaction_id, equipment_id=equipment_id,
        )
    item = fetch_equipment(db, equipment_id)
    if not lifecycle.can_transition("add", item.status, EquipmentStatus.CHECKED_OUT):
        raise ConflictError(
            "not_available", f"{_describe(item)} is {item.status.value}",
            equipment_id=equipment_id, status=item.status.value,
        )
    others = open_transactions_holding(db, equipment_id)
    if others:
        raise ConflictError(
            "already_in_open_transaction", f"{_describe(item)} still belongs to {others[0]}",
            equipment_id=equipment_id, transaction_id=others[0],
        )

    label = _describe(item)
    condition = item.condition
    holder_id = txn.user_id
    _guard_open(db, transaction_id)
    if not _compare_and_set(
        db, equipment_id, lifecycle.allowed_from("add"),
        status=EquipmentStatus.CHECKED_OUT, assigned_to=holder_id,
    ):
        db.rollback()
        raise ConflictError(
            "claimed_concurrently", f"{label} was taken by another checkout", equipment_id=equipment_id
        )
    db.add(TransactionItem(
        transaction_id=transaction_id,
        equipment_id=equipment_id,
        pre_checkout_condition=condition,
    ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            "already_in_transaction", f"{label} was added to {transaction_id} concurrently",
            transaction_id=transaction_id, equipment_id=equipment_id,
        ) from None

    log_svc.record(db, LogAction.EDIT, transaction_id, actor_id, f"Added item: {label}")
    return fetch_transaction(db, transaction_id)


def remove_item_from_transaction(
    db: Session, transaction_id: str, equipment_id: int, actor_id: int | None = None
) -> Transaction:
    """Take an item out of an open transaction.

    The item goes back to AVAILABLE with no assignee, whatever its status.
    Removal is a correction, not a return: it never closes the transaction,
    even when the removed item was the last one outstanding.
    """
    txn = fetch_transaction(db, transaction_id)
    if txn.status != TransactionStatus.OPEN:
        raise InvalidStateError(
            "transaction_closed", f"Transaction {transaction_id} is closed and cannot be modified",
            transaction_id=transaction_id,
        )
    entry = next((e for e in txn.entries if e.equipment_id == equipment_id), None)
    if entry is None:
        raise NotFoundError(
            "not_in_transaction", f"Item {equipment_id} is not part of {transaction_id}",
            transaction_id=transaction_id, equipment_id=equipment_id,
        )
    item = fetch_equipment(db, equipment_id)
    label = _describe(item)

    _guard_open(db, transaction_id)
    if not _compare_and_set(
        db, equipment_id, {item.status},
        status=EquipmentStatus.AVAILABLE, assigned_to=None,
    ):
        db.rollback()
        raise InvalidStateError(
            "status_changed", f"{label} changed status while being removed", equipment_id=equipment_id
        )
    db.delete(entry)
    db.commit()

    log_svc.record(db, LogAction.EDIT, transaction_id, actor_id, f"Removed item: {label}")
    return fetch_transaction(db, transaction_id)


# ── Maintenance ────────────────────────────────────────────────────────────

def reconcile_stale_transactions(db: Session, actor_id: int | None = None) -> dict:
    """Close every OPEN transaction whose items are all resolved.

    Safe to run at any time; a run with nothing to close writes nothing.
    A failure on one transaction is reported and the scan continues.
    """
    transaction_ids = db.scalars(
        select(Transaction.id)
        .where(Transaction.status == TransactionStatus.OPEN)
        .order_by(Transaction.timestamp_out)
    ).all()

    closed, still_open, failures = [], [], []
    for transaction_id in transaction_ids:
        try:
            statuses = item_statuses(db, transaction_id)
            if lifecycle.should_close(TransactionStatus.OPEN, statuses) and _close(
                db, transaction_id, actor_id,
                "Transaction auto-closed by cleanup: all items were already returned",
            ):
                closed.append(transaction_id)
            else:
                still_open.append({
                    "id": transaction_id,
                    "outstanding": lifecycle.outstanding_count(statuses),
                    "total": len(statuses),
                })
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Reconcile failed for transaction %s", transaction_id)
            failures.append({"id": transaction_id, "reason": type(exc).__name__})

    logger.info(
        "AUDIT: reconcile scanned %d open transaction(s), closed %d, %d failure(s)",
        len(transaction_ids), len(closed), len(failures),
    )
    return {"scanned": len(transaction_ids), "closed": closed, "still_open": still_open, "failures": failures}


def cleanup_stale_assignments(db: Session, actor_id: int | None = None) -> dict:
    """Clear ``assigned_to`` on items whose status no longer holds an assignee.

    Touches equipment only. Idempotent: a second run finds nothing to repair.
    """
    stale = db.scalars(
        select(Equipment.id)
        .where(
            Equipment.status.not_in(list(lifecycle.OUTSTANDING_STATUSES)),
            Equipment.assigned_to.is_not(None),
        )
        .order_by(Equipment.id)
    ).all()

    repaired, failures = [], []
    for equipment_id in stale:
        try:
            result = db.execute(
                update(Equipment)
                .where(
                    Equipment.id == equipment_id,
                    Equipment.status.not_in(list(lifecycle.OUTSTANDING_STATUSES)),
                    Equipment.assigned_to.is_not(None),
                )
                .values(assigned_to=None)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                continue
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Assignment cleanup failed for equipment %s", equipment_id)
            failures.append({"id": str(equipment_id), "reason": type(exc).__name__})
            continue
        repaired.append(equipment_id)
        log_svc.record(db, LogAction.EDIT, equipment_id, actor_id, "Cleared stale assignment")

    logger.info(
        "AUDIT: assignment cleanup scanned %d item(s), repaired %d, %d failure(s)",
        len(stale), len(repaired), len(failures),
    )
    return {"scanned": len(stale), "repaired": repaired, "failures": failures}
