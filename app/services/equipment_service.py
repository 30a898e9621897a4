from sqlalchemy.orm import Session
from sqlalchemy import select, func
from app.errors import ConflictError
from app.models.equipment import Equipment, EquipmentStatus
from app.models.log import Log, LogAction
from app.schemas.equipment import EquipmentCreate, EquipmentUpdate
from app.schemas.pagination import Page
import app.services.lifecycle_service as lifecycle_svc
import app.services.log_service as log_svc

# Log actions whose entity_id is an equipment id; auth events key on user ids.
EQUIPMENT_ACTIONS = (LogAction.CREATE, LogAction.EDIT, LogAction.RETURN, LogAction.VERIFY)


def get_equipment_list(
    db: Session,
    page: int = 1,
    size: int = 50,
    search: str = "",
    category: str = "",
    status: EquipmentStatus | None = None,
) -> Page:
    query = select(Equipment)
    if search:
        query = query.where(
            Equipment.name.ilike(f"%{search}%")
            | Equipment.barcode.ilike(f"%{search}%")
            | Equipment.serial_number.ilike(f"%{search}%")
        )
    if category:
        query = query.where(Equipment.category == category)
    if status is not None:
        query = query.where(Equipment.status == status)
    query = query.order_by(Equipment.barcode)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(query.offset((page - 1) * size).limit(size)).all()
    return Page.build(items, total, page, size)


def get_equipment(db: Session, equipment_id: int) -> Equipment:
    return lifecycle_svc.fetch_equipment(db, equipment_id)


def get_equipment_by_barcode(db: Session, barcode: str) -> Equipment | None:
    return db.scalar(select(Equipment).where(Equipment.barcode == barcode.strip()))


def get_pending_verification(db: Session) -> list[Equipment]:
    return db.scalars(
        select(Equipment)
        .where(Equipment.status == EquipmentStatus.PENDING_VERIFICATION)
        .order_by(Equipment.last_activity)
    ).all()


def create_equipment(db: Session, data: EquipmentCreate, user_id: int | None = None) -> Equipment:
    if get_equipment_by_barcode(db, data.barcode):
        raise ConflictError("barcode_exists", f"Barcode {data.barcode} already exists", barcode=data.barcode)
    item = Equipment(**data.model_dump(), status=EquipmentStatus.AVAILABLE, assigned_to=None)
    db.add(item)
    db.commit()
    db.refresh(item)
    log_svc.record(db, LogAction.CREATE, item.id, user_id, f"Created {item.name} ({item.barcode})")
    return item


def update_equipment(db: Session, equipment_id: int, data: EquipmentUpdate, user_id: int | None = None) -> Equipment:
    """Manager edit. Descriptive fields are written here, status goes through the lifecycle engine."""
    item = get_equipment(db, equipment_id)
    changes = data.model_dump(exclude_unset=True)
    for required in ("barcode", "name", "condition"):
        if changes.get(required, "") is None:
            del changes[required]
    status = changes.pop("status", None)
    if status is not None:
        status = lifecycle_svc.manual_status(status)

    if "barcode" in changes and changes["barcode"] != item.barcode:
        if get_equipment_by_barcode(db, changes["barcode"]):
            raise ConflictError(
                "barcode_exists", f"Barcode {changes['barcode']} already exists", barcode=changes["barcode"]
            )
    changed = [field for field, value in changes.items() if getattr(item, field) != value]
    if changed:
        for field in changed:
            setattr(item, field, changes[field])
        db.commit()
        log_svc.record(db, LogAction.EDIT, equipment_id, user_id, f"Updated {', '.join(changed)}")

    if status is not None:
        lifecycle_svc.set_status(db, equipment_id, status, actor_id=user_id)
    return get_equipment(db, equipment_id)


def get_equipment_history(db: Session, equipment_id: int) -> list[Log]:
    get_equipment(db, equipment_id)
    return db.scalars(
        select(Log)
        .where(Log.entity_id == str(equipment_id), Log.action.in_(EQUIPMENT_ACTIONS))
        .order_by(Log.timestamp, Log.id)
    ).all()
