import logging
from collections import deque
from datetime import datetime, timezone

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.log import Log, LogAction
from app.schemas.pagination import Page

logger = logging.getLogger(__name__)

# Entries whose insert failed after the primary mutation was already committed.
# Retried on the next successful append or via flush_pending().
_pending: deque[dict] = deque()


def record(
    db: Session,
    action: LogAction,
    entity_id: str | int,
    user_id: int | None = None,
    details: str | None = None,
) -> Log | None:
    """Append one audit entry in its own commit.

    A failed append never undoes the state change it describes; the entry is
    queued for retry and None is returned.
    """
    entry = {
        "action": action,
        "entity_id": str(entity_id),
        "user_id": user_id,
        "details": details,
        "timestamp": datetime.now(timezone.utc),
    }
    try:
        log = Log(**entry)
        db.add(log)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        _pending.append(entry)
        logger.exception(
            "AUDIT: failed to append %s log for %s, queued for retry (%d pending)",
            action.value, entry["entity_id"], len(_pending),
        )
        return None

    if _pending:
        flush_pending(db)
    return log


def flush_pending(db: Session) -> dict:
    """Retry queued audit entries. Stops at the first failure."""
    written = 0
    while _pending:
        entry = _pending[0]
        try:
            db.add(Log(**entry))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("AUDIT: retry of queued log entry failed")
            break
        _pending.popleft()
        written += 1
    if written:
        logger.info("AUDIT: flushed %d queued log entries", written)
    return {"written": written, "pending": len(_pending)}


def pending_count() -> int:
    return len(_pending)


def get_logs(
    db: Session,
    page: int = 1,
    size: int = 50,
    action: LogAction | None = None,
    search: str = "",
    entity_id: str | None = None,
) -> Page:
    query = select(Log)
    if action is not None:
        query = query.where(Log.action == action)
    if entity_id is not None:
        query = query.where(Log.entity_id == entity_id)
    if search:
        query = query.where(Log.details.ilike(f"%{search}%") | Log.entity_id.ilike(f"%{search}%"))
    query = query.order_by(Log.timestamp.desc(), Log.id.desc())

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    logs = db.scalars(query.offset((page - 1) * size).limit(size)).all()
    return Page.build(logs, total, page, size)
