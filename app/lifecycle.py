"""
Equipment and transaction lifecycle rules.

Pure functions over statuses only: no database access, no side effects.
``app.services.lifecycle_service`` is the single caller allowed to apply
them to stored records.
"""
from collections.abc import Iterable

from app.models.equipment import EquipmentStatus
from app.models.transaction import TransactionStatus

# Statuses in which an item is physically held by someone.
OUTSTANDING_STATUSES = frozenset({
    EquipmentStatus.CHECKED_OUT,
    EquipmentStatus.PENDING_VERIFICATION,
})

VERIFY_OUTCOMES = frozenset({
    EquipmentStatus.AVAILABLE,
    EquipmentStatus.DAMAGED,
    EquipmentStatus.MAINTENANCE,
})

# Statuses a manager may set directly. The outstanding ones are reachable
# only through checkout/return so that transaction membership stays consistent.
MANUAL_TARGETS = frozenset(EquipmentStatus) - OUTSTANDING_STATUSES

# Workflow transitions: operation -> (allowed current statuses, resulting statuses)
WORKFLOW = {
    "checkout": (frozenset({EquipmentStatus.AVAILABLE}), frozenset({EquipmentStatus.CHECKED_OUT})),
    "return": (frozenset({EquipmentStatus.CHECKED_OUT}), frozenset({EquipmentStatus.PENDING_VERIFICATION})),
    "verify": (frozenset({EquipmentStatus.PENDING_VERIFICATION}), VERIFY_OUTCOMES),
    "add": (frozenset({EquipmentStatus.AVAILABLE}), frozenset({EquipmentStatus.CHECKED_OUT})),
    # Removal returns the item to the shelf whatever happened to it.
    "remove": (frozenset(EquipmentStatus), frozenset({EquipmentStatus.AVAILABLE})),
}


def holds_assignment(status: EquipmentStatus) -> bool:
    """True if an item in ``status`` must carry an assignee."""
    return status in OUTSTANDING_STATUSES


def is_resolved(status: EquipmentStatus) -> bool:
    """True once an item no longer counts against an open transaction.

    DAMAGED, MAINTENANCE and LOST count as resolved: a transaction closes
    even if an item came back broken.
    """
    return status not in OUTSTANDING_STATUSES


def can_transition(operation: str, from_status: EquipmentStatus, to_status: EquipmentStatus) -> bool:
    allowed, targets = WORKFLOW[operation]
    return from_status in allowed and to_status in targets


def allowed_from(operation: str) -> frozenset[EquipmentStatus]:
    return WORKFLOW[operation][0]


def can_set_manually(to_status: EquipmentStatus) -> bool:
    return to_status in MANUAL_TARGETS


def assignee_after(to_status: EquipmentStatus, current_assignee: int | None) -> int | None:
    """Assignee an item keeps after moving to ``to_status``."""
    return current_assignee if holds_assignment(to_status) else None


def should_close(transaction_status: TransactionStatus, item_statuses: Iterable[EquipmentStatus]) -> bool:
    """Auto-close predicate for a transaction.

    Only OPEN transactions close, and only when every remaining item is
    resolved. A transaction emptied by removals has nothing outstanding and
    qualifies; removal itself never evaluates this rule.
    """
    if transaction_status != TransactionStatus.OPEN:
        return False
    return all(is_resolved(s) for s in item_statuses)


def outstanding_count(item_statuses: Iterable[EquipmentStatus]) -> int:
    return sum(1 for s in item_statuses if not is_resolved(s))
