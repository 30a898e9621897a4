from app.models.user import User, Role
from app.models.equipment import Equipment, EquipmentStatus, Condition
from app.models.transaction import Transaction, TransactionItem, TransactionStatus, transaction_holders
from app.models.log import Log, LogAction

__all__ = [
    "User", "Role",
    "Equipment", "EquipmentStatus", "Condition",
    "Transaction", "TransactionItem", "TransactionStatus", "transaction_holders",
    "Log", "LogAction",
]
