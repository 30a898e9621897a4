from app.schemas.user import UserCreate, UserUpdate, UserResponse
from app.schemas.equipment import (
    EquipmentCreate, EquipmentUpdate, EquipmentResponse,
    ReturnRequest, VerifyRequest, VerifyResponse,
)
from app.schemas.transaction import (
    CheckoutRequest, AddItemRequest,
    TransactionResponse, TransactionDetailResponse, TransactionItemResponse,
)
from app.schemas.log import LogResponse
from app.schemas.maintenance import ReconcileReport, CleanupReport, FlushReport
from app.schemas.pagination import Page

__all__ = [
    "UserCreate", "UserUpdate", "UserResponse",
    "EquipmentCreate", "EquipmentUpdate", "EquipmentResponse",
    "ReturnRequest", "VerifyRequest", "VerifyResponse",
    "CheckoutRequest", "AddItemRequest",
    "TransactionResponse", "TransactionDetailResponse", "TransactionItemResponse",
    "LogResponse",
    "ReconcileReport", "CleanupReport", "FlushReport",
    "Page",
]
