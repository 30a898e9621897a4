from datetime import datetime
from pydantic import BaseModel, Field
from app.models.equipment import EquipmentStatus, Condition
from app.models.transaction import TransactionStatus


class CheckoutRequest(BaseModel):
    equipment_ids: list[int] = Field(..., min_length=1)
    holder_id: int | None = None  # defaults to the caller
    additional_holder_ids: list[int] = []
    project: str | None = None


class AddItemRequest(BaseModel):
    equipment_id: int


class TransactionItemResponse(BaseModel):
    equipment_id: int
    barcode: str
    name: str
    status: EquipmentStatus
    pre_checkout_condition: Condition
    current_condition: Condition


class TransactionResponse(BaseModel):
    id: str
    user_id: int
    additional_user_ids: list[int]
    items: list[int]
    pre_checkout_conditions: dict[int, Condition]
    status: TransactionStatus
    project: str | None
    timestamp_out: datetime
    closed_at: datetime | None

    model_config = {"from_attributes": True}


class TransactionDetailResponse(TransactionResponse):
    entries: list[TransactionItemResponse]
    outstanding: int
