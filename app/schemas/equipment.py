from datetime import datetime
from pydantic import BaseModel, Field
from app.models.equipment import EquipmentStatus, Condition


class EquipmentBase(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    category: str | None = None
    location: str | None = None
    condition: Condition = Condition.OK
    brand: str | None = None
    model: str | None = None
    serial_number: str | None = None


class EquipmentCreate(EquipmentBase):
    pass


class EquipmentUpdate(BaseModel):
    barcode: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = None
    category: str | None = None
    location: str | None = None
    condition: Condition | None = None
    status: EquipmentStatus | None = None
    brand: str | None = None
    model: str | None = None
    serial_number: str | None = None


class EquipmentResponse(EquipmentBase):
    id: int
    status: EquipmentStatus
    assigned_to: int | None
    last_activity: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReturnRequest(BaseModel):
    condition: Condition = Condition.OK


class VerifyRequest(BaseModel):
    outcome: EquipmentStatus


class VerifyResponse(BaseModel):
    equipment: EquipmentResponse
    auto_closed: bool
    transaction_id: str | None = None
