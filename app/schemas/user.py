from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from app.models.user import Role


class UserBase(BaseModel):
    username: str = Field(..., min_length=2, max_length=64)
    email: EmailStr
    name: str | None = None
    role: Role = Role.crew
    is_active: bool = True


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    role: Role | None = None
    is_active: bool | None = None
    password: str | None = Field(None, min_length=8)


class UserResponse(UserBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
