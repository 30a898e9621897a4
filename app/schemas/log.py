from datetime import datetime
from pydantic import BaseModel
from app.models.log import LogAction


class LogResponse(BaseModel):
    id: int
    action: LogAction
    entity_id: str
    user_id: int | None
    timestamp: datetime
    details: str | None

    model_config = {"from_attributes": True}
