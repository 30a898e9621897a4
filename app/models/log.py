import enum
from datetime import datetime, timezone
from sqlalchemy import ForeignKey, String, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class LogAction(str, enum.Enum):
    CHECKOUT = "CHECKOUT"
    RETURN = "RETURN"
    VERIFY = "VERIFY"
    EDIT = "EDIT"
    CREATE = "CREATE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"


class Log(Base):
    """Append-only table: rows are never updated or deleted."""

    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    action: Mapped[LogAction] = mapped_column(
        SAEnum(LogAction, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        index=True,
    )
    # Equipment id or transaction id, stored as text
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    details: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    user: Mapped["User | None"] = relationship(back_populates="logs")
