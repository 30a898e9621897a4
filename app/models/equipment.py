import enum
from datetime import datetime, timezone
from sqlalchemy import ForeignKey, String, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class EquipmentStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    CHECKED_OUT = "CHECKED_OUT"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    MAINTENANCE = "MAINTENANCE"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


class Condition(str, enum.Enum):
    OK = "OK"
    SCRATCHES = "SCRATCHES"
    NOT_FUNCTIONING = "NOT_FUNCTIONING"
    NEEDS_BATTERY = "NEEDS_BATTERY"
    LOOSE_MOUNT = "LOOSE_MOUNT"
    DAMAGED = "DAMAGED"


class Equipment(Base):
    __tablename__ = "equipment"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    barcode: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[EquipmentStatus] = mapped_column(
        SAEnum(EquipmentStatus, values_callable=lambda e: [x.value for x in e]),
        default=EquipmentStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    condition: Mapped[Condition] = mapped_column(
        SAEnum(Condition, values_callable=lambda e: [x.value for x in e]),
        default=Condition.OK,
        nullable=False,
    )
    # Set only while status is CHECKED_OUT or PENDING_VERIFICATION
    assigned_to: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    assignee: Mapped["User | None"] = relationship(back_populates="assigned_equipment")
    transaction_items: Mapped[list["TransactionItem"]] = relationship(back_populates="equipment")
