import enum
from datetime import datetime, timezone
from sqlalchemy import Column, ForeignKey, String, DateTime, Table, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.models.equipment import Condition


class TransactionStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


transaction_holders = Table(
    "transaction_holders",
    Base.metadata,
    Column("transaction_id", ForeignKey("transactions.id"), primary_key=True),
    Column("user_id", ForeignKey("users.id"), primary_key=True),
)


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    project: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, values_callable=lambda e: [x.value for x in e]),
        default=TransactionStatus.OPEN,
        nullable=False,
        index=True,
    )
    timestamp_out: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    holder: Mapped["User"] = relationship(back_populates="transactions")
    additional_users: Mapped[list["User"]] = relationship(secondary=transaction_holders)
    entries: Mapped[list["TransactionItem"]] = relationship(
        back_populates="transaction",
        order_by="TransactionItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def items(self) -> list[int]:
        return [e.equipment_id for e in self.entries]

    @property
    def pre_checkout_conditions(self) -> dict[int, Condition]:
        return {e.equipment_id: e.pre_checkout_condition for e in self.entries}

    @property
    def additional_user_ids(self) -> list[int]:
        return [u.id for u in self.additional_users]


class TransactionItem(Base):
    """Membership of one equipment item in a transaction, with its condition at checkout."""

    __tablename__ = "transaction_items"

    __table_args__ = (
        UniqueConstraint("transaction_id", "equipment_id", name="uq_transaction_equipment"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id"), nullable=False, index=True)
    equipment_id: Mapped[int] = mapped_column(ForeignKey("equipment.id"), nullable=False, index=True)
    pre_checkout_condition: Mapped[Condition] = mapped_column(
        SAEnum(Condition, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    transaction: Mapped["Transaction"] = relationship(back_populates="entries")
    equipment: Mapped["Equipment"] = relationship(back_populates="transaction_items")
