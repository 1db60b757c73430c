from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .config import get_settings
from .receipts import DeliveryReceipt, InboundMessage


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class ReceiptRecord(Base):
    __tablename__ = "delivery_receipts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    msisdn: Mapped[str] = mapped_column(String, nullable=False)
    sender: Mapped[str | None] = mapped_column(String, nullable=True)
    network_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    err_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    client_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class InboundRecord(Base):
    __tablename__ = "inbound_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    msisdn: Mapped[str] = mapped_column(String, nullable=False)
    to: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str | None] = mapped_column(String(8), nullable=True)  # "text" / "binary"
    text: Mapped[str] = mapped_column(String, nullable=False)
    concatenated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    concat_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    concat_part: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    concat_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# --- Engine & Session factory ---

settings = get_settings()

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db() -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


# --- Webhook subscribers ---


def store_receipt(receipt: DeliveryReceipt) -> None:
    db = SessionLocal()
    try:
        db.add(
            ReceiptRecord(
                message_id=receipt.message_id,
                msisdn=receipt.msisdn,
                sender=receipt.sender,
                network_code=receipt.network_code,
                status=receipt.status,
                err_code=receipt.err_code,
                client_ref=receipt.client_ref,
                delivered_at=receipt.received_at,
            )
        )
        db.commit()
    finally:
        db.close()


def store_inbound(message: InboundMessage) -> None:
    db = SessionLocal()
    try:
        db.add(
            InboundRecord(
                message_id=message.message_id,
                msisdn=message.msisdn,
                to=message.to,
                type=message.type,
                text=message.text,
                concatenated=message.concatenated,
                concat_ref=message.concat_ref,
                concat_part=message.concatenated_part,
                concat_total=message.concatenated_total,
            )
        )
        db.commit()
    finally:
        db.close()
