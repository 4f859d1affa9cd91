"""
SQLAlchemy ORM models.

A client owns its messages and debts; deleting a client deletes both.
The assistant configuration lives in a single row with a fixed primary key.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ASSISTANT_CONFIG_ROW_ID = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ClientRow(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    national_id: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, comment="Chilean RUT"
    )
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    messages: Mapped[List["MessageRow"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        order_by=lambda: [MessageRow.sent_at.desc(), MessageRow.id.desc()],
    )
    debts: Mapped[List["DebtRow"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        order_by=lambda: [DebtRow.due_date, DebtRow.id],
    )

    def __repr__(self) -> str:
        return f"<ClientRow(id={self.id}, name={self.name!r})>"


class MessageRow(Base):
    __tablename__ = "messages"
    __table_args__ = (CheckConstraint("role IN ('client', 'agent')", name="ck_messages_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )

    client: Mapped[ClientRow] = relationship(back_populates="messages")


class DebtRow(Base):
    __tablename__ = "debts"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_debts_amount_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    institution: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )

    client: Mapped[ClientRow] = relationship(back_populates="debts")


class AssistantConfigRow(Base):
    __tablename__ = "assistant_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=ASSISTANT_CONFIG_ROW_ID)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    tone: Mapped[str] = mapped_column(String(20), nullable=False)
    language: Mapped[str] = mapped_column(String(5), nullable=False)
    brands: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    models: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    branches: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    message_length_min: Mapped[int] = mapped_column(Integer, nullable=False)
    message_length_max: Mapped[int] = mapped_column(Integer, nullable=False)
    signature: Mapped[str] = mapped_column(String(100), nullable=False)
    use_emojis: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    additional_instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
