"""
SQLAlchemy models for users and their change journal.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import Integer, String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class UserTable(Base):
    """User record storage."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    nickname: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<UserTable(id={self.id}, email={self.email})>"


class UserChangeTable(Base):
    """
    Change journal for the users table.

    One row is appended in the same transaction as every user mutation.
    The monotonically increasing ``seq`` is the feed position; the JSON
    columns hold the full document after and before the change.
    """
    __tablename__ = "user_changes"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    document_key: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    full_document: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    full_document_before_change: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True
    )
    cluster_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<UserChangeTable(seq={self.seq}, operation_type={self.operation_type}, "
            f"document_key={self.document_key})>"
        )
