"""Subdomain model for claimed labels under the parent zone."""

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from subdomain_registry.database import Base


class RecordType(str, enum.Enum):
    """DNS record types a subdomain can point with."""

    A = "A"
    CNAME = "CNAME"


class SubdomainStatus(str, enum.Enum):
    """Claim lifecycle status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Subdomain(Base):
    """Represents a claimed subdomain and the state of its DNS record."""

    __tablename__ = "subdomains"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Normalized label (unique while the record exists)
    label: Mapped[str] = mapped_column(
        String(63),
        nullable=False,
    )

    # Owner identity from the Identity Provider
    owner_id: Mapped[str] = mapped_column(
        String(128),
        index=True,
        nullable=False,
    )
    owner_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # DNS record
    record_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )
    target: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Claim status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubdomainStatus.PENDING.value,
    )

    # Outcome of the last DNS write for the current target
    dns_created: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    dns_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Indexes
    __table_args__ = (
        Index("ix_subdomains_label", "label", unique=True),
        Index("ix_subdomains_created_at_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return f"<Subdomain(label={self.label}, status={self.status}, dns_created={self.dns_created})>"
