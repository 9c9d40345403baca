import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored as UTC.

    SQLite keeps no offset, so values come back naive there; they are read
    as UTC. Naive inputs are assumed to already be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class MonitoredAddress(Base):
    __tablename__ = "monitored_addresses"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "address", name="monitored_addresses_owner_address_key"),
        CheckConstraint("status IN ('active','inactive')", name="monitored_addresses_status_check"),
    )

    scans: Mapped[list["ScanRecord"]] = relationship(
        back_populates="monitored_address", cascade="all, delete-orphan", passive_deletes=True
    )


class ScanRecord(Base):
    __tablename__ = "email_scans"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    message_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    monitored_address_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("monitored_addresses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    sender: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_preview: Mapped[str | None] = mapped_column(Text, nullable=True)

    scan_result: Mapped[str] = mapped_column(Text, nullable=False, default="clean")
    risk_level: Mapped[str] = mapped_column(Text, nullable=False, default="low")
    is_quarantined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    threat_details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    scanned_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    email_received_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            "scan_result IN ('clean','spam','phishing','malware','suspicious')",
            name="email_scans_scan_result_check",
        ),
        CheckConstraint(
            "risk_level IN ('low','medium','high','critical')",
            name="email_scans_risk_level_check",
        ),
    )

    monitored_address: Mapped[MonitoredAddress] = relationship(back_populates="scans")
    events: Mapped[list["QuarantineEvent"]] = relationship(
        back_populates="scan", cascade="all, delete-orphan", passive_deletes=True
    )


class QuarantineEvent(Base):
    """Audit trail of quarantine state changes for one scan record."""

    __tablename__ = "quarantine_events"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    scan_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("email_scans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("action IN ('quarantined','released')", name="quarantine_events_action_check"),
    )

    scan: Mapped[ScanRecord] = relationship(back_populates="events")
