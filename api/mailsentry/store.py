"""
Monitoring registry and scan record store.

Thin data-access functions over a SQLAlchemy session. Every write commits its
own transaction so a caller processing many records never loses earlier work
to a later failure. Connectivity errors surface as StorageUnavailable.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from .errors import AddressAlreadyMonitored, DuplicateMessage, NotFoundAddress, NotFoundRecord, StorageUnavailable
from .models import MonitoredAddress, QuarantineEvent, ScanRecord, utcnow
from .schemas import ScanRecordInput

logger = logging.getLogger(__name__)


@contextmanager
def _storage_guard(session: Session) -> Iterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        session.rollback()
        logger.error(f"Storage unavailable: {exc}")
        raise StorageUnavailable(str(exc.orig or exc)) from exc


def _normalize_address(address: str) -> str:
    return address.strip().lower()


def _owned_address_ids(owner_id: str):
    return select(MonitoredAddress.id).where(MonitoredAddress.owner_id == owner_id)


# ============================================================================
# Monitoring Registry
# ============================================================================

def register_address(session: Session, owner_id: str, address: str) -> MonitoredAddress:
    normalized = _normalize_address(address)
    with _storage_guard(session):
        existing = session.scalar(
            select(MonitoredAddress.id).where(
                MonitoredAddress.owner_id == owner_id, MonitoredAddress.address == normalized
            )
        )
        if existing is not None:
            raise AddressAlreadyMonitored(f"Already monitoring {normalized}")

        monitored = MonitoredAddress(owner_id=owner_id, address=normalized, status="active")
        session.add(monitored)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise AddressAlreadyMonitored(f"Already monitoring {normalized}") from exc
    logger.info(f"Now monitoring {normalized} for owner {owner_id}")
    return monitored


def get_address(session: Session, address_id: uuid.UUID, owner_id: str) -> MonitoredAddress:
    with _storage_guard(session):
        monitored = session.scalar(
            select(MonitoredAddress).where(
                MonitoredAddress.id == address_id, MonitoredAddress.owner_id == owner_id
            )
        )
    if monitored is None:
        raise NotFoundAddress(f"Monitored address not found: {address_id}")
    return monitored


def set_address_status(session: Session, address_id: uuid.UUID, owner_id: str, status: str) -> MonitoredAddress:
    monitored = get_address(session, address_id, owner_id)
    if monitored.status == status:
        return monitored
    with _storage_guard(session):
        monitored.status = status
        monitored.updated_at = utcnow()
        session.commit()
    logger.info(f"Monitoring for {monitored.address} set to {status}")
    return monitored


def find_active(session: Session, address: str, owner_id: str) -> MonitoredAddress:
    """Resolve an actively monitored address or raise NotFoundAddress."""
    normalized = _normalize_address(address)
    with _storage_guard(session):
        monitored = session.scalar(
            select(MonitoredAddress).where(
                MonitoredAddress.owner_id == owner_id,
                MonitoredAddress.address == normalized,
                MonitoredAddress.status == "active",
            )
        )
    if monitored is None:
        raise NotFoundAddress(f"{normalized} is not actively monitored")
    return monitored


def list_addresses(
    session: Session, owner_id: str, status: Optional[str] = None
) -> List[Tuple[MonitoredAddress, int, Optional[object]]]:
    """
    Return (address, threat_count, last_scan) for each of the owner's addresses,
    newest registration first. threat_count counts non-clean scans.
    """
    threat_count = func.coalesce(
        func.sum(case((ScanRecord.scan_result != "clean", 1), else_=0)), 0
    )
    last_scan = func.max(ScanRecord.scanned_at)

    stmt = (
        select(MonitoredAddress, threat_count, last_scan)
        .outerjoin(ScanRecord, ScanRecord.monitored_address_id == MonitoredAddress.id)
        .where(MonitoredAddress.owner_id == owner_id)
        .group_by(MonitoredAddress.id)
        .order_by(MonitoredAddress.created_at.desc())
    )
    if status is not None:
        stmt = stmt.where(MonitoredAddress.status == status)

    with _storage_guard(session):
        rows = session.execute(stmt).all()
    return [(row[0], int(row[1] or 0), row[2]) for row in rows]


# ============================================================================
# Scan Record Store
# ============================================================================

def insert_scan(session: Session, record: ScanRecordInput) -> ScanRecord:
    """
    Persist one scan record. Raises DuplicateMessage when the message id has
    already been scanned. An auto-quarantined record gets its audit event in
    the same transaction.
    """
    with _storage_guard(session):
        if session.scalar(select(ScanRecord.id).where(ScanRecord.message_id == record.message_id)):
            raise DuplicateMessage(record.message_id)

        scan = ScanRecord(
            id=uuid.uuid4(),
            message_id=record.message_id,
            monitored_address_id=record.monitored_address_id,
            sender=record.sender,
            recipient=record.recipient,
            subject=record.subject,
            content_preview=record.content_preview,
            scan_result=record.scan_result.value,
            risk_level=record.risk_level.value,
            is_quarantined=record.is_quarantined,
            threat_details=record.threat_details,
            scanned_at=utcnow(),
            email_received_at=record.email_received_at,
        )
        if record.is_quarantined:
            scan.events.append(
                QuarantineEvent(
                    action="quarantined",
                    reason=f"auto: {record.scan_result.value}/{record.risk_level.value}",
                    actor="policy",
                )
            )
        session.add(scan)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if session.scalar(select(ScanRecord.id).where(ScanRecord.message_id == record.message_id)):
                raise DuplicateMessage(record.message_id) from exc
            raise
    return scan


def get_scan(session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None) -> ScanRecord:
    stmt = select(ScanRecord).where(ScanRecord.id == scan_id).execution_options(populate_existing=True)
    if owner_id is not None:
        stmt = stmt.where(ScanRecord.monitored_address_id.in_(_owned_address_ids(owner_id)))
    with _storage_guard(session):
        scan = session.scalar(stmt)
    if scan is None:
        raise NotFoundRecord(scan_id)
    return scan


def list_scans_for_owner(
    session: Session, owner_id: str, quarantined: Optional[bool] = None
) -> List[ScanRecord]:
    """Owner's scan records, most recently received first."""
    stmt = (
        select(ScanRecord)
        .join(MonitoredAddress, ScanRecord.monitored_address_id == MonitoredAddress.id)
        .where(MonitoredAddress.owner_id == owner_id)
        .order_by(ScanRecord.email_received_at.desc())
    )
    if quarantined is not None:
        stmt = stmt.where(ScanRecord.is_quarantined.is_(quarantined))
    with _storage_guard(session):
        return list(session.scalars(stmt))


def set_quarantined(
    session: Session,
    scan_id: uuid.UUID,
    value: bool,
    owner_id: Optional[str] = None,
    actor: str = "operator",
    reason: Optional[str] = None,
) -> Tuple[ScanRecord, bool]:
    """
    Flip is_quarantined to ``value`` only if it currently holds the opposite.

    The check and the write are one UPDATE statement, so two concurrent calls
    against the same prior state cannot both report a change. Returns the
    current record and whether this call changed it.
    """
    stmt = (
        update(ScanRecord)
        .where(ScanRecord.id == scan_id, ScanRecord.is_quarantined == (not value))
        .values(is_quarantined=value)
        .execution_options(synchronize_session=False)
    )
    if owner_id is not None:
        stmt = stmt.where(ScanRecord.monitored_address_id.in_(_owned_address_ids(owner_id)))

    with _storage_guard(session):
        changed = session.execute(stmt).rowcount == 1
        if changed:
            session.add(
                QuarantineEvent(
                    scan_id=scan_id,
                    action="quarantined" if value else "released",
                    reason=reason,
                    actor=actor,
                )
            )
            session.commit()
        else:
            session.rollback()

    return get_scan(session, scan_id, owner_id), changed


def delete_scan(session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None) -> None:
    stmt = delete(ScanRecord).where(ScanRecord.id == scan_id).execution_options(synchronize_session=False)
    if owner_id is not None:
        stmt = stmt.where(ScanRecord.monitored_address_id.in_(_owned_address_ids(owner_id)))

    with _storage_guard(session):
        deleted = session.execute(stmt).rowcount
        if not deleted:
            session.rollback()
            raise NotFoundRecord(scan_id)
        session.commit()


def list_events(session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None) -> List[QuarantineEvent]:
    get_scan(session, scan_id, owner_id)
    stmt = (
        select(QuarantineEvent)
        .where(QuarantineEvent.scan_id == scan_id)
        .order_by(QuarantineEvent.created_at, QuarantineEvent.id)
    )
    with _storage_guard(session):
        return list(session.scalars(stmt))


def overview(session: Session, owner_id: str) -> Dict[str, object]:
    owned = _owned_address_ids(owner_id)
    with _storage_guard(session):
        by_result = {
            result: int(count)
            for result, count in session.execute(
                select(ScanRecord.scan_result, func.count())
                .where(ScanRecord.monitored_address_id.in_(owned))
                .group_by(ScanRecord.scan_result)
            )
        }
        quarantined = session.scalar(
            select(func.count())
            .select_from(ScanRecord)
            .where(ScanRecord.monitored_address_id.in_(owned), ScanRecord.is_quarantined.is_(True))
        )
        status_counts = {
            status: int(count)
            for status, count in session.execute(
                select(MonitoredAddress.status, func.count())
                .where(MonitoredAddress.owner_id == owner_id)
                .group_by(MonitoredAddress.status)
            )
        }

    return {
        "total_scans": sum(by_result.values()),
        "by_result": by_result,
        "quarantined": int(quarantined or 0),
        "monitored_addresses": sum(status_counts.values()),
        "active_addresses": status_counts.get("active", 0),
    }
