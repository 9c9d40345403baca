"""
Quarantine lifecycle for stored scan records.

States: active (is_quarantined false), quarantined (true), deleted (terminal,
row removed). Quarantine and release only act on records in the opposite
state; a call against a record already in the requested state returns a
``noop`` result instead of an error. Unknown ids raise NotFoundRecord.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Literal, Optional

from sqlalchemy.orm import Session

from . import store
from .models import ScanRecord

logger = logging.getLogger(__name__)

APPLIED = "applied"
NOOP = "noop"


@dataclass
class TransitionResult:
    outcome: Literal["applied", "noop"]
    record: Optional[ScanRecord]

    @property
    def applied(self) -> bool:
        return self.outcome == APPLIED


def quarantine(
    session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None, reason: Optional[str] = None
) -> TransitionResult:
    """Manual escalation: active -> quarantined. Allowed for any risk level."""
    record, changed = store.set_quarantined(
        session, scan_id, True, owner_id=owner_id, actor=owner_id or "operator", reason=reason or "manual"
    )
    if changed:
        logger.info(f"Quarantined scan {scan_id} ({record.scan_result}/{record.risk_level})")
    return TransitionResult(APPLIED if changed else NOOP, record)


def release(
    session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None, reason: Optional[str] = None
) -> TransitionResult:
    """quarantined -> active; the record stays in the store."""
    record, changed = store.set_quarantined(
        session, scan_id, False, owner_id=owner_id, actor=owner_id or "operator", reason=reason
    )
    if changed:
        logger.info(f"Released scan {scan_id} from quarantine")
    return TransitionResult(APPLIED if changed else NOOP, record)


def delete(session: Session, scan_id: uuid.UUID, owner_id: Optional[str] = None) -> TransitionResult:
    """Permanent purge from either state. Later operations on the id raise NotFoundRecord."""
    store.delete_scan(session, scan_id, owner_id=owner_id)
    logger.info(f"Deleted scan {scan_id}")
    return TransitionResult(APPLIED, None)
