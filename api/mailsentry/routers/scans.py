import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import lifecycle, store
from ..db import get_session
from ..deps import get_owner_id
from ..schemas import QuarantineEventOut, ScanRecordOut, TransitionOut

router = APIRouter()


def _transition_out(result: lifecycle.TransitionResult) -> TransitionOut:
    record = ScanRecordOut.model_validate(result.record) if result.record is not None else None
    return TransitionOut(outcome=result.outcome, record=record)


@router.get("", response_model=List[ScanRecordOut])
def list_scans(
    quarantined: Optional[bool] = None,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> List[ScanRecordOut]:
    """Owner's scan records, most recently received first. `quarantined=true` gives the quarantine view."""
    return [ScanRecordOut.model_validate(s) for s in store.list_scans_for_owner(session, owner_id, quarantined)]


@router.get("/{scan_id}", response_model=ScanRecordOut)
def get_scan(
    scan_id: uuid.UUID,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> ScanRecordOut:
    return ScanRecordOut.model_validate(store.get_scan(session, scan_id, owner_id))


@router.get("/{scan_id}/events", response_model=List[QuarantineEventOut])
def list_events(
    scan_id: uuid.UUID,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> List[QuarantineEventOut]:
    """Quarantine audit trail for one record, oldest first."""
    return [QuarantineEventOut.model_validate(e) for e in store.list_events(session, scan_id, owner_id)]


@router.post("/{scan_id}/quarantine", response_model=TransitionOut)
def quarantine(
    scan_id: uuid.UUID,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> TransitionOut:
    """Manually quarantine an active record. Already quarantined -> outcome `noop`."""
    return _transition_out(lifecycle.quarantine(session, scan_id, owner_id))


@router.post("/{scan_id}/release", response_model=TransitionOut)
def release(
    scan_id: uuid.UUID,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> TransitionOut:
    """Release a quarantined record. Not quarantined -> outcome `noop`."""
    return _transition_out(lifecycle.release(session, scan_id, owner_id))


@router.delete("/{scan_id}", response_model=TransitionOut)
def delete(
    scan_id: uuid.UUID,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> TransitionOut:
    """Permanently delete a record in either state."""
    return _transition_out(lifecycle.delete(session, scan_id, owner_id))
