import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import store
from ..db import get_session
from ..deps import get_owner_id
from ..schemas import MonitoredAddressIn, MonitoredAddressOut, MonitoredAddressStatusIn

router = APIRouter()


@router.post("", response_model=MonitoredAddressOut, status_code=201)
def register(
    payload: MonitoredAddressIn,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> MonitoredAddressOut:
    """Start monitoring an address. 409 if the owner already monitors it."""
    monitored = store.register_address(session, owner_id, payload.address)
    return MonitoredAddressOut.model_validate(monitored)


@router.get("", response_model=List[MonitoredAddressOut])
def list_monitored(
    status: Optional[Literal["active", "inactive"]] = None,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> List[MonitoredAddressOut]:
    """Owner's addresses with threat counts and last scan time."""
    out: List[MonitoredAddressOut] = []
    for monitored, threat_count, last_scan in store.list_addresses(session, owner_id, status):
        item = MonitoredAddressOut.model_validate(monitored)
        item.threat_count = threat_count
        item.last_scan = last_scan
        out.append(item)
    return out


@router.patch("/{address_id}", response_model=MonitoredAddressOut)
def set_status(
    address_id: uuid.UUID,
    payload: MonitoredAddressStatusIn,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> MonitoredAddressOut:
    """Toggle monitoring on or off. Inactive addresses are skipped by ingestion."""
    monitored = store.set_address_status(session, address_id, owner_id, payload.status)
    return MonitoredAddressOut.model_validate(monitored)
