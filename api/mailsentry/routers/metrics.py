from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import store
from ..db import get_session
from ..deps import get_owner_id
from ..schemas import OverviewOut

router = APIRouter()


@router.get("/overview", response_model=OverviewOut)
def metrics_overview(
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> OverviewOut:
    """
    Dashboard counts for the owner: scans per result, quarantined scans and
    monitored addresses.
    """
    return OverviewOut(**store.overview(session, owner_id))
