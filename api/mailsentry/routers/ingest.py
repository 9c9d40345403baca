from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import ingestion
from ..db import get_session
from ..deps import get_owner_id
from ..schemas import IngestIn, IngestReportOut, SimulateIn

router = APIRouter()


@router.post("", response_model=IngestReportOut)
def ingest(
    payload: IngestIn,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> IngestReportOut:
    """
    Scan and store a batch of emails for a monitored address.

    Each email is handled independently: already-scanned message ids are
    counted under `duplicates`, storage errors under `failed` (with details in
    `failures`), and the rest of the batch still runs. If the address is not
    actively monitored nothing is scanned and every email counts as `dropped`.
    """
    return ingestion.ingest_batch(session, payload.address, owner_id, payload.candidates)


@router.post("/simulate", response_model=IngestReportOut)
def simulate(
    payload: SimulateIn,
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> IngestReportOut:
    """Ingest four demo emails (one phishing, two clean, one spam) for the address."""
    return ingestion.simulate(session, payload.address, owner_id)
