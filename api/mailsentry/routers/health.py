from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import db_health, get_session

router = APIRouter()


@router.get("")
def health(session: Session = Depends(get_session)):
    """Return API status, DB connectivity and whether the schema is in place."""
    check = db_health(session)
    schema_ready = check["db"] and all(check["tables"].values())
    return {"status": "ok" if schema_ready else "degraded", **check}
