from fastapi import APIRouter
from ..schemas import ScanIn, VerdictOut
from ..pipeline.classify import preview_email

router = APIRouter()


@router.post("", response_model=VerdictOut)
def scan(payload: ScanIn) -> VerdictOut:
    """
    Classify an email without storing it.

    Rules are checked in priority order and the first hit wins:
    1. phishing (login, password, update payment, confirm identity) -> critical
    2. spam (free, limited time, act now, congratulations) -> medium
    3. suspicious (urgent, click here, verify account, suspended, prize, winner) -> medium
    4. otherwise clean -> low

    `is_quarantined` reports what the quarantine policy would decide: only
    non-clean results at critical risk are quarantined.

    Example request:
    ```json
    {
      "subject": "Urgent: Verify your account to prevent suspension",
      "content": "Click here to verify your login credentials immediately."
    }
    ```
    """
    return preview_email(payload)
