"""
Ingestion driver: feeds candidate emails for a monitored address through the
scanner and into the store.

Batches are best-effort. Each candidate is classified and inserted on its own;
a storage failure on one item is recorded in the report and the next item is
still attempted. Nothing is scanned for an address that is not actively
monitored.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import store
from .errors import DuplicateMessage, NotFoundAddress, StorageUnavailable
from .pipeline.classify import scan_candidate
from .schemas import EmailCandidate, IngestFailureOut, IngestReportOut

logger = logging.getLogger(__name__)


def sample_candidates(address: str, now: Optional[datetime] = None) -> List[EmailCandidate]:
    """
    Four fixed demo emails for ``address``: phishing incoming, clean outgoing,
    clean incoming, spam incoming. Message ids embed the epoch in milliseconds.
    """
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)

    return [
        EmailCandidate(
            message_id=f"msg_{stamp}_1",
            sender="notifications@bank.com",
            recipient=address,
            subject="Urgent: Verify your account to prevent suspension",
            content=(
                "Dear customer, your account will be suspended. "
                "Click here to verify your login credentials immediately."
            ),
            received_at=now,
            direction="incoming",
        ),
        EmailCandidate(
            message_id=f"msg_{stamp}_2",
            sender=address,
            recipient="colleague@company.com",
            subject="Meeting notes from today",
            content=(
                "Hi, please find attached the meeting notes from our discussion today. "
                "Let me know if you have any questions."
            ),
            received_at=now - timedelta(seconds=30),
            direction="outgoing",
        ),
        EmailCandidate(
            message_id=f"msg_{stamp}_3",
            sender="newsletter@tech-company.com",
            recipient=address,
            subject="Weekly Tech Updates",
            content="Here are this week's technology updates and industry news.",
            received_at=now - timedelta(seconds=60),
            direction="incoming",
        ),
        EmailCandidate(
            message_id=f"msg_{stamp}_4",
            sender="no-reply@suspicious-site.com",
            recipient=address,
            subject="You've won a prize! Act now!",
            content=(
                "Congratulations! You've won $1000. "
                "Click here to claim your free prize now. Limited time offer!"
            ),
            received_at=now - timedelta(seconds=90),
            direction="incoming",
        ),
    ]


def ingest_batch(
    session: Session, address: str, owner_id: str, candidates: Iterable[EmailCandidate]
) -> IngestReportOut:
    candidates = list(candidates)
    report = IngestReportOut()

    try:
        monitored = store.find_active(session, address, owner_id)
    except NotFoundAddress as exc:
        logger.warning(f"Dropping {len(candidates)} email(s): {exc.message}")
        report.dropped = len(candidates)
        return report

    for candidate in candidates:
        record = scan_candidate(candidate, monitored.id)
        try:
            store.insert_scan(session, record)
        except DuplicateMessage:
            logger.info(f"Skipping already scanned message {candidate.message_id}")
            report.duplicates += 1
            continue
        except StorageUnavailable as exc:
            logger.warning(f"Storage unavailable for {candidate.message_id}: {exc.message}")
            report.failed += 1
            report.failures.append(
                IngestFailureOut(message_id=candidate.message_id, error=exc.message, retryable=True)
            )
            continue
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(f"Failed to store scan for {candidate.message_id}: {exc}")
            report.failed += 1
            report.failures.append(
                IngestFailureOut(message_id=candidate.message_id, error=str(exc), retryable=False)
            )
            continue

        report.processed += 1
        if record.is_quarantined:
            logger.info(f"Auto-quarantined {candidate.message_id} ({record.scan_result.value})")

    logger.info(
        f"Ingested batch for {monitored.address}: processed={report.processed} "
        f"failed={report.failed} duplicates={report.duplicates}"
    )
    return report


def simulate(session: Session, address: str, owner_id: str, now: Optional[datetime] = None) -> IngestReportOut:
    """Run the four demo emails through ingestion for ``address``."""
    return ingest_batch(session, address, owner_id, sample_candidates(address, now))
