"""
Scan orchestration: candidate email -> verdict -> quarantine decision.

This module turns an ingested email into the record the store persists. It
performs no I/O; persistence is the caller's job.
"""

import uuid

from ..config import CONTENT_PREVIEW_CHARS
from ..schemas import EmailCandidate, ScanIn, ScanRecordInput, VerdictOut
from .deterministic import classify, should_quarantine


# ============================================================================
# Public API
# ============================================================================

def content_preview(content: str | None) -> str:
    """First CONTENT_PREVIEW_CHARS characters of content; shorter text is kept as-is."""
    return (content or "")[:CONTENT_PREVIEW_CHARS]


def preview_email(payload: ScanIn) -> VerdictOut:
    """Classify without storing anything (used by POST /scan)."""
    verdict = classify(payload.subject, payload.content)
    return VerdictOut(
        scan_result=verdict.scan_result,
        risk_level=verdict.risk_level,
        threat_details=verdict.threat_details,
        is_quarantined=should_quarantine(verdict.scan_result, verdict.risk_level),
    )


def scan_candidate(candidate: EmailCandidate, monitored_address_id: uuid.UUID) -> ScanRecordInput:
    """
    Build the scan record for one candidate scanned against a monitored address.
    """
    verdict = classify(candidate.subject, candidate.content)

    return ScanRecordInput(
        message_id=candidate.message_id,
        monitored_address_id=monitored_address_id,
        sender=candidate.sender,
        recipient=candidate.recipient,
        subject=candidate.subject,
        content_preview=content_preview(candidate.content),
        scan_result=verdict.scan_result,
        risk_level=verdict.risk_level,
        is_quarantined=should_quarantine(verdict.scan_result, verdict.risk_level),
        threat_details=verdict.threat_details,
        email_received_at=candidate.received_at,
    )
