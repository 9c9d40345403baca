import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .pipeline.deterministic import RiskLevel, ThreatCategory


class EmailCandidate(BaseModel):
    """
    One email handed to the scanner by an ingestion source.
    Consumed once; only the resulting scan record is persisted.
    """

    message_id: str = Field(min_length=1)
    sender: str
    recipient: str
    subject: str = ""
    content: str = ""
    received_at: datetime
    direction: Optional[Literal["incoming", "outgoing"]] = None


class ScanIn(BaseModel):
    """Minimal payload for a stateless classification preview."""

    subject: str = ""
    content: str = ""


class VerdictOut(BaseModel):
    scan_result: ThreatCategory
    risk_level: RiskLevel
    threat_details: Optional[Dict[str, Any]] = None
    is_quarantined: bool


class ScanRecordInput(BaseModel):
    """Fields required to insert a scan record into the store."""

    message_id: str
    monitored_address_id: uuid.UUID
    sender: str
    recipient: str
    subject: str
    content_preview: str
    scan_result: ThreatCategory
    risk_level: RiskLevel
    is_quarantined: bool
    threat_details: Optional[Dict[str, Any]] = None
    email_received_at: datetime


class ScanRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    message_id: str
    monitored_address_id: uuid.UUID
    sender: str
    recipient: str
    subject: str
    content_preview: Optional[str] = None
    scan_result: ThreatCategory
    risk_level: RiskLevel
    is_quarantined: bool
    threat_details: Optional[Dict[str, Any]] = None
    scanned_at: datetime
    email_received_at: datetime


class QuarantineEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scan_id: uuid.UUID
    action: Literal["quarantined", "released"]
    reason: Optional[str] = None
    actor: str
    created_at: datetime


class TransitionOut(BaseModel):
    """
    Result of a lifecycle operation.
    outcome: applied when the state changed, noop when the record was already
    in the requested state. record is None after a delete.
    """

    outcome: Literal["applied", "noop"]
    record: Optional[ScanRecordOut] = None


class MonitoredAddressIn(BaseModel):
    address: EmailStr


class MonitoredAddressStatusIn(BaseModel):
    status: Literal["active", "inactive"]


class MonitoredAddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    address: str
    status: Literal["active", "inactive"]
    created_at: datetime
    updated_at: datetime
    threat_count: int = 0
    last_scan: Optional[datetime] = None


class IngestIn(BaseModel):
    address: EmailStr
    candidates: List[EmailCandidate]


class SimulateIn(BaseModel):
    address: EmailStr


class IngestFailureOut(BaseModel):
    message_id: str
    error: str
    retryable: bool


class IngestReportOut(BaseModel):
    """
    Per-batch outcome counts.
    processed: records stored; duplicates: already-scanned message ids;
    dropped: candidates not scanned because the address is not actively
    monitored; failed: storage errors, listed in failures.
    """

    processed: int = 0
    failed: int = 0
    duplicates: int = 0
    dropped: int = 0
    failures: List[IngestFailureOut] = []


class OverviewOut(BaseModel):
    total_scans: int
    by_result: Dict[str, int]
    quarantined: int
    monitored_addresses: int
    active_addresses: int
