import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from mailsentry import ingestion, lifecycle, store
from mailsentry.errors import AddressAlreadyMonitored, DuplicateMessage, NotFoundAddress, NotFoundRecord, StorageUnavailable
from mailsentry.models import Base, QuarantineEvent
from mailsentry.pipeline.classify import scan_candidate

OWNER = "owner-1"
ADDRESS = "me@corp.com"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scans(session):
    """Simulated batch stored for ADDRESS; returns records keyed by scan result."""
    store.register_address(session, OWNER, ADDRESS)
    report = ingestion.simulate(session, ADDRESS, OWNER, now=NOW)
    assert report.processed == 4
    records = store.list_scans_for_owner(session, OWNER)
    return {
        "phishing": next(r for r in records if r.scan_result == "phishing"),
        "spam": next(r for r in records if r.scan_result == "spam"),
        "clean": next(r for r in records if r.scan_result == "clean"),
    }


def test_release_only_applies_to_quarantined(session, scans):
    phishing = scans["phishing"]
    assert phishing.is_quarantined is True

    result = lifecycle.release(session, phishing.id, OWNER)
    assert result.outcome == "applied"
    assert result.record.is_quarantined is False

    again = lifecycle.release(session, phishing.id, OWNER)
    assert again.outcome == "noop"
    assert again.record.is_quarantined is False


def test_quarantine_only_applies_to_active(session, scans):
    spam = scans["spam"]
    assert spam.is_quarantined is False

    result = lifecycle.quarantine(session, spam.id, OWNER)
    assert result.applied
    assert store.get_scan(session, spam.id).is_quarantined is True

    again = lifecycle.quarantine(session, spam.id, OWNER)
    assert again.outcome == "noop"


def test_manual_quarantine_allowed_on_clean_record(session, scans):
    result = lifecycle.quarantine(session, scans["clean"].id, OWNER)
    assert result.applied
    assert result.record.scan_result == "clean"


def test_delete_from_either_state_is_terminal(session, scans):
    quarantined_id = scans["phishing"].id
    active_id = scans["spam"].id

    for scan_id in (quarantined_id, active_id):
        assert lifecycle.delete(session, scan_id, OWNER).applied
        with pytest.raises(NotFoundRecord):
            store.get_scan(session, scan_id)
        with pytest.raises(NotFoundRecord):
            lifecycle.release(session, scan_id, OWNER)
        with pytest.raises(NotFoundRecord):
            lifecycle.quarantine(session, scan_id, OWNER)
        with pytest.raises(NotFoundRecord):
            lifecycle.delete(session, scan_id, OWNER)


def test_unknown_id_is_not_found(session, scans):
    missing = uuid.uuid4()
    for op in (lifecycle.quarantine, lifecycle.release, lifecycle.delete):
        with pytest.raises(NotFoundRecord):
            op(session, missing, OWNER)


def test_other_owner_cannot_touch_records(session, scans):
    phishing = scans["phishing"]
    with pytest.raises(NotFoundRecord):
        lifecycle.release(session, phishing.id, "owner-2")
    with pytest.raises(NotFoundRecord):
        lifecycle.delete(session, phishing.id, "owner-2")
    assert store.get_scan(session, phishing.id, OWNER).is_quarantined is True


def test_two_sessions_release_succeeds_once(session_factory, scans):
    scan_id = scans["phishing"].id
    with session_factory() as first, session_factory() as second:
        outcomes = [
            lifecycle.release(first, scan_id, OWNER).outcome,
            lifecycle.release(second, scan_id, OWNER).outcome,
        ]
    assert sorted(outcomes) == ["applied", "noop"]


@pytest.fixture
def file_session_factory(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'mailsentry.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(eng)
    yield sessionmaker(bind=eng, expire_on_commit=False)
    eng.dispose()


def test_release_and_delete_race_on_one_record(file_session_factory):
    with file_session_factory() as setup:
        store.register_address(setup, OWNER, ADDRESS)
        ingestion.simulate(setup, ADDRESS, OWNER, now=NOW)
        scan_id = next(r.id for r in store.list_scans_for_owner(setup, OWNER) if r.is_quarantined)

    ops = [("release", lifecycle.release), ("delete", lifecycle.delete), ("release", lifecycle.release)]
    barrier = threading.Barrier(len(ops))

    def run(name, op):
        with file_session_factory() as s:
            barrier.wait()
            try:
                return name, op(s, scan_id, OWNER).outcome
            except NotFoundRecord:
                return name, "notfound"

    with ThreadPoolExecutor(max_workers=len(ops)) as pool:
        results = list(pool.map(lambda pair: run(*pair), ops))

    assert ("delete", "applied") in results
    releases = [outcome for name, outcome in results if name == "release"]
    assert set(releases) <= {"applied", "noop", "notfound"}
    assert releases.count("applied") <= 1

    with file_session_factory() as s:
        with pytest.raises(NotFoundRecord):
            store.get_scan(s, scan_id)
        remaining = s.scalar(
            select(func.count()).select_from(QuarantineEvent).where(QuarantineEvent.scan_id == scan_id)
        )
        assert remaining == 0


def test_timestamps_are_utc_after_reload(session_factory, scans):
    with session_factory() as fresh:
        records = store.list_scans_for_owner(fresh, OWNER)
        assert records[0].email_received_at == NOW
        for record in records:
            assert record.email_received_at.tzinfo is not None
            assert record.scanned_at.tzinfo is not None

        events = store.list_events(fresh, scans["phishing"].id, OWNER)
        assert events[0].created_at.tzinfo is not None

        monitored = store.find_active(fresh, ADDRESS, OWNER)
        assert monitored.created_at.tzinfo is not None
        assert monitored.updated_at.tzinfo is not None

        (_, _, last_scan), = store.list_addresses(fresh, OWNER)
        assert last_scan.tzinfo is not None


def test_audit_trail_records_auto_quarantine_and_release(session, scans):
    phishing = scans["phishing"]
    lifecycle.release(session, phishing.id, OWNER)
    lifecycle.release(session, phishing.id, OWNER)  # noop, no event

    events = store.list_events(session, phishing.id, OWNER)
    assert [e.action for e in events] == ["quarantined", "released"]
    assert events[0].actor == "policy"
    assert events[0].reason == "auto: phishing/critical"
    assert events[1].actor == OWNER

    assert store.list_events(session, scans["clean"].id, OWNER) == []


def test_delete_removes_audit_trail(session, scans):
    scan_id = scans["phishing"].id
    event_count = select(func.count()).select_from(QuarantineEvent)
    assert session.scalar(event_count) == 1

    lifecycle.delete(session, scan_id, OWNER)
    with pytest.raises(NotFoundRecord):
        store.list_events(session, scan_id, OWNER)
    assert session.scalar(event_count) == 0


def test_list_scans_ordered_by_received_desc(session, scans):
    records = store.list_scans_for_owner(session, OWNER)
    received = [r.email_received_at for r in records]
    assert received == sorted(received, reverse=True)
    assert [r.scan_result for r in records] == ["phishing", "clean", "clean", "spam"]

    quarantined = store.list_scans_for_owner(session, OWNER, quarantined=True)
    assert [r.scan_result for r in quarantined] == ["phishing"]
    assert store.list_scans_for_owner(session, "owner-2") == []


def test_insert_duplicate_message_id(session, scans):
    monitored = store.find_active(session, ADDRESS, OWNER)
    candidate = ingestion.sample_candidates(ADDRESS, NOW)[0]
    with pytest.raises(DuplicateMessage):
        store.insert_scan(session, scan_candidate(candidate, monitored.id))
    assert len(store.list_scans_for_owner(session, OWNER)) == 4


def test_registry_membership(session):
    monitored = store.register_address(session, OWNER, "  Me@Corp.com ")
    assert monitored.address == ADDRESS
    assert store.find_active(session, "ME@corp.com", OWNER).id == monitored.id

    with pytest.raises(AddressAlreadyMonitored):
        store.register_address(session, OWNER, ADDRESS)
    with pytest.raises(NotFoundAddress):
        store.find_active(session, ADDRESS, "owner-2")

    store.set_address_status(session, monitored.id, OWNER, "inactive")
    with pytest.raises(NotFoundAddress):
        store.find_active(session, ADDRESS, OWNER)


def test_list_addresses_threat_counts(session, scans):
    store.register_address(session, OWNER, "quiet@corp.com")
    rows = {m.address: (count, last) for m, count, last in store.list_addresses(session, OWNER)}
    assert rows[ADDRESS][0] == 2
    assert rows[ADDRESS][1] is not None
    assert rows["quiet@corp.com"] == (0, None)


def test_storage_errors_become_storage_unavailable(session, scans, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("UPDATE email_scans", {}, Exception("connection refused"))

    monkeypatch.setattr(session, "execute", boom)
    with pytest.raises(StorageUnavailable) as info:
        lifecycle.release(session, scans["phishing"].id, OWNER)
    assert info.value.retryable is True
