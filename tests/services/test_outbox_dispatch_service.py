from datetime import datetime, timedelta, timezone

import pytest

from servicehub.models.event_outbox import EventOutbox, EventOutboxStatus
from servicehub.repositories.event_outbox_repository import EventOutboxRepository
from servicehub.services.outbox_dispatch_service import OutboxDispatchService
from tests.factories import FailingDispatcher, RecordingDispatcher


@pytest.fixture
def outbox(db):
    return EventOutboxRepository(db)


def _enqueue(db, outbox, key):
    event = outbox.enqueue("BookingStatusChanged", "01BOOKING00000000000000000", {"k": key}, key)
    db.commit()
    return event.id


def _reload(db, event_id):
    return db.query(EventOutbox).filter(EventOutbox.id == event_id).populate_existing().one()


def _make_due(db, event_id):
    row = _reload(db, event_id)
    row.next_attempt_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.commit()


def test_backoff_doubles(db):
    service = OutboxDispatchService(db, RecordingDispatcher(), retry_base_seconds=10)
    assert [service.backoff_seconds(n) for n in (1, 2, 3, 4)] == [10, 20, 40, 80]


def test_dispatch_marks_sent(db, outbox):
    recorder = RecordingDispatcher()
    event_id = _enqueue(db, outbox, "a")

    summary = OutboxDispatchService(db, recorder).dispatch([event_id])

    assert summary.sent == 1
    assert recorder.events[0]["idempotency_key"] == "a"
    assert recorder.events[0]["payload"] == {"k": "a"}
    row = _reload(db, event_id)
    assert row.status == EventOutboxStatus.SENT.value
    assert row.attempt_count == 1


def test_sent_events_are_not_redelivered(db, outbox):
    recorder = RecordingDispatcher()
    service = OutboxDispatchService(db, recorder)
    event_id = _enqueue(db, outbox, "a")

    service.dispatch([event_id])
    summary = service.dispatch([event_id])

    assert summary.attempted == 0
    assert len(recorder.events) == 1


def test_failure_schedules_retry(db, outbox):
    failing = FailingDispatcher()
    event_id = _enqueue(db, outbox, "a")
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    summary = OutboxDispatchService(db, failing, retry_base_seconds=60).dispatch([event_id])

    assert summary.retrying == 1
    row = _reload(db, event_id)
    assert row.status == EventOutboxStatus.PENDING.value
    assert row.attempt_count == 1
    assert row.next_attempt_at.replace(tzinfo=None) >= before + timedelta(seconds=59)
    assert outbox.fetch_pending() == []


def test_terminal_failure_after_max_attempts(db, outbox):
    failing = FailingDispatcher()
    service = OutboxDispatchService(db, failing, max_attempts=3, retry_base_seconds=1)
    event_id = _enqueue(db, outbox, "a")

    outcomes = []
    for _ in range(3):
        summary = service.dispatch([event_id])
        outcomes.append((summary.retrying, summary.failed))
        if summary.retrying:
            _make_due(db, event_id)

    assert outcomes == [(1, 0), (1, 0), (0, 1)]
    row = _reload(db, event_id)
    assert row.status == EventOutboxStatus.FAILED.value
    assert row.attempt_count == 3
    assert failing.calls == 3
    assert service.dispatch([event_id]).attempted == 0


def test_dispatch_pending_drains_due_events(db, outbox):
    recorder = RecordingDispatcher()
    first = _enqueue(db, outbox, "a")
    second = _enqueue(db, outbox, "b")

    summary = OutboxDispatchService(db, recorder).dispatch_pending()

    assert summary.sent == 2
    assert sorted(e["idempotency_key"] for e in recorder.events) == ["a", "b"]
    assert {_reload(db, i).status for i in (first, second)} == {EventOutboxStatus.SENT.value}
    assert OutboxDispatchService(db, recorder).dispatch_pending().attempted == 0


def test_dispatch_pending_recovers_earlier_failures(db, outbox):
    event_id = _enqueue(db, outbox, "a")
    OutboxDispatchService(db, FailingDispatcher()).dispatch([event_id])
    _make_due(db, event_id)

    recorder = RecordingDispatcher()
    summary = OutboxDispatchService(db, recorder).dispatch_pending()

    assert summary.sent == 1
    row = _reload(db, event_id)
    assert row.status == EventOutboxStatus.SENT.value
    assert row.attempt_count == 2
