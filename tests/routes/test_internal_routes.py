from servicehub.repositories.event_outbox_repository import EventOutboxRepository


def test_outbox_drain(client, db, recorder):
    EventOutboxRepository(db).enqueue("BookingStatusChanged", "01BOOKING00000000000000000", {}, "k-1")
    db.commit()

    response = client.post("/internal/outbox/dispatch")

    assert response.status_code == 200
    assert response.json() == {"sent": 1, "retrying": 0, "failed": 0}
    assert recorder.types() == ["BookingStatusChanged"]


def test_metrics_endpoint(client, parties):
    client.get(f"/wallets/{parties.payer.id}")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "servicehub_service_operations_total" in response.text
