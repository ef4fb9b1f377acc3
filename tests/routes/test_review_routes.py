from servicehub.core.enums import BookingStatus
from tests.factories import create_booking


def test_review_then_duplicate(client, db, parties):
    booking = create_booking(db, parties, status=BookingStatus.COMPLETED)
    body = {"actor_id": parties.payer.id, "rating": 5, "comment": "Brilliant"}

    first = client.post(f"/bookings/{booking.id}/reviews", json=body)
    second = client.post(f"/bookings/{booking.id}/reviews", json=body)

    assert first.status_code == 201
    assert first.json()["provider_user_id"] == parties.provider_user.id
    assert second.status_code == 409


def test_review_rating_out_of_range_is_422(client, db, parties):
    booking = create_booking(db, parties, status=BookingStatus.COMPLETED)

    response = client.post(
        f"/bookings/{booking.id}/reviews",
        json={"actor_id": parties.payer.id, "rating": 9, "comment": "Too good"},
    )

    assert response.status_code == 422


def test_provider_rating(client, db, parties):
    booking = create_booking(db, parties, status=BookingStatus.COMPLETED)
    client.post(
        f"/bookings/{booking.id}/reviews",
        json={"actor_id": parties.payer.id, "rating": 4, "comment": "Good"},
    )

    response = client.get(f"/providers/{parties.provider.id}/rating")

    assert response.status_code == 200
    assert response.json() == {
        "provider_id": parties.provider.id,
        "review_count": 1,
        "average_rating": 4.0,
    }


def test_report_counterparty(client, db, parties):
    booking = create_booking(db, parties)

    response = client.post(
        "/reports",
        json={"reporter_id": parties.provider_user.id, "reason": "Rude", "booking_id": booking.id},
    )

    assert response.status_code == 201
    assert response.json()["reported_id"] == parties.payer.id
    assert response.json()["status"] == "pending"


def test_outsider_report_is_403(client, db, parties):
    booking = create_booking(db, parties)

    response = client.post(
        "/reports",
        json={"reporter_id": parties.outsider.id, "reason": "Spam", "booking_id": booking.id},
    )

    assert response.status_code == 403
