from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from servicehub.core.enums import BookingStatus, PaymentPlan
from servicehub.repositories.wallet_repository import WalletRepository
from tests.factories import create_booking, fund_wallet, wallet_balance


def _create(client, parties, **overrides):
    body = {
        "payer_id": parties.payer.id,
        "provider_id": parties.provider.id,
        "service_name": "Deep clean",
        "amount": 10000,
        "payment_plan": "half",
    }
    body.update(overrides)
    return client.post("/bookings", json=body)


class TestCreateBooking:
    def test_create_returns_201(self, client, parties, recorder):
        response = _create(client, parties)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["payment_plan"] == "half"
        assert data["payment_status"] == "pending"
        assert recorder.types() == ["BookingStatusChanged"]

    def test_schema_errors_are_422(self, client, parties):
        assert _create(client, parties, amount=0).status_code == 422
        assert _create(client, parties, service_name="   ").status_code == 422
        assert _create(client, parties, payment_plan="weekly").status_code == 422
        assert _create(client, parties, surprise=True).status_code == 422

    def test_self_booking_is_400(self, client, parties):
        response = _create(client, parties, payer_id=parties.provider_user.id)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "SELF_BOOKING_NOT_ALLOWED"

    def test_unknown_provider_is_404(self, client, parties):
        response = _create(client, parties, provider_id="01UNKNOWNPROVIDER000000000")
        assert response.status_code == 404


class TestBookingReads:
    def test_detail_for_parties_only(self, client, db, parties):
        booking = create_booking(db, parties)

        ok = client.get(f"/bookings/{booking.id}", params={"actor_id": parties.payer.id})
        denied = client.get(f"/bookings/{booking.id}", params={"actor_id": parties.outsider.id})
        missing = client.get("/bookings/01MISSING0000000000000000", params={"actor_id": parties.payer.id})

        assert ok.status_code == 200
        assert ok.json()["id"] == booking.id
        assert denied.status_code == 403
        assert missing.status_code == 404

    def test_list_by_group(self, client, db, parties):
        active = create_booking(db, parties, status=BookingStatus.ACCEPTED)
        create_booking(db, parties, status=BookingStatus.CANCELLED)

        response = client.get(
            "/bookings",
            params={"actor_id": parties.provider.id, "as_provider": True, "group": "active"},
        )

        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == [active.id]

    def test_mark_viewed(self, client, db, parties):
        create_booking(db, parties)

        response = client.post(
            "/bookings/viewed", json={"actor_id": parties.provider.id, "as_provider": True}
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 1}


class TestBookingFlow:
    def test_accept_pay_done(self, client, db, parties):
        fund_wallet(db, parties.payer.id, 10000)
        booking_id = _create(client, parties, payment_plan="full_upfront").json()["id"]

        accepted = client.post(f"/bookings/{booking_id}/accept", json={"provider_id": parties.provider.id})
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        paid = client.post(
            f"/bookings/{booking_id}/pay", json={"actor_id": parties.payer.id, "reference": "PAY-http-1"}
        )
        assert paid.status_code == 200
        assert paid.json()["stage"] == "full_payment"
        assert paid.json()["new_status"] == "in_progress"
        assert paid.json()["replayed"] is False

        replay = client.post(
            f"/bookings/{booking_id}/pay", json={"actor_id": parties.payer.id, "reference": "PAY-http-1"}
        )
        assert replay.status_code == 200
        assert replay.json()["replayed"] is True

        done = client.post(f"/bookings/{booking_id}/done", json={"provider_id": parties.provider.id})
        assert done.status_code == 200
        assert done.json()["status"] == "completed"
        assert wallet_balance(db, parties.provider_user.id) == 10000

    def test_insufficient_funds_is_422(self, client, db, parties):
        fund_wallet(db, parties.payer.id, 100)
        booking = create_booking(db, parties, status=BookingStatus.ACCEPTED)

        response = client.post(f"/bookings/{booking.id}/pay", json={"actor_id": parties.payer.id})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INSUFFICIENT_FUNDS"

    def test_ledger_failure_is_503_with_reference(self, client, db, parties):
        fund_wallet(db, parties.payer.id, 10000)
        booking = create_booking(db, parties, status=BookingStatus.ACCEPTED)

        with patch.object(
            WalletRepository,
            "increment",
            side_effect=OperationalError("UPDATE wallets", {}, Exception("database is locked")),
        ):
            response = client.post(
                f"/bookings/{booking.id}/pay",
                json={"actor_id": parties.payer.id, "reference": "PAY-http-503"},
            )

        assert response.status_code == 503
        assert response.json()["detail"]["details"]["reference"] == "PAY-http-503"
        assert wallet_balance(db, parties.payer.id) == 10000

    def test_wrong_state_is_409(self, client, db, parties):
        booking = create_booking(db, parties, status=BookingStatus.COMPLETED)

        response = client.post(f"/bookings/{booking.id}/accept", json={"provider_id": parties.provider.id})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "STATE_CONFLICT"

    def test_reject(self, client, db, parties):
        booking = create_booking(db, parties)

        response = client.post(
            f"/bookings/{booking.id}/reject",
            json={"provider_id": parties.provider.id, "reason": "Fully booked"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancelled_by"] == parties.provider_user.id

    def test_cancel_needs_reason(self, client, db, parties):
        booking = create_booking(db, parties)

        blank = client.post(f"/bookings/{booking.id}/cancel", json={"actor_id": parties.payer.id, "reason": " "})
        ok = client.post(
            f"/bookings/{booking.id}/cancel", json={"actor_id": parties.payer.id, "reason": "Moved out"}
        )

        assert blank.status_code == 422
        assert ok.status_code == 200
        assert ok.json()["cancellation_reason"] == "Moved out"

    def test_cancel_after_first_half_is_409(self, client, db, parties):
        booking = create_booking(
            db,
            parties,
            plan=PaymentPlan.HALF,
            status=BookingStatus.IN_PROGRESS,
            first_payment_completed=True,
        )

        response = client.post(
            f"/bookings/{booking.id}/cancel", json={"actor_id": parties.payer.id, "reason": "Too slow"}
        )

        assert response.status_code == 409
