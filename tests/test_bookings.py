"""
Tests for the booking lifecycle: creation, visibility, cancellation,
completion, rescheduling and deletion.
"""

from ouiimi.domain.bookings.repository import BookingRepository
from ouiimi.models import Booking, TimeSlot

from .factories import (
    FUTURE_DATE,
    auth_headers,
    booking_setup,
    make_admin,
    make_booking,
    make_business,
    make_service,
    make_slot,
    make_staff,
    make_user,
)


def email_subjects(sent_emails) -> list[str]:
    return [call.kwargs["subject"] for call in sent_emails.call_args_list]


def create_payload(service, slot, **overrides) -> dict:
    payload = {"serviceId": service.id, "slotId": slot.id}
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# POST /api/bookings
# ---------------------------------------------------------------------------


class TestCreateBooking:
    def test_creates_pending_booking_with_derived_amounts(self, client, db, sent_emails):
        customer, _, business, service, slot = booking_setup(db, base_cost=250.0)

        response = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(customer)
        )

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["bookingNumber"] >= 5000
        assert booking["status"] == "pending"
        assert booking["paymentStatus"] == "unpaid"
        assert booking["adminPaymentStatus"] == "pending"
        assert booking["totalCost"] == 250.0
        assert booking["depositAmount"] == 25.0
        assert booking["remainingAmount"] == 225.0
        assert booking["platformFee"] == 1.99
        assert booking["serviceAmount"] == 248.01
        assert booking["businessId"] == business.id
        assert booking["timeSlot"] == {
            "date": FUTURE_DATE.isoformat(),
            "startTime": "10:00",
            "endTime": "11:00",
        }

        db.refresh(slot)
        assert slot.is_booked is True
        assert slot.booking_id == booking["id"]
        assert len(sent_emails.call_args_list) == 2

    def test_add_on_cost_comes_from_the_service(self, client, db):
        customer, _, _, service, slot = booking_setup(db, base_cost=100.0)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, addOns=[{"name": "Nail art", "cost": 0.01}]),
            headers=auth_headers(customer),
        )

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["totalCost"] == 120.0
        assert booking["depositAmount"] == 12.0
        assert booking["addOns"] == [{"name": "Nail art", "cost": 20.0}]

    def test_unknown_add_on_is_rejected(self, client, db):
        customer, _, _, service, slot = booking_setup(db)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, addOns=[{"name": "Free upgrade"}]),
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert db.query(Booking).count() == 0

    def test_slot_price_overrides_base_cost(self, client, db):
        customer, _, _, service, _ = booking_setup(db)
        special = make_slot(db, service, start_time="14:00", end_time="15:00", price=80.0)

        response = client.post(
            "/api/bookings", json=create_payload(service, special), headers=auth_headers(customer)
        )

        assert response.json()["booking"]["totalCost"] == 80.0

    def test_slot_can_be_given_by_date_and_time(self, client, db):
        customer, _, _, service, slot = booking_setup(db)

        response = client.post(
            "/api/bookings",
            json={
                "serviceId": service.id,
                "timeSlot": {
                    "date": FUTURE_DATE.isoformat(),
                    "startTime": "10:00 AM",
                    "endTime": "11:00 AM",
                },
            },
            headers=auth_headers(customer),
        )

        assert response.status_code == 201
        assert response.json()["booking"]["slotId"] == slot.id

    def test_requires_a_slot_reference(self, client, db):
        customer, _, _, service, _ = booking_setup(db)

        response = client.post(
            "/api/bookings", json={"serviceId": service.id}, headers=auth_headers(customer)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    def test_requires_authentication(self, client, db):
        _, _, _, service, slot = booking_setup(db)

        response = client.post("/api/bookings", json=create_payload(service, slot))

        assert response.status_code == 401

    def test_cannot_book_for_another_user(self, client, db):
        customer, owner, _, service, slot = booking_setup(db)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, userId=owner.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 403
        db.refresh(slot)
        assert slot.is_booked is False

    def test_unknown_service_is_404(self, client, db):
        customer, _, _, _, slot = booking_setup(db)

        response = client.post(
            "/api/bookings",
            json={"serviceId": 9999, "slotId": slot.id},
            headers=auth_headers(customer),
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Service not found"}

    def test_slot_of_another_service_is_404(self, client, db):
        customer, _, business, service, _ = booking_setup(db)
        other_service = make_service(db, business, service_name="Pedicure")
        foreign_slot = make_slot(db, other_service)

        response = client.post(
            "/api/bookings", json=create_payload(service, foreign_slot), headers=auth_headers(customer)
        )

        assert response.status_code == 404

    def test_unapproved_business_cannot_take_bookings(self, client, db):
        customer = make_user(db)
        business = make_business(db, make_user(db), status="pending")
        service = make_service(db, business)
        slot = make_slot(db, service)

        response = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(customer)
        )

        assert response.status_code == 400

    def test_second_booking_for_same_slot_conflicts(self, client, db, sent_emails):
        customer, _, _, service, slot = booking_setup(db)
        rival = make_user(db)

        first = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(customer)
        )
        second = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(rival)
        )

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"] == (
            "This time slot is no longer available. Please choose another time."
        )
        assert db.query(Booking).filter(Booking.slot_id == slot.id).count() == 1
        assert len(sent_emails.call_args_list) == 2

    def test_booking_numbers_increase(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        later = make_slot(db, service, start_time="12:00", end_time="13:00")

        first = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(customer)
        ).json()["booking"]
        second = client.post(
            "/api/bookings", json=create_payload(service, later), headers=auth_headers(customer)
        ).json()["booking"]

        assert second["bookingNumber"] == first["bookingNumber"] + 1

    def test_email_failure_does_not_fail_booking(self, client, db, sent_emails):
        customer, _, _, service, slot = booking_setup(db)
        sent_emails.side_effect = RuntimeError("mail provider down")

        response = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(customer)
        )

        assert response.status_code == 201


class TestSlotClaim:
    def test_only_one_claim_wins(self, db):
        _, _, _, _, slot = booking_setup(db)

        assert BookingRepository.claim_slot(db, slot.id) is True
        assert BookingRepository.claim_slot(db, slot.id) is False

    def test_release_keeps_slot_claimed_by_someone_else(self, db):
        customer, _, _, _, slot = booking_setup(db)
        holder = make_booking(db, customer, slot)

        BookingRepository.release_slot(db, slot.id, holder.id + 100)
        db.commit()
        db.refresh(slot)

        assert slot.is_booked is True


class TestStaffAssignment:
    def test_inactive_staff_is_rejected(self, client, db):
        customer, _, business, service, slot = booking_setup(db)
        staff = make_staff(db, business, is_active=False)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, staffId=staff.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 400

    def test_staff_from_another_business_is_rejected(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        elsewhere = make_business(db, make_user(db))
        staff = make_staff(db, elsewhere)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, staffId=staff.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 400

    def test_staff_not_offered_on_slot_is_rejected(self, client, db):
        customer, _, business, service, _ = booking_setup(db)
        offered = make_staff(db, business, name="Jordan")
        other = make_staff(db, business, name="Riley")
        slot = make_slot(db, service, start_time="15:00", end_time="16:00", staff_ids=[offered.id])

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, staffId=other.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 400

    def test_double_booked_staff_conflicts(self, client, db):
        customer, _, business, service, slot = booking_setup(db)
        staff = make_staff(db, business)
        second_service = make_service(db, business, service_name="Pedicure")
        parallel_slot = make_slot(db, second_service)
        make_booking(db, make_user(db), slot, status="confirmed", payment_status="deposit_paid", staff=staff)

        response = client.post(
            "/api/bookings",
            json=create_payload(second_service, parallel_slot, staffId=staff.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 409

    def test_staff_is_recorded(self, client, db):
        customer, _, business, service, slot = booking_setup(db)
        staff = make_staff(db, business)

        response = client.post(
            "/api/bookings",
            json=create_payload(service, slot, staffId=staff.id),
            headers=auth_headers(customer),
        )

        assert response.status_code == 201
        assert response.json()["booking"]["staff"] == {"id": staff.id, "name": "Jordan"}


# ---------------------------------------------------------------------------
# GET /api/bookings
# ---------------------------------------------------------------------------


class TestListAndGetBookings:
    def test_customer_sees_only_own_bookings(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        other_slot = make_slot(db, service, start_time="12:00", end_time="13:00")
        mine = make_booking(db, customer, slot)
        make_booking(db, make_user(db), other_slot)

        response = client.get("/api/bookings", headers=auth_headers(customer))

        assert response.status_code == 200
        assert [b["id"] for b in response.json()["bookings"]] == [mine.id]

    def test_owner_sees_business_bookings(self, client, db):
        customer, owner, business, service, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.get(
            f"/api/bookings?businessId={business.id}", headers=auth_headers(owner)
        )

        assert [b["id"] for b in response.json()["bookings"]] == [booking.id]

    def test_sorted_by_slot_date_then_time(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        early = make_slot(db, service, start_time="08:00", end_time="09:00")
        make_booking(db, customer, slot)
        make_booking(db, customer, early)

        bookings = client.get("/api/bookings", headers=auth_headers(customer)).json()["bookings"]

        assert [b["timeSlot"]["startTime"] for b in bookings] == ["08:00", "10:00"]

    def test_status_filter(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        other_slot = make_slot(db, service, start_time="12:00", end_time="13:00")
        make_booking(db, customer, slot)
        confirmed = make_booking(
            db, customer, other_slot, status="confirmed", payment_status="deposit_paid"
        )

        response = client.get("/api/bookings?status=confirmed", headers=auth_headers(customer))

        assert [b["id"] for b in response.json()["bookings"]] == [confirmed.id]

    def test_invalid_status_filter(self, client, db):
        customer = make_user(db)

        response = client.get("/api/bookings?status=paid", headers=auth_headers(customer))

        assert response.status_code == 400

    def test_admin_sees_everything(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.get("/api/bookings", headers=auth_headers(make_admin(db)))

        assert [b["id"] for b in response.json()["bookings"]] == [booking.id]

    def test_get_includes_populated_references(self, client, db):
        customer, _, business, service, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.get(f"/api/bookings/{booking.id}", headers=auth_headers(customer))

        body = response.json()["booking"]
        assert body["userId"] == customer.id
        assert body["business"]["businessName"] == business.business_name
        assert body["service"]["serviceName"] == service.service_name
        assert body["user"]["email"] == customer.email

    def test_stranger_cannot_read_booking(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.get(f"/api/bookings/{booking.id}", headers=auth_headers(make_user(db)))

        assert response.status_code == 403

    def test_missing_booking_is_404(self, client, db):
        response = client.get("/api/bookings/424242", headers=auth_headers(make_user(db)))

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# PUT /api/bookings/{id}
# ---------------------------------------------------------------------------


class TestCancelBooking:
    def test_customer_cancellation_splits_deposit(self, client, db, sent_emails):
        customer, _, _, _, slot = booking_setup(db, base_cost=250.0)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "customer", "cancellationReason": "Sick"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 200
        body = response.json()["booking"]
        assert body["status"] == "cancelled"
        assert body["paymentStatus"] == "refunded"
        assert body["cancelledBy"] == "customer"
        assert body["cancellationReason"] == "Sick"
        assert body["refundAmount"] == 12.5
        assert body["businessPayoutAmount"] == 12.5
        assert body["cancelledAt"] is not None

        db.refresh(slot)
        assert slot.is_booked is False
        assert len(sent_emails.call_args_list) == 2

    def test_business_cancellation_refunds_whole_deposit(self, client, db):
        customer, owner, _, _, slot = booking_setup(db, base_cost=250.0)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "business"},
            headers=auth_headers(owner),
        )

        body = response.json()["booking"]
        assert body["refundAmount"] == 25.0
        assert body["businessPayoutAmount"] == 0.0

    def test_unpaid_cancellation_moves_no_money(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "customer"},
            headers=auth_headers(customer),
        )

        body = response.json()["booking"]
        assert body["paymentStatus"] == "unpaid"
        assert body["refundAmount"] == 0.0
        assert body["businessPayoutAmount"] == 0.0

    def test_cancelled_by_is_required(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}", json={"status": "cancelled"}, headers=auth_headers(customer)
        )

        assert response.status_code == 400

    def test_customer_cannot_cancel_as_business(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "business"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 403

    def test_cancelling_twice_is_rejected(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="cancelled")

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "customer"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Booking is already cancelled"}

    def test_completed_booking_cannot_be_cancelled(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="completed", payment_status="fully_paid")

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "customer"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        db.refresh(booking)
        assert booking.status == "completed"

    def test_freed_slot_can_be_booked_again(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)
        client.put(
            f"/api/bookings/{booking.id}",
            json={"status": "cancelled", "cancelledBy": "customer"},
            headers=auth_headers(customer),
        )

        response = client.post(
            "/api/bookings", json=create_payload(service, slot), headers=auth_headers(make_user(db))
        )

        assert response.status_code == 201


class TestCompleteBooking:
    def test_owner_completes_confirmed_booking(self, client, db, sent_emails):
        customer, owner, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.put(
            f"/api/bookings/{booking.id}", json={"status": "completed"}, headers=auth_headers(owner)
        )

        assert response.status_code == 200
        body = response.json()["booking"]
        assert body["status"] == "completed"
        assert body["paymentStatus"] == "fully_paid"
        assert body["completedAt"] is not None
        assert email_subjects(sent_emails) == [
            "Your service is complete",
            f"Receipt for booking #{booking.booking_number}",
        ]

    def test_customer_cannot_complete(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.put(
            f"/api/bookings/{booking.id}", json={"status": "completed"}, headers=auth_headers(customer)
        )

        assert response.status_code == 403

    def test_pending_booking_cannot_complete(self, client, db):
        customer, owner, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}", json={"status": "completed"}, headers=auth_headers(owner)
        )

        assert response.status_code == 400


class TestNotesAndReschedule:
    def test_owner_edits_business_notes(self, client, db):
        customer, owner, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"businessNotes": "Bring a towel"},
            headers=auth_headers(owner),
        )

        assert response.json()["booking"]["businessNotes"] == "Bring a towel"

    def test_customer_cannot_edit_business_notes(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}",
            json={"businessNotes": "VIP"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 403

    def test_reschedule_moves_slot_and_keeps_price(self, client, db):
        customer, _, _, service, slot = booking_setup(db, base_cost=100.0)
        target = make_slot(db, service, start_time="16:00", end_time="17:00", price=150.0)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}", json={"slotId": target.id}, headers=auth_headers(customer)
        )

        body = response.json()["booking"]
        assert body["slotId"] == target.id
        assert body["timeSlot"]["startTime"] == "16:00"
        assert body["totalCost"] == 100.0

        db.refresh(slot)
        db.refresh(target)
        assert slot.is_booked is False
        assert target.is_booked is True

    def test_reschedule_to_taken_slot_conflicts(self, client, db):
        customer, _, _, service, slot = booking_setup(db)
        taken = make_slot(db, service, start_time="16:00", end_time="17:00")
        make_booking(db, make_user(db), taken)
        booking = make_booking(db, customer, slot)

        response = client.put(
            f"/api/bookings/{booking.id}", json={"slotId": taken.id}, headers=auth_headers(customer)
        )

        assert response.status_code == 409
        db.expire_all()
        assert db.get(TimeSlot, slot.id).booking_id == booking.id


# ---------------------------------------------------------------------------
# DELETE /api/bookings/{id}
# ---------------------------------------------------------------------------


class TestDeleteBooking:
    def test_unpaid_pending_booking_is_deleted(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)
        booking_id = booking.id

        response = client.delete(f"/api/bookings/{booking_id}", headers=auth_headers(customer))

        assert response.status_code == 200
        assert response.json() == {"message": "Booking deleted successfully"}
        db.expire_all()
        assert db.get(Booking, booking_id) is None
        assert db.get(TimeSlot, slot.id).is_booked is False

    def test_paid_booking_cannot_be_deleted(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot, status="confirmed", payment_status="deposit_paid")

        response = client.delete(f"/api/bookings/{booking.id}", headers=auth_headers(customer))

        assert response.status_code == 400

    def test_stranger_cannot_delete(self, client, db):
        customer, _, _, _, slot = booking_setup(db)
        booking = make_booking(db, customer, slot)

        response = client.delete(f"/api/bookings/{booking.id}", headers=auth_headers(make_user(db)))

        assert response.status_code == 403
