"""
Tests for the booking transaction engine.

Coverage:
- Public booking: slot re-validation, token, payment, patient lookup
- Cancellation: on time vs late boundary, retries, staff cancel
- Reschedule in place: id/token kept, conflicts leave the original untouched
- Duration snapshot survives session type changes until a reschedule
"""
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from clinic_api.core.exceptions import (
    AlreadyTerminal,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from clinic_api.db.enums import AppointmentStatus, CancelledBy, PaymentStatus
from clinic_api.db.models import Appointment, Patient


NOW = datetime(2023, 12, 31, 8, 0)
JAN_1 = datetime(2024, 1, 1)
JAN_8 = datetime(2024, 1, 8)


def _book(db, session_type, start, phone="+55 11 98765-4321", name="Ana Souza", now=NOW):
    from clinic_api.services.appointment_service import create_booking

    return create_booking(
        db=db,
        session_type_id=session_type.id,
        start_datetime=start,
        patient_name=name,
        patient_phone=phone,
        patient_email="ana@example.com",
        now=now,
    )


# =============================================================================
# Create Tests
# =============================================================================

class TestCreateBooking:
    """Tests for public booking."""

    def test_books_generated_slot(self, db, session_type, monday_window):
        start = JAN_1.replace(hour=8, minute=50)
        appt = _book(db, session_type, start)

        assert appt.id is not None
        assert appt.status == AppointmentStatus.CONFIRMED.value
        assert appt.start_datetime == start
        assert appt.end_datetime == start + timedelta(minutes=50)
        assert appt.duration_minutes == 50
        assert appt.recurring_series_id is None

    def test_booking_mints_unique_token(self, db, session_type, monday_window):
        first = _book(db, session_type, JAN_1.replace(hour=8))
        second = _book(db, session_type, JAN_1.replace(hour=8, minute=50), phone="11912345678")

        assert len(first.cancellation_token) > 20
        assert first.cancellation_token != second.cancellation_token

    def test_booking_attaches_unpaid_payment(self, db, session_type, monday_window):
        appt = _book(db, session_type, JAN_1.replace(hour=8))

        assert appt.payment is not None
        assert appt.payment.status == PaymentStatus.UNPAID.value
        assert appt.payment.amount == Decimal("200.00")

    def test_booking_normalizes_phone_and_reuses_patient(self, db, session_type, monday_window):
        first = _book(db, session_type, JAN_1.replace(hour=8), phone="+55 (11) 98765-4321")
        second = _book(
            db, session_type, JAN_1.replace(hour=8, minute=50),
            phone="+5511987654321", name="Ana S. Souza",
        )

        assert first.patient_id == second.patient_id
        patient = db.query(Patient).filter(Patient.id == first.patient_id).one()
        assert patient.phone == "+5511987654321"
        assert patient.full_name == "Ana S. Souza"

    def test_short_phone_rejected(self, db, session_type, monday_window):
        with pytest.raises(ValidationError, match="too short"):
            _book(db, session_type, JAN_1.replace(hour=8), phone="123-45")
        assert db.query(Appointment).count() == 0

    def test_aware_start_converted_to_clinic_time(self, db, session_type, monday_window):
        """11:50Z is 08:50 in the clinic zone (UTC-3)."""
        appt = _book(db, session_type, datetime(2024, 1, 1, 11, 50, tzinfo=timezone.utc))
        assert appt.start_datetime == JAN_1.replace(hour=8, minute=50)

    def test_start_off_slot_boundary_rejected(self, db, session_type, monday_window):
        with pytest.raises(SlotUnavailable, match="not an available slot"):
            _book(db, session_type, JAN_1.replace(hour=9))
        assert db.query(Appointment).count() == 0

    def test_start_outside_window_rejected(self, db, session_type, monday_window):
        with pytest.raises(SlotUnavailable):
            _book(db, session_type, JAN_1.replace(hour=13))

    def test_start_inside_min_advance_rejected(self, db, session_type, monday_window):
        with pytest.raises(SlotUnavailable):
            _book(db, session_type, JAN_1.replace(hour=8), now=datetime(2024, 1, 1, 0, 0))

    def test_second_booking_of_same_slot_fails(self, db, session_type, monday_window):
        start = JAN_1.replace(hour=9, minute=40)
        _book(db, session_type, start)

        with pytest.raises(SlotUnavailable) as exc_info:
            _book(db, session_type, start, phone="11912345678", name="Bruno Lima")

        assert exc_info.value.start == start
        assert exc_info.value.end == start + timedelta(minutes=50)
        assert db.query(Appointment).filter(Appointment.start_datetime == start).count() == 1

    def test_inactive_session_type_rejected(self, db, session_type, monday_window):
        session_type.is_active = False
        db.commit()

        with pytest.raises(ValidationError, match="not active"):
            _book(db, session_type, JAN_1.replace(hour=8))

    def test_unknown_session_type(self, db, monday_window):
        from clinic_api.services.appointment_service import create_booking

        with pytest.raises(NotFound):
            create_booking(
                db=db,
                session_type_id=uuid4(),
                start_datetime=JAN_1.replace(hour=8),
                patient_name="Ana",
                patient_phone="11987654321",
                now=NOW,
            )


# =============================================================================
# Cancel Tests
# =============================================================================

class TestCancel:
    """Tests for token and staff cancellation."""

    def test_exactly_threshold_ahead_is_on_time(self, db, make_appointment):
        from clinic_api.services.appointment_service import cancel_by_token

        start = JAN_8.replace(hour=9, minute=40)
        appt = make_appointment(start)
        now = start - timedelta(hours=24)

        cancelled = cancel_by_token(db, appt.cancellation_token, reason="Travel", now=now)

        assert cancelled.status == AppointmentStatus.CANCELLED.value
        assert cancelled.cancelled_by == CancelledBy.PATIENT.value
        assert cancelled.cancelled_at == now
        assert cancelled.cancellation_reason == "Travel"

    def test_inside_threshold_is_late(self, db, make_appointment):
        from clinic_api.services.appointment_service import cancel_by_token

        start = JAN_8.replace(hour=9, minute=40)
        appt = make_appointment(start)
        now = start - timedelta(hours=23, minutes=59)

        cancelled = cancel_by_token(db, appt.cancellation_token, now=now)
        assert cancelled.status == AppointmentStatus.CANCELLED_LATE.value

    def test_retry_fails_already_terminal(self, db, make_appointment):
        from clinic_api.services.appointment_service import cancel_by_token

        appt = make_appointment(JAN_8.replace(hour=8))
        cancel_by_token(db, appt.cancellation_token, now=NOW)

        with pytest.raises(AlreadyTerminal) as exc_info:
            cancel_by_token(db, appt.cancellation_token, now=NOW)
        assert exc_info.value.status == AppointmentStatus.CANCELLED.value

    def test_attended_cannot_be_cancelled(self, db, make_appointment):
        from clinic_api.services.appointment_service import cancel_by_token

        appt = make_appointment(JAN_8.replace(hour=8), AppointmentStatus.ATTENDED)
        with pytest.raises(AlreadyTerminal):
            cancel_by_token(db, appt.cancellation_token, now=NOW)

    def test_unknown_token(self, db):
        from clinic_api.services.appointment_service import cancel_by_token

        with pytest.raises(NotFound):
            cancel_by_token(db, "no-such-token", now=NOW)

    def test_staff_cancel_uses_same_policy(self, db, make_appointment):
        from clinic_api.services.appointment_service import cancel_appointment

        appt = make_appointment(JAN_1.replace(hour=7))
        cancelled = cancel_appointment(db, appt.id, reason="Clinic closed", now=NOW)

        assert cancelled.status == AppointmentStatus.CANCELLED_LATE.value
        assert cancelled.cancelled_by == CancelledBy.ADMIN.value

    def test_cancel_frees_slot(self, db, session_type, monday_window, make_appointment):
        from clinic_api.services.appointment_service import cancel_by_token
        from clinic_api.services.slot_service import generate_slots

        appt = make_appointment(JAN_8.replace(hour=9, minute=40))
        cancel_by_token(db, appt.cancellation_token, now=NOW)

        slots = generate_slots(db, JAN_8.date(), session_type)
        assert time(9, 40) in [s.time for s in slots]


# =============================================================================
# Reschedule Tests
# =============================================================================

class TestReschedule:
    """Tests for moving an appointment in place."""

    def test_reschedule_keeps_id_and_token(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token

        appt = make_appointment(JAN_8.replace(hour=8))
        appt_id, token = appt.id, appt.cancellation_token
        new_start = JAN_8.replace(hour=10, minute=30)

        moved = reschedule_by_token(db, token, new_start, now=NOW)

        assert moved.id == appt_id
        assert moved.cancellation_token == token
        assert moved.start_datetime == new_start
        assert moved.end_datetime == new_start + timedelta(minutes=50)
        assert db.query(Appointment).count() == 1

    def test_reschedule_ignores_own_occupancy(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token

        appt = make_appointment(JAN_8.replace(hour=8, minute=50))
        moved = reschedule_by_token(db, appt.cancellation_token, JAN_8.replace(hour=8, minute=50), now=NOW)
        assert moved.start_datetime == JAN_8.replace(hour=8, minute=50)

    def test_reschedule_onto_taken_slot_leaves_original(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token

        original_start = JAN_8.replace(hour=8)
        appt = make_appointment(original_start)
        make_appointment(JAN_8.replace(hour=10, minute=30))

        with pytest.raises(SlotUnavailable):
            reschedule_by_token(db, appt.cancellation_token, JAN_8.replace(hour=10, minute=30), now=NOW)

        db.refresh(appt)
        assert appt.start_datetime == original_start
        assert appt.end_datetime == original_start + timedelta(minutes=50)
        assert appt.status == AppointmentStatus.CONFIRMED.value

    def test_reschedule_onto_block_fails(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token
        from clinic_api.services.availability_service import create_block

        appt = make_appointment(JAN_8.replace(hour=8))
        create_block(db, JAN_8.replace(hour=10), JAN_8.replace(hour=12), "holiday")

        with pytest.raises(SlotUnavailable, match="block"):
            reschedule_by_token(db, appt.cancellation_token, JAN_8.replace(hour=10, minute=30), now=NOW)

    def test_reschedule_inside_late_window_refused(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token

        appt = make_appointment(JAN_8.replace(hour=8))
        with pytest.raises(ValidationError, match="rescheduled"):
            reschedule_by_token(
                db, appt.cancellation_token, JAN_8.replace(hour=10, minute=30),
                now=datetime(2024, 1, 7, 9, 0),
            )

    def test_reschedule_cancelled_fails(self, db, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token

        appt = make_appointment(JAN_8.replace(hour=8), AppointmentStatus.CANCELLED)
        with pytest.raises(AlreadyTerminal):
            reschedule_by_token(db, appt.cancellation_token, JAN_8.replace(hour=10, minute=30), now=NOW)

    def test_reschedule_unknown_token(self, db):
        from clinic_api.services.appointment_service import reschedule_by_token

        with pytest.raises(NotFound):
            reschedule_by_token(db, "missing", JAN_8.replace(hour=8), now=NOW)


# =============================================================================
# Duration Snapshot Tests
# =============================================================================

class TestDurationSnapshot:
    """Existing appointments keep their duration; a reschedule picks up the current one."""

    def test_session_type_change_does_not_move_end(self, db, session_type, monday_window):
        from clinic_api.services.session_type_service import update_session_type

        appt = _book(db, session_type, JAN_1.replace(hour=8))
        update_session_type(db, session_type.id, duration_minutes=90)

        db.refresh(appt)
        assert appt.duration_minutes == 50
        assert appt.end_datetime == JAN_1.replace(hour=8, minute=50)

    def test_reschedule_follows_current_duration(self, db, session_type, monday_window, make_appointment):
        from clinic_api.services.appointment_service import reschedule_by_token
        from clinic_api.services.session_type_service import update_session_type
        from clinic_api.services.slot_service import get_available_slots

        appt = make_appointment(JAN_8.replace(hour=8))
        untouched = make_appointment(JAN_1.replace(hour=10, minute=30))
        update_session_type(db, session_type.id, duration_minutes=60)

        listed = get_available_slots(db, JAN_8.date(), session_type, now=NOW)
        assert [s.time for s in listed] == [time(9), time(10), time(11)]

        moved = reschedule_by_token(db, appt.cancellation_token, JAN_8.replace(hour=10), now=NOW)

        assert moved.duration_minutes == 60
        assert moved.end_datetime == JAN_8.replace(hour=11)

        db.refresh(untouched)
        assert untouched.duration_minutes == 50
        assert untouched.end_datetime == JAN_1.replace(hour=11, minute=20)
