"""
Tests for staff-side services.

Coverage:
- Staff booking (no slot alignment, still conflict-checked)
- Status overrides, including re-occupying a freed slot
- Appointment listing filters
- Payment status updates, waiving, listing by status and date
- Patient list, search, update, deactivate
- Availability windows, blocks, session types
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from clinic_api.core.exceptions import NotFound, SlotUnavailable, ValidationError
from clinic_api.db.enums import (
    AppointmentStatus,
    BlockType,
    CancelledBy,
    DayOfWeek,
    PaymentStatus,
)


NOW = datetime(2023, 12, 31, 8, 0)
JAN_8 = datetime(2024, 1, 8)


# =============================================================================
# Staff Booking Tests
# =============================================================================

class TestAdminAppointment:
    """Tests for staff-created appointments."""

    def test_books_off_grid_time_for_existing_patient(self, db, session_type, patient):
        from clinic_api.services.appointment_service import create_admin_appointment

        appt = create_admin_appointment(
            db,
            session_type_id=session_type.id,
            start_datetime=JAN_8.replace(hour=19, minute=15),
            patient_id=patient.id,
            session_link="https://meet.example.com/abc",
        )

        assert appt.patient_id == patient.id
        assert appt.end_datetime == JAN_8.replace(hour=20, minute=5)
        assert appt.session_link == "https://meet.example.com/abc"
        assert appt.payment.status == PaymentStatus.UNPAID.value

    def test_creates_patient_from_name_and_phone(self, db, session_type):
        from clinic_api.services.appointment_service import create_admin_appointment

        appt = create_admin_appointment(
            db,
            session_type_id=session_type.id,
            start_datetime=JAN_8.replace(hour=9),
            patient_name="Carla Dias",
            patient_phone="11 3456-7890",
            status=AppointmentStatus.SCHEDULED,
        )

        assert appt.patient.full_name == "Carla Dias"
        assert appt.patient.phone == "1134567890"
        assert appt.status == AppointmentStatus.SCHEDULED.value

    def test_overlap_rejected(self, db, session_type, patient, make_appointment):
        from clinic_api.services.appointment_service import create_admin_appointment

        make_appointment(JAN_8.replace(hour=9))
        with pytest.raises(SlotUnavailable):
            create_admin_appointment(
                db,
                session_type_id=session_type.id,
                start_datetime=JAN_8.replace(hour=9, minute=30),
                patient_id=patient.id,
            )

    def test_terminal_initial_status_rejected(self, db, session_type, patient):
        from clinic_api.services.appointment_service import create_admin_appointment

        with pytest.raises(ValidationError):
            create_admin_appointment(
                db,
                session_type_id=session_type.id,
                start_datetime=JAN_8.replace(hour=9),
                patient_id=patient.id,
                status=AppointmentStatus.ATTENDED,
            )

    def test_patient_required(self, db, session_type):
        from clinic_api.services.appointment_service import create_admin_appointment

        with pytest.raises(ValidationError, match="patient"):
            create_admin_appointment(
                db,
                session_type_id=session_type.id,
                start_datetime=JAN_8.replace(hour=9),
            )

    def test_unknown_patient(self, db, session_type):
        from clinic_api.services.appointment_service import create_admin_appointment

        with pytest.raises(NotFound):
            create_admin_appointment(
                db,
                session_type_id=session_type.id,
                start_datetime=JAN_8.replace(hour=9),
                patient_id=uuid4(),
            )


# =============================================================================
# Status Override Tests
# =============================================================================

class TestUpdateStatus:
    """Tests for staff status changes."""

    def test_mark_attended(self, db, make_appointment):
        from clinic_api.services.appointment_service import update_status

        appt = make_appointment(JAN_8.replace(hour=9))
        updated = update_status(db, appt.id, AppointmentStatus.ATTENDED, now=NOW)

        assert updated.status == AppointmentStatus.ATTENDED.value
        assert updated.cancelled_at is None

    def test_cancel_through_status_records_staff(self, db, make_appointment):
        from clinic_api.services.appointment_service import update_status

        appt = make_appointment(JAN_8.replace(hour=9))
        updated = update_status(
            db, appt.id, AppointmentStatus.CANCELLED_LATE, reason="No notice", now=NOW
        )

        assert updated.status == AppointmentStatus.CANCELLED_LATE.value
        assert updated.cancelled_by == CancelledBy.ADMIN.value
        assert updated.cancelled_at == NOW
        assert updated.cancellation_reason == "No notice"

    def test_reconfirm_cancelled_clears_cancellation(self, db, make_appointment):
        from clinic_api.services.appointment_service import update_status

        appt = make_appointment(JAN_8.replace(hour=9), AppointmentStatus.CANCELLED)
        updated = update_status(db, appt.id, AppointmentStatus.CONFIRMED, now=NOW)

        assert updated.status == AppointmentStatus.CONFIRMED.value
        assert updated.cancelled_at is None
        assert updated.cancelled_by is None

    def test_reconfirm_into_taken_slot_fails(self, db, make_appointment):
        from clinic_api.services.appointment_service import update_status

        freed = make_appointment(JAN_8.replace(hour=9), AppointmentStatus.CANCELLED)
        make_appointment(JAN_8.replace(hour=9, minute=20))

        with pytest.raises(SlotUnavailable):
            update_status(db, freed.id, AppointmentStatus.CONFIRMED, now=NOW)

        db.refresh(freed)
        assert freed.status == AppointmentStatus.CANCELLED.value

    def test_scheduled_is_not_staff_settable(self, db, make_appointment):
        from clinic_api.services.appointment_service import update_status

        appt = make_appointment(JAN_8.replace(hour=9))
        with pytest.raises(ValidationError):
            update_status(db, appt.id, AppointmentStatus.SCHEDULED, now=NOW)

    def test_unknown_appointment(self, db):
        from clinic_api.services.appointment_service import update_status

        with pytest.raises(NotFound):
            update_status(db, uuid4(), AppointmentStatus.ATTENDED, now=NOW)


# =============================================================================
# Listing Tests
# =============================================================================

class TestListAppointments:
    """Tests for filtered, paginated listing."""

    def test_filters_and_order(self, db, make_appointment):
        from clinic_api.services.appointment_service import list_appointments

        late = make_appointment(JAN_8.replace(hour=11))
        early = make_appointment(JAN_8.replace(hour=8))
        make_appointment(JAN_8.replace(hour=9), AppointmentStatus.CANCELLED)
        make_appointment(datetime(2024, 1, 15, 8))

        items, total = list_appointments(db, date_from=date(2024, 1, 8), date_to=date(2024, 1, 8))
        assert total == 3
        assert items[0].id == early.id
        assert items[-1].id == late.id

        items, total = list_appointments(
            db, date_from=date(2024, 1, 8), date_to=date(2024, 1, 8),
            status=AppointmentStatus.CONFIRMED,
        )
        assert total == 2

    def test_pagination(self, db, make_appointment):
        from clinic_api.services.appointment_service import list_appointments

        for hour in range(8, 13):
            make_appointment(JAN_8.replace(hour=hour))

        items, total = list_appointments(db, limit=2, offset=2)
        assert total == 5
        assert [a.start_datetime.hour for a in items] == [10, 11]


# =============================================================================
# Payment Tests
# =============================================================================

class TestPayments:
    """Tests for payment tracking."""

    def test_mark_paid_then_unpaid(self, db, make_appointment):
        from clinic_api.services.payment_service import update_payment

        appt = make_appointment(JAN_8.replace(hour=9))
        paid = update_payment(db, appt.id, PaymentStatus.PAID, method="pix", now=NOW)

        assert paid.status == PaymentStatus.PAID.value
        assert paid.paid_at == NOW
        assert paid.method == "pix"

        unpaid = update_payment(db, appt.id, PaymentStatus.UNPAID, now=NOW)
        assert unpaid.paid_at is None

    def test_missing_payment(self, db):
        from clinic_api.services.payment_service import get_payment_for_appointment

        with pytest.raises(NotFound):
            get_payment_for_appointment(db, uuid4())

    def test_waive_keeps_reason(self, db, make_appointment):
        from clinic_api.services.payment_service import waive_payment

        appt = make_appointment(JAN_8.replace(hour=9))
        waived = waive_payment(db, appt.id, reason="Social rate")

        assert waived.status == PaymentStatus.WAIVED.value
        assert waived.notes == "Social rate"
        assert waived.paid_at is None

    def test_get_by_id(self, db, make_appointment):
        from clinic_api.services.payment_service import get_payment, mark_paid

        appt = make_appointment(JAN_8.replace(hour=9))
        paid = mark_paid(db, appt.id, method="cash", now=NOW)

        assert get_payment(db, paid.id).appointment_id == appt.id
        with pytest.raises(NotFound):
            get_payment(db, uuid4())

    def test_list_by_status_and_date(self, db, make_appointment):
        from clinic_api.services.payment_service import (
            list_payments,
            list_pending_payments,
            mark_paid,
        )

        first = make_appointment(JAN_8.replace(hour=9))
        make_appointment(JAN_8.replace(hour=10, minute=30))
        make_appointment(datetime(2024, 1, 15, 9, 0))
        mark_paid(db, first.id, now=NOW)

        pending, total = list_pending_payments(db)
        assert total == 2
        assert [p.appointment.start_datetime for p in pending] == [
            JAN_8.replace(hour=10, minute=30),
            datetime(2024, 1, 15, 9, 0),
        ]

        paid, total = list_payments(db, status=PaymentStatus.PAID)
        assert total == 1
        assert paid[0].appointment_id == first.id

        on_jan_8, total = list_payments(db, date_from=date(2024, 1, 8), date_to=date(2024, 1, 8))
        assert total == 2

        page, total = list_payments(db, limit=1, offset=2)
        assert total == 3
        assert page[0].appointment.start_datetime == datetime(2024, 1, 15, 9, 0)


# =============================================================================
# Patient Tests
# =============================================================================

class TestPatients:
    """Tests for staff patient management."""

    @pytest.fixture
    def roster(self, db):
        from clinic_api.db.models import Patient

        patients = [
            Patient(id=uuid4(), full_name="Bruno Lima", phone="11911110000", email="bruno@example.com"),
            Patient(id=uuid4(), full_name="Ana Souza", phone="11922220000"),
            Patient(id=uuid4(), full_name="Carla Anacleto", phone="11933330000", is_active=False),
        ]
        db.add_all(patients)
        db.commit()
        return patients

    def test_list_active_by_name(self, db, roster):
        from clinic_api.services.patient_service import list_patients

        items, total = list_patients(db)

        assert total == 2
        assert [p.full_name for p in items] == ["Ana Souza", "Bruno Lima"]

    def test_list_with_inactive_and_query(self, db, roster):
        from clinic_api.services.patient_service import list_patients

        items, total = list_patients(db, q="ana", include_inactive=True)
        assert [p.full_name for p in items] == ["Ana Souza", "Carla Anacleto"]

        items, total = list_patients(db, q="bruno@")
        assert [p.full_name for p in items] == ["Bruno Lima"]

    def test_search_skips_inactive(self, db, roster):
        from clinic_api.services.patient_service import search_patients

        assert [p.full_name for p in search_patients(db, "ANA")] == ["Ana Souza"]

    def test_update_normalizes_phone(self, db, roster):
        from clinic_api.services.patient_service import update_patient

        updated = update_patient(db, roster[0].id, full_name="Bruno A. Lima", phone="(11) 95555-0000")

        assert updated.full_name == "Bruno A. Lima"
        assert updated.phone == "11955550000"
        assert updated.email == "bruno@example.com"

    def test_update_rejects_phone_of_other_patient(self, db, roster):
        from clinic_api.services.patient_service import update_patient

        with pytest.raises(ValidationError, match="phone"):
            update_patient(db, roster[0].id, phone="11 92222-0000")

    def test_deactivate(self, db, roster):
        from clinic_api.services.patient_service import deactivate_patient, list_patients

        deactivate_patient(db, roster[0].id)

        items, _ = list_patients(db)
        assert [p.full_name for p in items] == ["Ana Souza"]
        assert roster[0].is_active is False

    def test_unknown_patient(self, db):
        from clinic_api.services.patient_service import deactivate_patient

        with pytest.raises(NotFound):
            deactivate_patient(db, uuid4())


# =============================================================================
# Availability Tests
# =============================================================================

class TestAvailability:
    """Tests for windows and blocks."""

    def test_window_crud(self, db):
        from clinic_api.services import availability_service

        friday = availability_service.create_window(db, DayOfWeek.FRIDAY, time(14), time(18))
        monday = availability_service.create_window(db, DayOfWeek.MONDAY, time(8), time(12))

        assert [w.id for w in availability_service.list_windows(db)] == [monday.id, friday.id]

        availability_service.update_window(db, friday.id, is_active=False)
        assert [w.id for w in availability_service.list_windows(db, active_only=True)] == [monday.id]

        availability_service.delete_window(db, monday.id)
        with pytest.raises(NotFound):
            availability_service.get_window(db, monday.id)

    def test_window_start_must_precede_end(self, db):
        from clinic_api.services import availability_service

        with pytest.raises(ValidationError):
            availability_service.create_window(db, DayOfWeek.MONDAY, time(12), time(8))

    def test_block_over_live_appointment_rejected(self, db, make_appointment):
        from clinic_api.services import availability_service

        make_appointment(JAN_8.replace(hour=9))
        with pytest.raises(SlotUnavailable):
            availability_service.create_block(
                db, JAN_8.replace(hour=8), JAN_8.replace(hour=12), BlockType.VACATION
            )
        assert availability_service.list_blocks(db) == []

    def test_block_over_cancelled_appointment_allowed(self, db, make_appointment):
        from clinic_api.services import availability_service

        make_appointment(JAN_8.replace(hour=9), AppointmentStatus.CANCELLED)
        block = availability_service.create_block(
            db, JAN_8.replace(hour=8), JAN_8.replace(hour=12), BlockType.HOLIDAY, reason="Holiday"
        )
        assert block.block_type == BlockType.HOLIDAY.value

    def test_list_blocks_by_date(self, db):
        from clinic_api.services import availability_service

        availability_service.create_block(
            db, datetime(2024, 1, 5), datetime(2024, 1, 10), BlockType.VACATION
        )
        availability_service.create_block(
            db, datetime(2024, 2, 1, 12), datetime(2024, 2, 1, 13), BlockType.BREAK
        )

        assert len(availability_service.list_blocks(db, date_from=date(2024, 1, 8), date_to=date(2024, 1, 8))) == 1
        assert len(availability_service.list_blocks(db, date_from=date(2024, 1, 10))) == 1

    def test_widening_block_rechecked(self, db, make_appointment):
        from clinic_api.services import availability_service

        block = availability_service.create_block(
            db, JAN_8.replace(hour=12), JAN_8.replace(hour=13), BlockType.BREAK
        )
        make_appointment(JAN_8.replace(hour=13))

        with pytest.raises(SlotUnavailable):
            availability_service.update_block(db, block.id, end_datetime=JAN_8.replace(hour=14))

        db.refresh(block)
        assert block.end_datetime == JAN_8.replace(hour=13)


# =============================================================================
# Session Type Tests
# =============================================================================

class TestSessionTypes:
    """Tests for session type management."""

    def test_create_list_and_deactivate(self, db):
        from clinic_api.services import session_type_service

        couples = session_type_service.create_session_type(
            db, name="Couples", duration_minutes=80, price=Decimal("320.00"), display_order=2
        )
        single = session_type_service.create_session_type(db, name="Individual", display_order=1)

        assert single.duration_minutes == 50
        assert [t.id for t in session_type_service.list_session_types(db)] == [single.id, couples.id]

        session_type_service.deactivate_session_type(db, couples.id)
        assert [t.id for t in session_type_service.list_session_types(db)] == [single.id]
        assert len(session_type_service.list_session_types(db, active_only=False)) == 2

        with pytest.raises(ValidationError):
            session_type_service.get_bookable_session_type(db, couples.id)

    def test_duration_must_be_positive(self, db):
        from clinic_api.services import session_type_service

        with pytest.raises(ValidationError):
            session_type_service.create_session_type(db, name="Broken", duration_minutes=0)
