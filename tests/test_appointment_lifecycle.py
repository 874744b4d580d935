import uuid

import pytest

from booking_api.core.actor import Actor, ActorRole
from booking_api.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PolicyViolationError,
    ERR_CANCEL_WINDOW,
    ERR_NO_UPDATES,
    ERR_NOT_BOOKED,
    ERR_OUTSIDE_HOURS,
    ERR_PHONE_MISMATCH,
    ERR_RESCHEDULE_LIMIT,
    ERR_RESOURCE_NOT_ALLOWED,
    ERR_RESOURCE_REQUIRED,
    ERR_START_TIME_PAST,
    ERR_STAFF_SCOPE,
)
from booking_api.models import Appointment, AuditLog
from booking_api.services.scheduling.slot_generator import SlotGenerator

from conftest import CUSTOMER_PHONE, MONDAY, NEXT_SUNDAY, TUESDAY, local, local_iso

OWNER = Actor(role=ActorRole.OWNER)
PLATFORM = Actor(role=ActorRole.PLATFORM_ADMIN)


def _book(appointments, business, service, resource=None, hour=10, minute=0, day=MONDAY, **kwargs):
    return appointments.create_appointment(
        business,
        service_id=str(service.id),
        resource_id=str(resource.id) if resource is not None else None,
        customer_name="Laura Gomez",
        customer_phone=CUSTOMER_PHONE,
        start_time=local_iso(day, hour, minute),
        **kwargs
    )


class TestCreate:

    def test_books_utc_interval(self, db, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)

        assert appt.status == "booked"
        assert appt.start_time == local(MONDAY, 10)
        assert appt.end_time == local(MONDAY, 10, 30)
        assert appt.resource_id == resource.id
        assert appt.booking_scope == str(resource.id)
        assert appt.reschedule_count == 0

    def test_records_audit_entry(self, db, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)

        entry = db.query(AuditLog).filter(AuditLog.entity_id == appt.id).one()
        assert entry.action == "appointment.created"
        assert entry.actor_role == "customer"

    def test_start_with_offset(self, appointments, business, service, resource):
        appt = appointments.create_appointment(
            business, str(service.id), "Laura", CUSTOMER_PHONE, "2030-01-07T15:00:00Z", resource_id=str(resource.id)
        )
        assert appt.start_time == local(MONDAY, 10)

    def test_last_slot_of_day_fits(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource, hour=17, minute=30)
        assert appt.end_time == local(MONDAY, 18)

    def test_running_past_close_is_rejected(self, db, appointments, business, service, resource):
        with pytest.raises(PolicyViolationError) as exc:
            _book(appointments, business, service, resource, hour=17, minute=45)
        assert exc.value.message == ERR_OUTSIDE_HOURS
        assert db.query(Appointment).count() == 0

    def test_closed_day_is_outside_hours(self, appointments, business, service, resource):
        with pytest.raises(PolicyViolationError) as exc:
            _book(appointments, business, service, resource, day=NEXT_SUNDAY)
        assert exc.value.message == ERR_OUTSIDE_HOURS

    def test_past_start_rejected_for_customers(self, appointments, clock, business, service, resource):
        clock.set_local(MONDAY, 12)
        with pytest.raises(PolicyViolationError) as exc:
            _book(appointments, business, service, resource, hour=12)
        assert exc.value.message == ERR_START_TIME_PAST

    def test_admin_booking_may_start_in_past(self, appointments, clock, business, service, resource):
        clock.set_local(MONDAY, 12)
        appt = _book(appointments, business, service, resource, hour=9, require_future_start=False, actor=OWNER)
        assert appt.start_time == local(MONDAY, 9)

    def test_overlap_is_conflict_and_writes_nothing(self, db, appointments, business, service, resource):
        _book(appointments, business, service, resource)

        with pytest.raises(ConflictError):
            _book(appointments, business, service, resource, hour=10, minute=15)
        assert db.query(Appointment).count() == 1

    def test_global_block_is_conflict(self, appointments, business, service, resource, add_block):
        add_block(local(MONDAY, 12), local(MONDAY, 13))
        with pytest.raises(ConflictError):
            _book(appointments, business, service, resource, hour=12, minute=30)

    def test_resource_required(self, appointments, business, make_service, resource):
        service = make_service(allowed=[resource])
        with pytest.raises(PolicyViolationError) as exc:
            _book(appointments, business, service, None)
        assert exc.value.message == ERR_RESOURCE_REQUIRED

    def test_resource_not_allowed(self, appointments, business, make_service, resource, make_resource):
        bruno = make_resource("Bruno")
        service = make_service(allowed=[resource])
        with pytest.raises(PolicyViolationError) as exc:
            _book(appointments, business, service, bruno)
        assert exc.value.message == ERR_RESOURCE_NOT_ALLOWED

    def test_inactive_resource_not_found(self, appointments, business, service, make_resource):
        retired = make_resource("Carla", is_active=False)
        with pytest.raises(NotFoundError):
            _book(appointments, business, service, retired)

    def test_unknown_service(self, appointments, business):
        with pytest.raises(NotFoundError):
            appointments.create_appointment(business, str(uuid.uuid4()), "Laura", CUSTOMER_PHONE,
                                            local_iso(MONDAY, 10))

    def test_malformed_ids_and_times(self, appointments, business, service):
        with pytest.raises(InvalidInputError):
            appointments.create_appointment(business, "not-a-uuid", "Laura", CUSTOMER_PHONE, local_iso(MONDAY, 10))
        with pytest.raises(InvalidInputError):
            appointments.create_appointment(business, str(service.id), "Laura", CUSTOMER_PHONE, "lunes 10am")

    def test_resource_less_booking_uses_business_scope(self, appointments, business, service):
        appt = _book(appointments, business, service, None)
        assert appt.resource_id is None
        assert appt.booking_scope == "business"


class TestCancel:

    def test_customer_cancel_with_notice(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)

        cancelled = appointments.cancel_appointment(business, appt.id, Actor.customer(), CUSTOMER_PHONE)
        assert cancelled.status == "cancelled"

    def test_phone_mismatch(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)

        with pytest.raises(ForbiddenError) as exc:
            appointments.cancel_appointment(business, appt.id, Actor.customer(), "+573009999999")
        assert exc.value.message == ERR_PHONE_MISMATCH

    def test_inside_window_rejected(self, appointments, clock, business, service, resource):
        appt = _book(appointments, business, service, resource)
        clock.set_local(MONDAY, 8)

        with pytest.raises(PolicyViolationError) as exc:
            appointments.cancel_appointment(business, appt.id, Actor.customer(), CUSTOMER_PHONE)
        assert exc.value.message == ERR_CANCEL_WINDOW

    def test_owner_is_bound_by_window(self, appointments, clock, business, service, resource):
        appt = _book(appointments, business, service, resource)
        clock.set_local(MONDAY, 8)

        with pytest.raises(PolicyViolationError):
            appointments.cancel_appointment(business, appt.id, OWNER)

    def test_platform_operator_bypasses_window(self, appointments, clock, business, service, resource):
        appt = _book(appointments, business, service, resource)
        clock.set_local(MONDAY, 9, 55)

        assert appointments.cancel_appointment(business, appt.id, PLATFORM).status == "cancelled"

    def test_cancel_twice_is_noop(self, db, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        appointments.cancel_appointment(business, appt.id, Actor.customer(), CUSTOMER_PHONE)

        again = appointments.cancel_appointment(business, appt.id, Actor.customer(), CUSTOMER_PHONE)
        assert again.status == "cancelled"
        assert db.query(AuditLog).filter(AuditLog.action == "appointment.cancelled").count() == 1

    def test_cancel_completed_is_policy_violation(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        appointments.update_status(business, appt.id, "completed", OWNER)

        with pytest.raises(PolicyViolationError) as exc:
            appointments.cancel_appointment(business, appt.id, Actor.customer(), CUSTOMER_PHONE)
        assert exc.value.message == ERR_NOT_BOOKED

    def test_staff_scoped_to_other_resource_cannot_see_it(self, appointments, business, service, resource,
                                                          make_resource):
        bruno = make_resource("Bruno")
        appt = _book(appointments, business, service, resource)

        with pytest.raises(NotFoundError):
            appointments.cancel_appointment(business, appt.id, Actor(role=ActorRole.STAFF, resource_id=bruno.id))

    def test_unknown_appointment(self, appointments, business):
        with pytest.raises(NotFoundError):
            appointments.cancel_appointment(business, uuid.uuid4(), PLATFORM)

    def test_cancelled_slot_can_be_rebooked(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        appointments.cancel_appointment(business, appt.id, PLATFORM)

        again = _book(appointments, business, service, resource)
        assert again.id != appt.id


class TestStatus:

    def test_complete(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        assert appointments.update_status(business, appt.id, "completed", OWNER).status == "completed"

    def test_same_status_is_noop(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        appointments.update_status(business, appt.id, "completed", OWNER)

        assert appointments.update_status(business, appt.id, "completed", OWNER).status == "completed"

    def test_booked_to_booked_is_noop(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        assert appointments.update_status(business, appt.id, "booked", OWNER).status == "booked"

    @pytest.mark.parametrize("terminal,target", [
        ("completed", "booked"),
        ("completed", "cancelled"),
        ("cancelled", "booked"),
        ("cancelled", "completed"),
    ])
    def test_terminal_states_never_flip(self, appointments, business, service, resource, terminal, target):
        appt = _book(appointments, business, service, resource)
        appointments.update_status(business, appt.id, terminal, PLATFORM)

        with pytest.raises(PolicyViolationError) as exc:
            appointments.update_status(business, appt.id, target, PLATFORM)
        assert exc.value.message == ERR_NOT_BOOKED

    def test_unknown_status(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(InvalidInputError):
            appointments.update_status(business, appt.id, "no_show", OWNER)


class TestReschedule:

    def test_second_reschedule_rejected_regardless_of_configured_limit(self, db, appointments, business,
                                                                       service, resource):
        business.reschedule_limit = 5
        db.commit()
        appt = _book(appointments, business, service, resource)

        moved = appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 11))
        assert moved.reschedule_count == 1
        assert moved.start_time == local(MONDAY, 11)
        assert moved.last_rescheduled_at is not None

        with pytest.raises(PolicyViolationError) as exc:
            appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 12))
        assert exc.value.message == ERR_RESCHEDULE_LIMIT
        assert business.reschedule_limit == 5

    def test_conflicting_target_leaves_appointment_unchanged(self, db, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        _book(appointments, business, service, resource, hour=11)

        with pytest.raises(ConflictError):
            appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 11))

        db.expire_all()
        stored = db.get(Appointment, appt.id)
        assert stored.start_time == local(MONDAY, 10)
        assert stored.reschedule_count == 0

    def test_overlapping_own_interval_is_allowed(self, appointments, business, make_service, resource):
        long_service = make_service(name="Color", duration_minutes=60)
        appt = _book(appointments, business, long_service, resource)

        moved = appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 10, 30))
        assert moved.end_time == local(MONDAY, 11, 30)

    def test_phone_mismatch(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(ForbiddenError):
            appointments.reschedule_appointment(business, appt.id, "+570000000", local_iso(MONDAY, 11))

    def test_cancelled_cannot_be_rescheduled(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        appointments.cancel_appointment(business, appt.id, PLATFORM)

        with pytest.raises(PolicyViolationError) as exc:
            appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 11))
        assert exc.value.message == ERR_NOT_BOOKED

    def test_outside_hours(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(PolicyViolationError) as exc:
            appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(MONDAY, 18))
        assert exc.value.message == ERR_OUTSIDE_HOURS


class TestDetailUpdate:

    def test_move_and_change_resource_without_consuming_counter(self, appointments, business, service,
                                                                resource, make_resource):
        bruno = make_resource("Bruno")
        appt = _book(appointments, business, service, resource)

        updated = appointments.update_appointment_details(
            business, appt.id, OWNER, resource_id=str(bruno.id), start_time=local_iso(TUESDAY, 15)
        )

        assert updated.resource_id == bruno.id
        assert updated.booking_scope == str(bruno.id)
        assert updated.start_time == local(TUESDAY, 15)
        assert updated.reschedule_count == 0

        # Customer reschedule is still available afterwards
        moved = appointments.reschedule_appointment(business, appt.id, CUSTOMER_PHONE, local_iso(TUESDAY, 16))
        assert moved.reschedule_count == 1

    def test_service_change_recomputes_end(self, appointments, business, service, make_service, resource):
        long_service = make_service(name="Color", duration_minutes=90)
        appt = _book(appointments, business, service, resource)

        updated = appointments.update_appointment_details(business, appt.id, OWNER, service_id=str(long_service.id))
        assert updated.end_time == local(MONDAY, 11, 30)

    def test_new_service_revalidates_eligibility(self, appointments, business, service, make_service,
                                                 resource, make_resource):
        bruno = make_resource("Bruno")
        restricted = make_service(name="Tinte", allowed=[bruno])
        appt = _book(appointments, business, service, resource)

        with pytest.raises(PolicyViolationError) as exc:
            appointments.update_appointment_details(business, appt.id, OWNER, service_id=str(restricted.id))
        assert exc.value.message == ERR_RESOURCE_NOT_ALLOWED

    def test_conflict(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        _book(appointments, business, service, resource, hour=11)

        with pytest.raises(ConflictError):
            appointments.update_appointment_details(business, appt.id, OWNER, start_time=local_iso(MONDAY, 11))

    def test_nothing_to_update(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(InvalidInputError) as exc:
            appointments.update_appointment_details(business, appt.id, OWNER)
        assert exc.value.message == ERR_NO_UPDATES

    def test_staff_limited_to_own_resource(self, appointments, business, service, resource, make_resource):
        bruno = make_resource("Bruno")
        appt = _book(appointments, business, service, resource)

        with pytest.raises(ForbiddenError) as exc:
            appointments.update_appointment_details(
                business, appt.id, Actor(role=ActorRole.STAFF, resource_id=bruno.id), start_time=local_iso(MONDAY, 11)
            )
        assert exc.value.message == ERR_STAFF_SCOPE

    def test_staff_cannot_move_own_appointment_to_another_resource(self, appointments, business, service,
                                                                   resource, make_resource):
        bruno = make_resource("Bruno")
        appt = _book(appointments, business, service, resource)
        staff = Actor(role=ActorRole.STAFF, resource_id=resource.id)

        with pytest.raises(ForbiddenError) as exc:
            appointments.update_appointment_details(business, appt.id, staff, resource_id=str(bruno.id))
        assert exc.value.message == ERR_STAFF_SCOPE

        moved = appointments.update_appointment_details(business, appt.id, staff, start_time=local_iso(MONDAY, 11))
        assert moved.resource_id == resource.id
        assert moved.start_time == local(MONDAY, 11)


class TestCustomerDetails:

    def test_name_and_phone_normalized(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)

        updated = appointments.update_customer_details(
            business, appt.id, CUSTOMER_PHONE, customer_name="  Laura G. ", new_customer_phone="300 444 5566"
        )
        assert updated.customer_name == "Laura G."
        assert updated.customer_phone == "+573004445566"

    def test_requires_matching_phone(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(ForbiddenError):
            appointments.update_customer_details(business, appt.id, "+571111111", customer_name="X")

    def test_empty_update(self, appointments, business, service, resource):
        appt = _book(appointments, business, service, resource)
        with pytest.raises(InvalidInputError) as exc:
            appointments.update_customer_details(business, appt.id, CUSTOMER_PHONE, customer_name="  ")
        assert exc.value.message == ERR_NO_UPDATES


class TestUpcomingByPhone:

    def test_lists_upcoming_non_cancelled(self, appointments, business, service, resource):
        first = _book(appointments, business, service, resource, hour=10)
        second = _book(appointments, business, service, resource, hour=11)
        appointments.cancel_appointment(business, second.id, PLATFORM)

        found = appointments.upcoming_for_phone(business, CUSTOMER_PHONE)
        assert [a.id for a in found] == [first.id]

    def test_short_phone_returns_nothing(self, appointments, business, service, resource):
        _book(appointments, business, service, resource)
        assert appointments.upcoming_for_phone(business, "12345") == []
        assert appointments.upcoming_for_phone(business, None) == []


def test_booked_slot_no_longer_listed(db, appointments, clock, business, service, resource):
    generator = SlotGenerator(db, clock=clock)
    slot = generator.get_availability(business.slug, MONDAY.isoformat(), str(service.id))[3]

    appointments.create_appointment(
        business, str(service.id), "Laura", CUSTOMER_PHONE,
        slot.start_time.isoformat(), resource_id=str(slot.resource_ids[0]),
    )

    starts = [s.start_time for s in generator.get_availability(business.slug, MONDAY.isoformat(), str(service.id))]
    assert slot.start_time not in starts


def test_audit_failure_does_not_fail_booking(db, appointments, business, service, resource, monkeypatch):
    import booking_api.services.audit.audit_service as audit_module

    def broken(**kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(audit_module, "AuditLog", broken)

    appt = _book(appointments, business, service, resource)

    db.expire_all()
    assert db.get(Appointment, appt.id).status == "booked"
