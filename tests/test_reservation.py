"""
Tests for reservations and status transitions.

Covers the double-booking guarantee under concurrency, block checks and
reopen re-validation.
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta

import pytest
from sqlalchemy import func, select

from clinic_booking.core.db import atomic
from clinic_booking.core.exceptions import ConflictError, ConflictReason, NotFoundError, ValidationError
from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.models.block import BlockedDay, BlockedTime
from clinic_booking.models.service_type import ServiceType
from clinic_booking.services.reservation_service import (
    find_patient_appointments,
    list_appointments,
    normalize_patient_id,
    reopen,
    reserve,
    set_status,
)

from conftest import MONDAY, TODAY


async def _reserve(session_maker, request):
    async with session_maker() as session:
        return await reserve(session, request, today=TODAY)


async def _scheduled_count(session_maker, d: date, t: time) -> int:
    async with session_maker() as session:
        result = await session.execute(
            select(func.count(Appointment.id)).where(
                Appointment.appointment_date == d,
                Appointment.appointment_time == t,
                Appointment.status == AppointmentStatus.scheduled.value,
            )
        )
        return result.scalar_one()


async def _status_of(session_maker, appointment_id: int) -> str:
    async with session_maker() as session:
        appointment = await session.get(Appointment, appointment_id)
        return appointment.status


class TestPatientId:
    def test_strips_punctuation(self):
        assert normalize_patient_id("123.456.789-01") == "12345678901"
        assert normalize_patient_id("12345678901") == "12345678901"

    @pytest.mark.parametrize("raw", ["", "1234567890", "123456789012", "abc.def.ghi-jk"])
    def test_rejects_wrong_length(self, raw):
        with pytest.raises(ValidationError) as exc:
            normalize_patient_id(raw)
        assert exc.value.field == "patient_id"


class TestReserve:
    @pytest.mark.asyncio
    async def test_reserve_free_slot(self, session_maker, make_request):
        appointment = await _reserve(session_maker, make_request())

        assert appointment.id is not None
        assert appointment.status == AppointmentStatus.scheduled.value
        assert appointment.patient_id == "12345678901"
        assert appointment.appointment_time == time(7, 0)
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 1

    @pytest.mark.asyncio
    async def test_second_reservation_same_slot_conflicts(self, session_maker, make_request):
        await _reserve(session_maker, make_request())
        with pytest.raises(ConflictError) as exc:
            await _reserve(session_maker, make_request(name="Ana Lima", patient_id="11122233344"))
        assert exc.value.reason == ConflictReason.slot_taken

    @pytest.mark.asyncio
    async def test_canceled_slot_can_be_booked_again(self, session_maker, make_request, add_appointment):
        await add_appointment(MONDAY, time(7, 0), AppointmentStatus.canceled)
        appointment = await _reserve(session_maker, make_request())
        assert appointment.status == AppointmentStatus.scheduled.value

    @pytest.mark.asyncio
    async def test_day_block_rejects(self, session_maker, make_request):
        async with session_maker() as session:
            session.add(BlockedDay(blocked_date=MONDAY, reason="Holiday"))
            await session.commit()
        for t in ("07:00", "16:30"):
            with pytest.raises(ConflictError) as exc:
                await _reserve(session_maker, make_request(appointment_time=t))
            assert exc.value.reason == ConflictReason.day_blocked

    @pytest.mark.asyncio
    async def test_time_block_rejects(self, session_maker, make_request):
        async with session_maker() as session:
            session.add(BlockedTime(blocked_date=MONDAY, blocked_time=time(9, 0)))
            await session.commit()
        with pytest.raises(ConflictError) as exc:
            await _reserve(session_maker, make_request(appointment_time="09:00"))
        assert exc.value.reason == ConflictReason.time_blocked
        # Neighbouring slot is unaffected
        await _reserve(session_maker, make_request(appointment_time="09:30"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"patient_id": "123.456"}, "patient_id"),
            ({"name": " A "}, "name"),
            ({"birth_date": date(2030, 1, 1)}, "birth_date"),
            ({"appointment_time": "12:00"}, "time"),
            ({"appointment_time": "7am"}, "time"),
            ({"appointment_date": date(2026, 10, 24)}, "date"),
            ({"appointment_date": date(2026, 10, 16)}, "date"),
            ({"service_type_id": 0}, "service_type_id"),
        ],
    )
    async def test_validation(self, session_maker, make_request, overrides, field):
        with pytest.raises(ValidationError) as exc:
            await _reserve(session_maker, make_request(**overrides))
        assert exc.value.field == field

    @pytest.mark.asyncio
    async def test_unknown_or_inactive_service_type(self, session_maker, make_request):
        async with session_maker() as session:
            retired = ServiceType(name="Retired service", is_active=False)
            session.add(retired)
            await session.commit()
        for service_type_id in (retired.id, 999):
            with pytest.raises(ValidationError) as exc:
                await _reserve(session_maker, make_request(service_type_id=service_type_id))
            assert exc.value.field == "service_type_id"
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 0

    @pytest.mark.asyncio
    async def test_concurrent_reservations_one_winner(self, session_maker, make_request):
        attempts = 6

        async def attempt(i: int):
            try:
                await _reserve(session_maker, make_request(patient_id=f"{i:011d}"))
                return "ok"
            except ConflictError as e:
                return e.reason

        results = await asyncio.gather(*(attempt(i) for i in range(attempts)))

        assert results.count("ok") == 1
        assert results.count(ConflictReason.slot_taken) == attempts - 1
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 1


class TestStatusTransitions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "start,target",
        [
            (AppointmentStatus.scheduled, AppointmentStatus.done),
            (AppointmentStatus.scheduled, AppointmentStatus.canceled),
            (AppointmentStatus.done, AppointmentStatus.canceled),
            (AppointmentStatus.canceled, AppointmentStatus.done),
            (AppointmentStatus.done, AppointmentStatus.scheduled),
            (AppointmentStatus.canceled, AppointmentStatus.scheduled),
            (AppointmentStatus.done, AppointmentStatus.done),
        ],
    )
    async def test_allowed_transitions(self, session_maker, add_appointment, start, target):
        appointment = await add_appointment(MONDAY, time(8, 0), start)
        async with session_maker() as session:
            updated = await set_status(session, appointment.id, target)
        assert updated.status == target.value
        assert await _status_of(session_maker, appointment.id) == target.value

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, session_maker):
        async with session_maker() as session:
            with pytest.raises(NotFoundError):
                await set_status(session, 404, AppointmentStatus.done)
        async with session_maker() as session:
            with pytest.raises(NotFoundError):
                await reopen(session, 404)

    @pytest.mark.asyncio
    async def test_reopen_into_taken_slot_fails(self, session_maker, make_request):
        first = await _reserve(session_maker, make_request())
        async with session_maker() as session:
            await set_status(session, first.id, AppointmentStatus.canceled)
        await _reserve(session_maker, make_request(name="Ana Lima", patient_id="11122233344"))

        async with session_maker() as session:
            with pytest.raises(ConflictError) as exc:
                await set_status(session, first.id, AppointmentStatus.scheduled)
        assert exc.value.reason == ConflictReason.slot_taken
        assert await _status_of(session_maker, first.id) == AppointmentStatus.canceled.value
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 1

    @pytest.mark.asyncio
    async def test_reopen_into_blocked_day_fails(self, session_maker, add_appointment):
        appointment = await add_appointment(MONDAY, time(10, 0), AppointmentStatus.done)
        async with session_maker() as session:
            session.add(BlockedDay(blocked_date=MONDAY))
            await session.commit()
        async with session_maker() as session:
            with pytest.raises(ConflictError) as exc:
                await reopen(session, appointment.id)
        assert exc.value.reason == ConflictReason.day_blocked
        assert await _status_of(session_maker, appointment.id) == AppointmentStatus.done.value

    @pytest.mark.asyncio
    async def test_reopen_into_blocked_time_fails(self, session_maker, add_appointment):
        appointment = await add_appointment(MONDAY, time(10, 0), AppointmentStatus.canceled)
        async with session_maker() as session:
            session.add(BlockedTime(blocked_date=MONDAY, blocked_time=time(10, 0)))
            await session.commit()
        async with session_maker() as session:
            with pytest.raises(ConflictError) as exc:
                await reopen(session, appointment.id)
        assert exc.value.reason == ConflictReason.time_blocked

    @pytest.mark.asyncio
    async def test_reopen_already_scheduled_is_noop(self, session_maker, add_appointment):
        appointment = await add_appointment(MONDAY, time(10, 0))
        async with session_maker() as session:
            reopened = await reopen(session, appointment.id)
        assert reopened.status == AppointmentStatus.scheduled.value


class TestQueries:
    @pytest.mark.asyncio
    async def test_find_patient_appointments(self, session_maker, add_appointment):
        await add_appointment(MONDAY, time(7, 0), patient_id="12345678901", birth_date=date(1990, 5, 17))
        await add_appointment(
            date(2026, 10, 27), time(8, 0), AppointmentStatus.done, patient_id="12345678901", birth_date=date(1990, 5, 17)
        )
        await add_appointment(MONDAY, time(8, 0), patient_id="12345678901", birth_date=date(1991, 1, 1))

        async with session_maker() as session:
            rows = await find_patient_appointments(session, "123.456.789-01", date(1990, 5, 17))

        assert [a.appointment_date for a, _ in rows] == [date(2026, 10, 27), MONDAY]
        assert all(name == "General consultation" for _, name in rows)

    @pytest.mark.asyncio
    async def test_list_appointments_filters_and_pages(self, session_maker, add_appointment):
        for hour in (7, 8, 9, 10):
            await add_appointment(MONDAY, time(hour, 0))
        await add_appointment(MONDAY, time(11, 0), AppointmentStatus.canceled)

        async with session_maker() as session:
            rows, total = await list_appointments(session, MONDAY, AppointmentStatus.scheduled, page=2, limit=3)
        assert total == 4
        assert [a.appointment_time for a, _ in rows] == [time(7, 0)]

        async with session_maker() as session:
            rows, total = await list_appointments(session)
        assert total == 5
        assert rows[0][0].appointment_time == time(11, 0)


class TestPersistence:
    @pytest.mark.asyncio
    async def test_created_at_round_trips(self, session_maker, make_request):
        before = datetime.now(UTC).replace(tzinfo=None) - timedelta(seconds=5)
        appointment = await _reserve(session_maker, make_request())

        async with session_maker() as session:
            stored = await session.get(Appointment, appointment.id)
        assert stored.created_at.tzinfo is None
        assert before <= stored.created_at <= datetime.now(UTC).replace(tzinfo=None) + timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_unique_index_maps_to_slot_taken(self, session_maker, add_appointment, service_type):
        await add_appointment(MONDAY, time(7, 0))
        async with session_maker() as session:
            with pytest.raises(ConflictError) as exc:
                async with atomic(session, ConflictReason.slot_taken):
                    # No lock and no pre-check: only the index stands in the way
                    session.add(
                        Appointment(
                            name="Ana Lima",
                            patient_id="11122233344",
                            birth_date=date(1992, 3, 4),
                            appointment_date=MONDAY,
                            appointment_time=time(7, 0),
                            service_type_id=service_type.id,
                            status=AppointmentStatus.scheduled.value,
                        )
                    )
                    await session.flush()
        assert exc.value.reason == ConflictReason.slot_taken
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 1

    @pytest.mark.asyncio
    async def test_unique_index_ignores_inactive_rows(self, session_maker, add_appointment):
        await add_appointment(MONDAY, time(7, 0), AppointmentStatus.canceled)
        await add_appointment(MONDAY, time(7, 0), AppointmentStatus.canceled)
        await add_appointment(MONDAY, time(7, 0), AppointmentStatus.done)
        await add_appointment(MONDAY, time(7, 0))
        assert await _scheduled_count(session_maker, MONDAY, time(7, 0)) == 1
