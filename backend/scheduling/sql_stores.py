"""SQLAlchemy-backed stores.

``reserve`` and the appointment status transitions are conditional UPDATEs
whose affected row count decides the outcome, so two processes sharing the
database cannot both take the same slot. Both stores draw their sessions
from one ``SqlUnitOfWork``; inside ``transaction()`` every store call joins
the same session and nothing is committed until the block exits cleanly.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, time
from threading import local

from sqlalchemy.orm import Session, sessionmaker

from backend.models.appointment import AppointmentRow
from backend.models.slot import SlotRow
from backend.scheduling.errors import AppointmentAlreadyCancelled, AppointmentNotFound, SlotNotAvailable
from backend.scheduling.records import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment, NewAppointment, Slot
from backend.scheduling.stores import AppointmentStore, SlotStore, utc_now

logger = logging.getLogger(__name__)


class SqlUnitOfWork:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._local = local()

    def _active(self) -> Session | None:
        return getattr(self._local, 'session', None)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Join the open transaction on this thread, or run in a session of its own."""
        active = self._active()
        if active is not None:
            yield active
            return

        with self._session_factory() as db:
            try:
                yield db
                db.commit()
            except BaseException:
                db.rollback()
                raise

    @contextmanager
    def transaction(self) -> Iterator[bool]:
        if self._active() is not None:
            yield True
            return

        with self._session_factory() as db:
            self._local.session = db
            try:
                yield True
                db.commit()
            except BaseException:
                logger.debug('Rolling back scheduling transaction')
                db.rollback()
                raise
            finally:
                self._local.session = None


def build_sql_stores(session_factory: sessionmaker) -> tuple['SqlSlotStore', 'SqlAppointmentStore']:
    unit_of_work = SqlUnitOfWork(session_factory)
    return SqlSlotStore(unit_of_work), SqlAppointmentStore(unit_of_work)


def _to_date(value: str) -> date:
    return date.fromisoformat(value)


def _to_time(value: str) -> time:
    return time.fromisoformat(value)


def _slot_from_row(row: SlotRow) -> Slot:
    return Slot(date=row.date.isoformat(), time=row.time.strftime('%H:%M'), available=bool(row.available))


def _appointment_from_row(row: AppointmentRow) -> Appointment:
    return Appointment(
        id=row.id,
        patient_name=row.patient_name,
        phone=row.phone,
        email=row.email or '',
        date=row.date.isoformat(),
        time=row.time.strftime('%H:%M'),
        type=row.appointment_type,
        is_new_patient=bool(row.is_new_patient),
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        cancelled_at=row.cancelled_at,
        cancel_reason=row.cancel_reason,
    )


class SqlSlotStore(SlotStore):
    def __init__(self, unit_of_work: SqlUnitOfWork) -> None:
        self._unit_of_work = unit_of_work

    def transaction(self):
        return self._unit_of_work.transaction()

    def add(self, slot_date: str, slot_time: str, available: bool = True) -> Slot:
        with self._unit_of_work.session() as db:
            row = db.query(SlotRow).filter(
                SlotRow.date == _to_date(slot_date),
                SlotRow.time == _to_time(slot_time),
            ).first()
            if row is None:
                row = SlotRow(date=_to_date(slot_date), time=_to_time(slot_time))
                db.add(row)
            row.available = available
            db.flush()
            return _slot_from_row(row)

    def list_all(self) -> list[Slot]:
        with self._unit_of_work.session() as db:
            rows = db.query(SlotRow).order_by(SlotRow.date.asc(), SlotRow.time.asc()).all()
            return [_slot_from_row(row) for row in rows]

    def list_available(self, slot_date: str | None = None) -> list[Slot]:
        logger.debug('Listing available slots date=%s', slot_date)
        with self._unit_of_work.session() as db:
            query = db.query(SlotRow).filter(SlotRow.available.is_(True))
            if slot_date is not None:
                query = query.filter(SlotRow.date == _to_date(slot_date))
            rows = query.order_by(SlotRow.date.asc(), SlotRow.time.asc()).all()
            return [_slot_from_row(row) for row in rows]

    def reserve(self, slot_date: str, slot_time: str) -> None:
        with self._unit_of_work.session() as db:
            updated = db.query(SlotRow).filter(
                SlotRow.date == _to_date(slot_date),
                SlotRow.time == _to_time(slot_time),
                SlotRow.available.is_(True),
            ).update({SlotRow.available: False}, synchronize_session=False)

            if updated != 1:
                raise SlotNotAvailable(f'Time slot {slot_date} {slot_time} not available')

    def release(self, slot_date: str, slot_time: str) -> None:
        with self._unit_of_work.session() as db:
            db.query(SlotRow).filter(
                SlotRow.date == _to_date(slot_date),
                SlotRow.time == _to_time(slot_time),
            ).update({SlotRow.available: True}, synchronize_session=False)


class SqlAppointmentStore(AppointmentStore):
    def __init__(self, unit_of_work: SqlUnitOfWork) -> None:
        self._unit_of_work = unit_of_work

    def create(self, fields: NewAppointment) -> Appointment:
        with self._unit_of_work.session() as db:
            row = AppointmentRow(
                patient_name=fields.patient_name,
                phone=fields.phone,
                email=fields.email,
                date=_to_date(fields.date),
                time=_to_time(fields.time),
                appointment_type=fields.type,
                is_new_patient=fields.is_new_patient,
                status=STATUS_CONFIRMED,
                created_at=utc_now(),
            )
            db.add(row)
            db.flush()
            return _appointment_from_row(row)

    def get_by_id(self, appointment_id: int) -> Appointment:
        with self._unit_of_work.session() as db:
            return _load_appointment(db, appointment_id)

    def find_by_phone(self, phone: str) -> list[Appointment]:
        logger.debug('Finding appointments by phone=%s', phone)
        with self._unit_of_work.session() as db:
            rows = db.query(AppointmentRow).filter(
                AppointmentRow.phone == phone,
                AppointmentRow.status != STATUS_CANCELLED,
            ).order_by(AppointmentRow.id.asc()).all()
            return [_appointment_from_row(row) for row in rows]

    def list_active(self) -> list[Appointment]:
        with self._unit_of_work.session() as db:
            rows = db.query(AppointmentRow).filter(
                AppointmentRow.status != STATUS_CANCELLED,
            ).order_by(AppointmentRow.id.asc()).all()
            return [_appointment_from_row(row) for row in rows]

    def reschedule(self, appointment_id: int, new_date: str, new_time: str) -> Appointment:
        with self._unit_of_work.session() as db:
            updated = db.query(AppointmentRow).filter(
                AppointmentRow.id == appointment_id,
                AppointmentRow.status == STATUS_CONFIRMED,
            ).update(
                {
                    AppointmentRow.date: _to_date(new_date),
                    AppointmentRow.time: _to_time(new_time),
                    AppointmentRow.updated_at: utc_now(),
                },
                synchronize_session=False,
            )

            if updated != 1:
                raise AppointmentNotFound(f'Appointment {appointment_id} not found')
            return _load_appointment(db, appointment_id)

    def cancel(self, appointment_id: int, reason: str | None = None) -> Appointment:
        with self._unit_of_work.session() as db:
            updated = db.query(AppointmentRow).filter(
                AppointmentRow.id == appointment_id,
                AppointmentRow.status == STATUS_CONFIRMED,
            ).update(
                {
                    AppointmentRow.status: STATUS_CANCELLED,
                    AppointmentRow.cancelled_at: utc_now(),
                    AppointmentRow.cancel_reason: reason,
                },
                synchronize_session=False,
            )

            if updated != 1:
                existing = _load_appointment(db, appointment_id)
                raise AppointmentAlreadyCancelled(f'Appointment {existing.id} already cancelled')
            return _load_appointment(db, appointment_id)


def _load_appointment(db: Session, appointment_id: int) -> Appointment:
    # The status UPDATEs bypass the identity map, so always reload the row.
    row = db.get(AppointmentRow, appointment_id, populate_existing=True)
    if row is None:
        raise AppointmentNotFound(f'Appointment {appointment_id} not found')
    return _appointment_from_row(row)
