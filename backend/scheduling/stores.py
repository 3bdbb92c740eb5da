"""Store interfaces and the in-memory implementations used by default."""

import logging
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock

from backend.scheduling.errors import AppointmentAlreadyCancelled, AppointmentNotFound, SlotNotAvailable
from backend.scheduling.records import STATUS_CANCELLED, Appointment, NewAppointment, Slot

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SlotStore(ABC):
    @abstractmethod
    def add(self, slot_date: str, slot_time: str, available: bool = True) -> Slot:
        ...

    @abstractmethod
    def list_all(self) -> list[Slot]:
        ...

    @abstractmethod
    def list_available(self, slot_date: str | None = None) -> list[Slot]:
        ...

    @abstractmethod
    def reserve(self, slot_date: str, slot_time: str) -> None:
        """Flip an available slot to taken or raise ``SlotNotAvailable``."""

    @abstractmethod
    def release(self, slot_date: str, slot_time: str) -> None:
        """Make a slot available again. Unknown or already-free slots are a no-op."""

    def transaction(self):
        """Context manager grouping the following store calls.

        It yields True when a failure inside the block undoes every call made
        in it, and False when the caller has to compensate by hand.
        """
        return nullcontext(False)


class AppointmentStore(ABC):
    @abstractmethod
    def create(self, fields: NewAppointment) -> Appointment:
        ...

    @abstractmethod
    def get_by_id(self, appointment_id: int) -> Appointment:
        ...

    @abstractmethod
    def find_by_phone(self, phone: str) -> list[Appointment]:
        ...

    @abstractmethod
    def list_active(self) -> list[Appointment]:
        ...

    @abstractmethod
    def reschedule(self, appointment_id: int, new_date: str, new_time: str) -> Appointment:
        ...

    @abstractmethod
    def cancel(self, appointment_id: int, reason: str | None = None) -> Appointment:
        ...


class InMemorySlotStore(SlotStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._slots: dict[tuple[str, str], Slot] = {}

    def add(self, slot_date: str, slot_time: str, available: bool = True) -> Slot:
        slot = Slot(date=slot_date, time=slot_time, available=available)
        with self._lock:
            self._slots[slot.key] = slot
        return slot

    def list_all(self) -> list[Slot]:
        with self._lock:
            return sorted(self._slots.values(), key=lambda slot: slot.key)

    def list_available(self, slot_date: str | None = None) -> list[Slot]:
        logger.debug('Listing available slots date=%s', slot_date)
        return [
            slot
            for slot in self.list_all()
            if slot.available and (slot_date is None or slot.date == slot_date)
        ]

    def reserve(self, slot_date: str, slot_time: str) -> None:
        key = (slot_date, slot_time)
        with self._lock:
            slot = self._slots.get(key)
            if slot is None or not slot.available:
                raise SlotNotAvailable(f'Time slot {slot_date} {slot_time} not available')
            self._slots[key] = replace(slot, available=False)

    def release(self, slot_date: str, slot_time: str) -> None:
        key = (slot_date, slot_time)
        with self._lock:
            slot = self._slots.get(key)
            if slot is not None and not slot.available:
                self._slots[key] = replace(slot, available=True)


class InMemoryAppointmentStore(AppointmentStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._appointments: dict[int, Appointment] = {}
        self._next_id = 1

    def create(self, fields: NewAppointment) -> Appointment:
        with self._lock:
            appointment = Appointment(
                id=self._next_id,
                patient_name=fields.patient_name,
                phone=fields.phone,
                email=fields.email,
                date=fields.date,
                time=fields.time,
                type=fields.type,
                is_new_patient=fields.is_new_patient,
                created_at=utc_now(),
            )
            self._appointments[appointment.id] = appointment
            self._next_id += 1
            return replace(appointment)

    def get_by_id(self, appointment_id: int) -> Appointment:
        with self._lock:
            return replace(self._get(appointment_id))

    def find_by_phone(self, phone: str) -> list[Appointment]:
        logger.debug('Finding appointments by phone=%s', phone)
        return [appointment for appointment in self.list_active() if appointment.phone == phone]

    def list_active(self) -> list[Appointment]:
        with self._lock:
            return [replace(appointment) for appointment in self._appointments.values() if not appointment.is_cancelled]

    def reschedule(self, appointment_id: int, new_date: str, new_time: str) -> Appointment:
        with self._lock:
            appointment = self._get(appointment_id)
            if appointment.is_cancelled:
                raise AppointmentNotFound(f'Appointment {appointment_id} is cancelled')
            appointment.date = new_date
            appointment.time = new_time
            appointment.updated_at = utc_now()
            return replace(appointment)

    def cancel(self, appointment_id: int, reason: str | None = None) -> Appointment:
        with self._lock:
            appointment = self._get(appointment_id)
            if appointment.is_cancelled:
                raise AppointmentAlreadyCancelled(f'Appointment {appointment_id} already cancelled')
            appointment.status = STATUS_CANCELLED
            appointment.cancelled_at = utc_now()
            appointment.cancel_reason = reason
            return replace(appointment)

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(f'Appointment {appointment_id} not found')
        return appointment
