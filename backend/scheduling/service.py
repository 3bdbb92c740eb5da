"""Appointment scheduling engine.

Every public operation takes the flat parameter bag sent by the voice
platform (camelCase keys) and returns a result envelope::

    {'success': bool, 'message': <speakable text>, ...data}

Slot conflicts, unknown appointments and unreadable input are normal
conversational outcomes and come back as ``success=False`` envelopes.
Anything else propagates to the webhook layer.
"""

import logging
from collections.abc import Callable
from datetime import date
from threading import RLock

from backend.scheduling.errors import AppointmentAlreadyCancelled, AppointmentNotFound, FailureKind, SchedulingError
from backend.scheduling.normalizer import (
    clean_phone,
    format_date_for_display,
    format_phone_for_display,
    format_time_for_display,
    is_in_time_band,
    normalize_date,
    normalize_time,
    normalize_time_band,
)
from backend.scheduling.records import DEFAULT_APPOINTMENT_TYPE, Appointment, NewAppointment, Slot
from backend.scheduling.stores import AppointmentStore, SlotStore

logger = logging.getLogger(__name__)

MAX_FALLBACK_SUGGESTIONS = 5

MISSING_BOOKING_FIELDS_MESSAGE = (
    'I need your name, phone number, and preferred date and time to book an appointment.'
)
INVALID_TIME_MESSAGE = "I couldn't understand that time. Please share the time like 9 AM, 2 PM, or 14:00."
INVALID_PHONE_MESSAGE = 'I need a valid phone number. Can you please provide your phone number?'
NEW_PATIENT_INSTRUCTIONS = (
    ' Since this is your first visit, please arrive 15 minutes early to complete our new patient forms.'
    " Don't forget to bring your insurance card and a valid ID."
)
APPOINTMENT_NOT_FOUND_MESSAGE = "I couldn't find that appointment. Can you verify the details?"

BOOKING_FAILURE_MESSAGES = {
    FailureKind.SLOT_NOT_AVAILABLE: (
        "I'm sorry, that time slot just became unavailable. Let me find other available times for you."
    ),
}
RESCHEDULE_FAILURE_MESSAGES = {
    FailureKind.SLOT_NOT_AVAILABLE: (
        "I'm sorry, that new time slot is not available. Would you like me to suggest other available times?"
    ),
    FailureKind.APPOINTMENT_NOT_FOUND: APPOINTMENT_NOT_FOUND_MESSAGE,
}
CANCEL_FAILURE_MESSAGES = {
    FailureKind.APPOINTMENT_NOT_FOUND: APPOINTMENT_NOT_FOUND_MESSAGE,
}

TRUTHY_STRINGS = {'1', 'true', 'yes', 'y', 'on'}


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def _parse_appointment_id(value) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _failure(kind: FailureKind, messages: dict[FailureKind, str]) -> dict:
    return {
        'success': False,
        'message': messages[kind],
        'reason': kind.value,
    }


def format_slot(slot: Slot) -> dict:
    display_time = format_time_for_display(slot.time)
    return {
        'date': slot.date,
        'time': display_time,
        'display': f'{format_date_for_display(slot.date)} at {display_time}',
    }


def format_appointment(appointment: Appointment) -> dict:
    display_date = format_date_for_display(appointment.date)
    display_time = format_time_for_display(appointment.time)
    return {
        'id': appointment.id,
        'date': display_date,
        'time': display_time,
        'type': appointment.type,
        'display': f'{appointment.type} on {display_date} at {display_time}',
    }


class AppointmentService:
    def __init__(
        self,
        slot_store: SlotStore,
        appointment_store: AppointmentStore,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.slots = slot_store
        self.appointments = appointment_store
        self._clock = clock
        # Serializes the multi-step mutations (reserve + create, move, cancel + release).
        # Stores that support it also run each of them as one transaction.
        self._mutation_lock = RLock()

    def _normalize_date(self, value) -> str | None:
        return normalize_date(value, today=self._clock())

    # ------------------------------------------------------------------
    # Voice operations
    # ------------------------------------------------------------------

    def check_availability(self, params: dict) -> dict:
        normalized_date = self._normalize_date(params.get('date'))
        band = normalize_time_band(params.get('preferredTime'))

        logger.info(
            'Checking availability date=%s normalized=%s preferred=%s',
            params.get('date'),
            normalized_date,
            params.get('preferredTime'),
        )

        slots = self._filter_by_band(self.slots.list_available(normalized_date), band)

        if not slots:
            fallback = self._filter_by_band(self.slots.list_available(), band)[:MAX_FALLBACK_SUGGESTIONS]
            if fallback:
                if normalized_date:
                    message = (
                        "I'm sorry, we don't have any available appointments on that date. "
                        'Here are the next available times.'
                    )
                else:
                    message = "I couldn't find availability for that request. Here are the next available times."
                return {
                    'success': False,
                    'message': message,
                    'availableSlots': [format_slot(slot) for slot in fallback],
                }

            return {
                'success': False,
                'message': (
                    "I'm sorry, we don't have any available appointments on that date. "
                    'Would you like to try a different date?'
                ),
                'availableSlots': [],
            }

        return {
            'success': True,
            'message': f'We have {len(slots)} available time slots.',
            'availableSlots': [format_slot(slot) for slot in slots],
            'data': [slot.to_dict() for slot in slots],
        }

    def book_appointment(self, params: dict) -> dict:
        logger.info('Booking appointment: %s', params)

        patient_name = str(params.get('patientName') or '').strip()
        raw_phone = params.get('phone')
        raw_time = params.get('time')
        normalized_date = self._normalize_date(params.get('date'))

        if not patient_name or not raw_phone or not normalized_date or not raw_time:
            return {'success': False, 'message': MISSING_BOOKING_FIELDS_MESSAGE}

        normalized_time = normalize_time(raw_time)
        if not normalized_time:
            return {'success': False, 'message': INVALID_TIME_MESSAGE}

        phone = clean_phone(raw_phone)
        if not phone:
            return {'success': False, 'message': INVALID_PHONE_MESSAGE}

        appointment_type = str(params.get('appointmentType') or '').strip()
        is_new_patient = _as_bool(params.get('isNewPatient'))
        fields = NewAppointment(
            patient_name=patient_name,
            phone=phone,
            email=str(params.get('email') or ''),
            date=normalized_date,
            time=normalized_time,
            type=appointment_type or DEFAULT_APPOINTMENT_TYPE,
            is_new_patient=is_new_patient,
        )

        with self._mutation_lock, self.slots.transaction() as atomic:
            try:
                self.slots.reserve(fields.date, fields.time)
            except SchedulingError as exc:
                logger.info('Booking conflict for %s %s', fields.date, fields.time)
                return _failure(exc.kind, BOOKING_FAILURE_MESSAGES)

            try:
                appointment = self.appointments.create(fields)
            except BaseException:
                if not atomic:
                    self.slots.release(fields.date, fields.time)
                raise

        display_date = format_date_for_display(appointment.date)
        display_time = format_time_for_display(appointment.time)
        message = (
            f"Perfect! I've booked your {appointment_type or 'appointment'} for {display_date} at {display_time}. "
            f"You'll receive a confirmation text shortly at {format_phone_for_display(phone)}."
        )
        if is_new_patient:
            message += NEW_PATIENT_INSTRUCTIONS

        return {
            'success': True,
            'message': message,
            'appointment': {
                'id': appointment.id,
                'patientName': appointment.patient_name,
                'date': display_date,
                'time': display_time,
                'type': appointment.type,
            },
        }

    def find_appointment(self, params: dict) -> dict:
        raw_phone = params.get('phone')
        if not raw_phone:
            return {'success': False, 'message': 'I need your phone number to look up your appointment.'}

        phone = clean_phone(raw_phone)
        if not phone:
            return {
                'success': False,
                'message': 'I need a valid 10-digit phone number to look up your appointment.',
            }

        appointments = self.appointments.find_by_phone(phone)
        appointments = self._narrow_by_name(appointments, params.get('patientName'))

        if not appointments:
            return {
                'success': False,
                'message': f"I couldn't find any appointments under {phone}. Can you verify your phone number?",
                'appointments': [],
            }

        formatted = [format_appointment(appointment) for appointment in appointments]
        if len(formatted) == 1:
            message = f"I found your appointment: {formatted[0]['display']}."
        else:
            message = f'I found {len(formatted)} appointments for you.'

        return {
            'success': True,
            'message': message,
            'appointments': formatted,
            'data': [appointment.to_dict() for appointment in appointments],
        }

    def reschedule_appointment(self, params: dict) -> dict:
        raw_id = params.get('appointmentId')
        raw_time = params.get('newTime')
        normalized_date = self._normalize_date(params.get('newDate'))

        if raw_id in (None, '') or not normalized_date or not raw_time:
            return {
                'success': False,
                'message': 'I need the appointment details and new date/time to reschedule.',
            }

        logger.info('Rescheduling appointment: %s', params)

        normalized_time = normalize_time(raw_time)
        if not normalized_time:
            return {
                'success': False,
                'message': "I couldn't understand that new time. Please share it like 9 AM, 2 PM, or 14:00.",
            }

        appointment_id = _parse_appointment_id(raw_id)
        if appointment_id is None:
            return _failure(FailureKind.APPOINTMENT_NOT_FOUND, RESCHEDULE_FAILURE_MESSAGES)

        with self._mutation_lock:
            try:
                with self.slots.transaction() as atomic:
                    appointment = self._move(appointment_id, normalized_date, normalized_time, atomic)
            except SchedulingError as exc:
                logger.info('Reschedule of %s rejected: %s', appointment_id, exc.kind.value)
                return _failure(exc.kind, RESCHEDULE_FAILURE_MESSAGES)

        display_date = format_date_for_display(appointment.date)
        display_time = format_time_for_display(appointment.time)
        return {
            'success': True,
            'message': (
                f"Perfect! I've rescheduled your appointment to {display_date} at {display_time}. "
                "You'll receive a confirmation shortly."
            ),
            'appointment': {
                'id': appointment.id,
                'date': display_date,
                'time': display_time,
            },
        }

    def _move(self, appointment_id: int, new_date: str, new_time: str, atomic: bool) -> Appointment:
        current = self.appointments.get_by_id(appointment_id)
        if current.is_cancelled:
            raise AppointmentNotFound(f'Appointment {appointment_id} is cancelled')
        if current.slot_key == (new_date, new_time):
            return current

        self.slots.reserve(new_date, new_time)
        try:
            moved = self.appointments.reschedule(appointment_id, new_date, new_time)
        except BaseException:
            if not atomic:
                self.slots.release(new_date, new_time)
            raise

        self.slots.release(*current.slot_key)
        return moved

    def cancel_appointment(self, params: dict) -> dict:
        raw_id = params.get('appointmentId')
        if raw_id in (None, ''):
            return {'success': False, 'message': "I need to know which appointment you'd like to cancel."}

        logger.info('Cancelling appointment: %s', params)

        appointment_id = _parse_appointment_id(raw_id)
        if appointment_id is None:
            return _failure(FailureKind.APPOINTMENT_NOT_FOUND, CANCEL_FAILURE_MESSAGES)

        reason = params.get('reason')
        with self._mutation_lock, self.slots.transaction():
            try:
                appointment = self.appointments.cancel(appointment_id, str(reason) if reason else None)
            except AppointmentAlreadyCancelled:
                appointment = self.appointments.get_by_id(appointment_id)
                logger.info('Appointment %s was already cancelled', appointment_id)
                return self._cancelled_result(appointment, already_cancelled=True)
            except SchedulingError as exc:
                return _failure(exc.kind, CANCEL_FAILURE_MESSAGES)

            self.slots.release(*appointment.slot_key)

        return self._cancelled_result(appointment)

    def _cancelled_result(self, appointment: Appointment, already_cancelled: bool = False) -> dict:
        display = f'{format_date_for_display(appointment.date)} at {format_time_for_display(appointment.time)}'
        if already_cancelled:
            message = f'Your appointment for {display} is already cancelled.'
        else:
            message = f"I've cancelled your appointment for {display}."
        message += ' Would you like to schedule a new appointment?'

        return {
            'success': True,
            'message': message,
            'appointment': {
                'id': appointment.id,
                'status': appointment.status,
            },
        }

    # ------------------------------------------------------------------
    # Dashboard reads
    # ------------------------------------------------------------------

    def list_appointments(self) -> list[dict]:
        return [appointment.to_dict() for appointment in self.appointments.list_active()]

    def list_available_slots(self, slot_date: str | None = None) -> list[dict]:
        return [slot.to_dict() for slot in self.slots.list_available(slot_date)]

    def stats(self) -> dict:
        return {
            'totalAppointments': len(self.appointments.list_active()),
            'availableSlots': len(self.slots.list_available()),
        }

    @staticmethod
    def _filter_by_band(slots: list[Slot], band: str | None) -> list[Slot]:
        if band is None:
            return slots
        return [slot for slot in slots if is_in_time_band(slot.time, band)]

    @staticmethod
    def _narrow_by_name(appointments: list[Appointment], patient_name) -> list[Appointment]:
        wanted = str(patient_name or '').strip().lower()
        if not wanted:
            return appointments
        matching = [appointment for appointment in appointments if wanted in appointment.patient_name.lower()]
        return matching or appointments
