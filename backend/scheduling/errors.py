"""Failure kinds raised by the scheduling stores."""

from enum import Enum


class FailureKind(str, Enum):
    SLOT_NOT_AVAILABLE = 'slot_not_available'
    APPOINTMENT_NOT_FOUND = 'appointment_not_found'
    APPOINTMENT_ALREADY_CANCELLED = 'appointment_already_cancelled'


class SchedulingError(Exception):
    """Expected outcome of a store operation that the caller must translate."""

    kind: FailureKind

    def __init__(self, detail: str = '') -> None:
        super().__init__(detail or self.kind.value)
        self.detail = detail


class SlotNotAvailable(SchedulingError):
    kind = FailureKind.SLOT_NOT_AVAILABLE


class AppointmentNotFound(SchedulingError):
    kind = FailureKind.APPOINTMENT_NOT_FOUND


class AppointmentAlreadyCancelled(SchedulingError):
    kind = FailureKind.APPOINTMENT_ALREADY_CANCELLED
