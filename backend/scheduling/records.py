"""Domain records shared by every store implementation."""

from dataclasses import asdict, dataclass
from datetime import datetime

STATUS_CONFIRMED = 'confirmed'
STATUS_CANCELLED = 'cancelled'
DEFAULT_APPOINTMENT_TYPE = 'consultation'


@dataclass(frozen=True)
class Slot:
    """A bookable (date, time) unit. Dates are ISO strings, times are HH:MM."""

    date: str
    time: str
    available: bool = True

    @property
    def key(self) -> tuple[str, str]:
        return self.date, self.time

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Appointment:
    id: int
    patient_name: str
    phone: str
    date: str
    time: str
    email: str = ''
    type: str = DEFAULT_APPOINTMENT_TYPE
    is_new_patient: bool = False
    status: str = STATUS_CONFIRMED
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None

    @property
    def slot_key(self) -> tuple[str, str]:
        return self.date, self.time

    @property
    def is_cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED

    def to_dict(self) -> dict:
        """Camel-cased payload in the shape the dashboard reads."""
        return {
            'id': self.id,
            'patientName': self.patient_name,
            'phone': self.phone,
            'email': self.email,
            'date': self.date,
            'time': self.time,
            'type': self.type,
            'isNewPatient': self.is_new_patient,
            'status': self.status,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
            'cancelledAt': _isoformat(self.cancelled_at),
        }


@dataclass(frozen=True)
class NewAppointment:
    patient_name: str
    phone: str
    date: str
    time: str
    email: str = ''
    type: str = DEFAULT_APPOINTMENT_TYPE
    is_new_patient: bool = False


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
