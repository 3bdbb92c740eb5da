"""Demo slot catalog and appointments.

Taken slots are exactly the slots of the seeded appointments.
"""

import logging

from backend.scheduling.records import NewAppointment
from backend.scheduling.stores import AppointmentStore, SlotStore

logger = logging.getLogger(__name__)

SEED_SLOTS = [
    ('2026-02-18', '09:00'),
    ('2026-02-18', '10:00'),
    ('2026-02-18', '11:00'),
    ('2026-02-18', '14:00'),
    ('2026-02-18', '15:00'),
    ('2026-02-19', '09:00'),
    ('2026-02-19', '10:00'),
    ('2026-02-19', '13:00'),
    ('2026-02-20', '09:00'),
    ('2026-02-20', '14:00'),
]

SEED_APPOINTMENTS = [
    NewAppointment(
        patient_name='John Doe',
        phone='555-010-0101',
        email='john@example.com',
        date='2026-02-18',
        time='11:00',
        type='consultation',
    ),
    NewAppointment(
        patient_name='Jane Smith',
        phone='555-010-0102',
        email='jane@example.com',
        date='2026-02-20',
        time='14:00',
        type='adjustment',
    ),
]


def seed_demo_data(slot_store: SlotStore, appointment_store: AppointmentStore) -> None:
    if slot_store.list_all():
        logger.info('Slot catalog already populated, skipping demo seed')
        return

    for slot_date, slot_time in SEED_SLOTS:
        slot_store.add(slot_date, slot_time)

    for appointment in SEED_APPOINTMENTS:
        with slot_store.transaction():
            slot_store.reserve(appointment.date, appointment.time)
            appointment_store.create(appointment)

    logger.info(
        'Seeded %d slots and %d appointments',
        len(SEED_SLOTS),
        len(SEED_APPOINTMENTS),
    )
