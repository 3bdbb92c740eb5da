import pytest
from sqlalchemy.orm import sessionmaker

from backend.database import Base, build_engine, ensure_scheduling_schema
from backend.scheduling.errors import AppointmentAlreadyCancelled, AppointmentNotFound, SlotNotAvailable
from backend.scheduling.records import NewAppointment
from backend.scheduling.seed import seed_demo_data
from backend.scheduling.service import AppointmentService
from backend.scheduling.sql_stores import SqlAppointmentStore, SqlSlotStore, SqlUnitOfWork, build_sql_stores


@pytest.fixture
def session_factory():
    engine = build_engine('sqlite:///:memory:')
    ensure_scheduling_schema(engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield testing_session_local
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def slot_store(session_factory) -> SqlSlotStore:
    store = SqlSlotStore(SqlUnitOfWork(session_factory))
    store.add('2026-02-18', '14:00')
    store.add('2026-02-18', '09:00')
    store.add('2026-02-19', '10:00', available=False)
    return store


@pytest.fixture
def appointment_store(session_factory) -> SqlAppointmentStore:
    return SqlAppointmentStore(SqlUnitOfWork(session_factory))


def test_list_available_orders_by_date_and_time(slot_store: SqlSlotStore) -> None:
    assert [slot.key for slot in slot_store.list_available()] == [
        ('2026-02-18', '09:00'),
        ('2026-02-18', '14:00'),
    ]
    assert slot_store.list_available('2026-02-19') == []
    assert len(slot_store.list_all()) == 3


def test_reserve_is_conditional_on_availability(slot_store: SqlSlotStore) -> None:
    slot_store.reserve('2026-02-18', '09:00')

    with pytest.raises(SlotNotAvailable):
        slot_store.reserve('2026-02-18', '09:00')
    with pytest.raises(SlotNotAvailable):
        slot_store.reserve('2026-02-18', '08:00')

    assert [slot.time for slot in slot_store.list_available('2026-02-18')] == ['14:00']


def test_release_is_idempotent(slot_store: SqlSlotStore) -> None:
    slot_store.release('2026-02-19', '10:00')
    slot_store.release('2026-02-19', '10:00')
    slot_store.release('2030-01-01', '10:00')

    assert ('2026-02-19', '10:00') in {slot.key for slot in slot_store.list_available()}


def test_appointment_lifecycle(appointment_store: SqlAppointmentStore) -> None:
    created = appointment_store.create(
        NewAppointment(patient_name='Ann Lee', phone='555-010-1111', date='2026-02-18', time='09:00'),
    )

    assert created.status == 'confirmed'
    assert appointment_store.find_by_phone('555-010-1111')[0].id == created.id

    moved = appointment_store.reschedule(created.id, '2026-02-19', '10:00')
    assert (moved.date, moved.time) == ('2026-02-19', '10:00')
    assert moved.updated_at is not None

    cancelled = appointment_store.cancel(created.id, reason='moving away')
    assert cancelled.status == 'cancelled'
    assert cancelled.cancel_reason == 'moving away'
    assert appointment_store.find_by_phone('555-010-1111') == []
    assert appointment_store.list_active() == []

    with pytest.raises(AppointmentAlreadyCancelled):
        appointment_store.cancel(created.id)
    with pytest.raises(AppointmentNotFound):
        appointment_store.reschedule(created.id, '2026-02-18', '09:00')


def test_unknown_appointment_raises_not_found(appointment_store: SqlAppointmentStore) -> None:
    with pytest.raises(AppointmentNotFound):
        appointment_store.get_by_id(99)
    with pytest.raises(AppointmentNotFound):
        appointment_store.cancel(99)


def test_service_books_against_sql_stores(session_factory) -> None:
    slot_store, appointment_store = build_sql_stores(session_factory)
    seed_demo_data(slot_store, appointment_store)
    service = AppointmentService(slot_store, appointment_store)

    params = {'patientName': 'Ann', 'phone': '555-010-1111', 'date': '2026-02-18', 'time': '9am'}
    first = service.book_appointment(params)
    second = service.book_appointment({**params, 'patientName': 'Bea', 'phone': '555-010-2222'})

    assert first['success'] is True
    assert second['success'] is False
    assert 'just became unavailable' in second['message']
    assert service.stats() == {'totalAppointments': 3, 'availableSlots': 7}


class CallAborted(BaseException):
    pass


@pytest.fixture
def shared_database(tmp_path):
    """Two engines on one SQLite file: one runs the service, the other watches."""
    url = f'sqlite:///{tmp_path / "clinic.db"}'
    service_engine = build_engine(url)
    observer_engine = build_engine(url)
    ensure_scheduling_schema(service_engine)
    try:
        yield (
            sessionmaker(autocommit=False, autoflush=False, bind=service_engine),
            build_sql_stores(sessionmaker(autocommit=False, autoflush=False, bind=observer_engine)),
        )
    finally:
        service_engine.dispose()
        observer_engine.dispose()


def assert_committed_state_consistent(observer) -> None:
    slot_store, appointment_store = observer
    taken = {slot.key for slot in slot_store.list_all() if not slot.available}
    booked = [appointment.slot_key for appointment in appointment_store.list_active()]

    assert len(booked) == len(set(booked))
    assert taken == set(booked)


def test_aborted_booking_commits_nothing(shared_database) -> None:
    session_factory, observer = shared_database
    observer_slots, observer_appointments = observer
    seen_during_create = []

    class AbortingAppointmentStore(SqlAppointmentStore):
        def create(self, fields: NewAppointment):
            super().create(fields)
            seen_during_create.append([slot.time for slot in observer_slots.list_available('2026-02-18')])
            raise CallAborted()

    unit_of_work = SqlUnitOfWork(session_factory)
    slot_store = SqlSlotStore(unit_of_work)
    seed_demo_data(slot_store, SqlAppointmentStore(unit_of_work))
    appointment_store = AbortingAppointmentStore(unit_of_work)
    service = AppointmentService(slot_store, appointment_store)

    with pytest.raises(CallAborted):
        service.book_appointment(
            {'patientName': 'Ann', 'phone': '555-010-1111', 'date': '2026-02-18', 'time': '09:00'},
        )

    assert '09:00' in seen_during_create[0]
    assert '09:00' in [slot.time for slot in observer_slots.list_available('2026-02-18')]
    assert observer_appointments.find_by_phone('555-010-1111') == []
    assert_committed_state_consistent(observer)


def test_failed_reschedule_keeps_new_slot_free(shared_database) -> None:
    session_factory, observer = shared_database
    observer_slots, _ = observer

    class VanishingAppointmentStore(SqlAppointmentStore):
        def reschedule(self, appointment_id: int, new_date: str, new_time: str):
            raise AppointmentNotFound(f'Appointment {appointment_id} not found')

    unit_of_work = SqlUnitOfWork(session_factory)
    slot_store = SqlSlotStore(unit_of_work)
    seed_demo_data(slot_store, SqlAppointmentStore(unit_of_work))
    appointment_store = VanishingAppointmentStore(unit_of_work)
    service = AppointmentService(slot_store, appointment_store)

    result = service.reschedule_appointment({'appointmentId': 1, 'newDate': '2026-02-19', 'newTime': '09:00'})

    assert result['success'] is False
    assert result['reason'] == 'appointment_not_found'
    assert ('2026-02-19', '09:00') in {slot.key for slot in observer_slots.list_available()}
    assert_committed_state_consistent(observer)


def test_mutations_are_visible_to_other_connections(shared_database) -> None:
    session_factory, observer = shared_database
    slot_store, appointment_store = build_sql_stores(session_factory)
    seed_demo_data(slot_store, appointment_store)
    service = AppointmentService(slot_store, appointment_store)

    booked = service.book_appointment(
        {'patientName': 'Ann', 'phone': '555-010-1111', 'date': '2026-02-18', 'time': '09:00'},
    )
    assert_committed_state_consistent(observer)

    appointment_id = booked['appointment']['id']
    assert service.reschedule_appointment(
        {'appointmentId': appointment_id, 'newDate': '2026-02-19', 'newTime': '09:00'},
    )['success'] is True
    assert_committed_state_consistent(observer)

    assert service.cancel_appointment({'appointmentId': appointment_id})['success'] is True
    assert_committed_state_consistent(observer)
    assert observer[1].find_by_phone('555-010-1111') == []
