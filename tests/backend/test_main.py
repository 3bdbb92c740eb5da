import pytest
from fastapi.testclient import TestClient

from backend.core import config
from backend.main import app, build_stores
from backend.scheduling.sql_stores import SqlAppointmentStore, SqlSlotStore
from backend.scheduling.stores import InMemoryAppointmentStore, InMemorySlotStore


def test_build_stores_selects_backend() -> None:
    slot_store, appointment_store = build_stores('memory')
    assert isinstance(slot_store, InMemorySlotStore)
    assert isinstance(appointment_store, InMemoryAppointmentStore)

    slot_store, appointment_store = build_stores('sql')
    assert isinstance(slot_store, SqlSlotStore)
    assert isinstance(appointment_store, SqlAppointmentStore)


def test_startup_seeds_demo_catalog(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'STORE_BACKEND', 'memory')
    monkeypatch.setattr(config, 'SEED_DEMO_DATA', True)

    with TestClient(app) as client:
        stats = client.get('/api/dashboard/stats').json()['stats']
        root = client.get('/').json()

    assert stats['totalAppointments'] == 2
    assert stats['availableSlots'] == 8
    assert root['clinic'] == config.CLINIC_INFO['name']


def test_validate_runtime_config_rejects_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'STORE_BACKEND', 'redis')

    with pytest.raises(RuntimeError):
        config.validate_runtime_config()
