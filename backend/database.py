from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.core import config


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # FastAPI runs sync routes in a thread pool.
        connect_args["check_same_thread"] = False
    if ":memory:" in database_url:
        # One shared connection, otherwise every thread sees its own empty database.
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_engines: set[Engine] = set()


def ensure_scheduling_schema(bind: Engine | None = None) -> None:
    bind = bind or engine

    if bind in _checked_engines:
        return

    with _schema_lock:
        if bind in _checked_engines:
            return

        # Importing the models registers their tables on Base.metadata.
        from backend.models import appointment, slot  # noqa: F401

        Base.metadata.create_all(bind=bind)

        existing_columns = {column['name'] for column in inspect(bind).get_columns('appointments')}
        migration_steps = [
            ('cancel_reason', 'ALTER TABLE appointments ADD COLUMN cancel_reason VARCHAR'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_slots_available_date ON slots(available, date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_status_phone ON appointments(status, phone)')
            )

        _checked_engines.add(bind)
