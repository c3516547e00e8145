from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

SLOT_UNIQUE_INDEX_NAME = 'uq_appointments_provider_slot'

_schema_lock = Lock()
_provider_schema_checked = False
_appointment_schema_checked = False


def ensure_provider_schema() -> None:
    global _provider_schema_checked

    if _provider_schema_checked:
        return

    with _schema_lock:
        if _provider_schema_checked:
            return

        inspector = inspect(engine)

        if 'providers' not in inspector.get_table_names():
            _provider_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('providers')}
        migration_steps = [
            ('availability', 'ALTER TABLE providers ADD COLUMN availability JSON'),
            ('location', 'ALTER TABLE providers ADD COLUMN location VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))

        _provider_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('service_id', 'ALTER TABLE appointments ADD COLUMN service_id INTEGER'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            # At most one non-cancelled appointment per provider per exact start time.
            connection.execute(
                text(
                    f'CREATE UNIQUE INDEX IF NOT EXISTS {SLOT_UNIQUE_INDEX_NAME} '
                    "ON appointments(provider_id, scheduled_at) WHERE status <> 'cancelled'"
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_consumer_scheduled ON appointments(consumer_id, scheduled_at)')
            )

        _appointment_schema_checked = True
