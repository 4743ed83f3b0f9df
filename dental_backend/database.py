from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from dental_backend.core import config


engine = create_engine(config.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_schedule_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema(bind=None) -> None:
    """Backfill columns and indexes that older appointment tables lack."""
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(bind)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('confirmation_code', 'ALTER TABLE appointments ADD COLUMN confirmation_code VARCHAR(8)'),
            ('reschedule_count', 'ALTER TABLE appointments ADD COLUMN reschedule_count INTEGER DEFAULT 0'),
            ('max_reschedules', 'ALTER TABLE appointments ADD COLUMN max_reschedules INTEGER DEFAULT 2'),
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
            ('admin_notes', 'ALTER TABLE appointments ADD COLUMN admin_notes VARCHAR'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_provider_day_status '
                    'ON appointments(provider_id, appointment_date, status)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_email ON appointments(patient_email)')
            )

        _appointment_schema_checked = True


def ensure_schedule_schema(bind=None) -> None:
    global _schedule_schema_checked

    if _schedule_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _schedule_schema_checked:
            return

        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        with bind.begin() as connection:
            if 'provider_schedules' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('provider_schedules')}
                for column_name in ('break_start_time', 'break_end_time'):
                    if column_name not in existing_columns:
                        connection.execute(
                            text(f'ALTER TABLE provider_schedules ADD COLUMN {column_name} VARCHAR(5)')
                        )
            if 'time_blocks' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_time_blocks_provider_day ON time_blocks(provider_id, block_date)')
                )

        _schedule_schema_checked = True
