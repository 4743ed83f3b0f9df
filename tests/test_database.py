from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from dental_backend import database


def _legacy_engine():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE appointments ('
            'id INTEGER PRIMARY KEY, patient_name VARCHAR, patient_email VARCHAR, '
            'provider_id INTEGER, service_duration INTEGER, appointment_date DATE, '
            'start_time VARCHAR(5), end_time VARCHAR(5), status VARCHAR)'
        ))
        connection.execute(text(
            'CREATE TABLE provider_schedules ('
            'id INTEGER PRIMARY KEY, provider_id INTEGER, day_of_week INTEGER, '
            'start_time VARCHAR(5), end_time VARCHAR(5), is_available BOOLEAN)'
        ))
    return engine


def test_ensure_appointment_schema_backfills_missing_columns(monkeypatch) -> None:
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    engine = _legacy_engine()

    database.ensure_appointment_schema(bind=engine)

    inspector = inspect(engine)
    columns = {column['name'] for column in inspector.get_columns('appointments')}
    indexes = {index['name'] for index in inspector.get_indexes('appointments')}
    assert {'confirmation_code', 'reschedule_count', 'max_reschedules', 'cancelled_at'} <= columns
    assert 'idx_appointments_provider_day_status' in indexes
    assert database._appointment_schema_checked is True


def test_ensure_schedule_schema_adds_break_columns(monkeypatch) -> None:
    monkeypatch.setattr(database, '_schedule_schema_checked', False)
    engine = _legacy_engine()

    database.ensure_schedule_schema(bind=engine)

    columns = {column['name'] for column in inspect(engine).get_columns('provider_schedules')}
    assert {'break_start_time', 'break_end_time'} <= columns


def test_ensure_appointment_schema_runs_once(monkeypatch) -> None:
    monkeypatch.setattr(database, '_appointment_schema_checked', True)

    def fail(*args, **kwargs):
        raise AssertionError('schema should not be inspected again')

    monkeypatch.setattr(database, 'inspect', fail)

    database.ensure_appointment_schema()
