import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'smile-dental-test-signing-key-0123456789')

from calendar_days import MONDAY  # noqa: E402
from dental_backend.database import Base  # noqa: E402
from dental_backend.models.appointment import Appointment  # noqa: E402
from dental_backend.models.provider import DentalService, Provider  # noqa: E402
from dental_backend.models.schedule import ScheduleEntry, TimeBlock  # noqa: E402
from dental_backend.models.user import User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def provider(db):
    dentist = Provider(name='Dr. Asha Rao', specialty='General Dentistry', email='asha@smiledental.test')
    db.add(dentist)
    db.commit()
    db.refresh(dentist)
    return dentist


@pytest.fixture
def cleaning_service(db):
    service = DentalService(name='Teeth Cleaning', category='general', duration_minutes=60, price=1500)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def admin_user(db):
    admin = User(email='frontdesk@smiledental.test', full_name='Front Desk', role='admin')
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def add_schedule(db):
    def _add(provider_id, day_of_week=1, start_time='09:00', end_time='17:00',
             break_start_time='12:00', break_end_time='13:00', is_available=True):
        entry = ScheduleEntry(
            provider_id=provider_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            break_start_time=break_start_time,
            break_end_time=break_end_time,
            is_available=is_available,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _add


@pytest.fixture
def add_appointment(db):
    def _add(provider_id, start_time='10:00', end_time='11:00', status='confirmed',
             appointment_date=MONDAY, patient_email='patient@example.com', **fields):
        appointment = Appointment(
            provider_id=provider_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            patient_name=fields.pop('patient_name', 'Priya Sharma'),
            patient_email=patient_email,
            service_duration=fields.pop('service_duration', 60),
            reschedule_count=fields.pop('reschedule_count', 0),
            max_reschedules=fields.pop('max_reschedules', 2),
            **fields,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add


@pytest.fixture
def add_time_block(db):
    def _add(provider_id, start_time, end_time, block_date=MONDAY, reason='Staff meeting'):
        block = TimeBlock(
            provider_id=provider_id,
            block_date=block_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        db.add(block)
        db.commit()
        db.refresh(block)
        return block

    return _add
