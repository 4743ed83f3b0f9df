import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.auth.dependencies import require_admin
from dental_backend.core.errors import ProviderNotFound, SchedulingError
from dental_backend.database import get_db
from dental_backend.models.provider import Provider
from dental_backend.models.schedule import ScheduleEntry, TimeBlock
from dental_backend.models.user import User
from dental_backend.routes.common import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready, to_http_exception
from dental_backend.scheduling.records import validate_working_hours
from dental_backend.scheduling.repository import get_schedule_entry
from dental_backend.scheduling.times import parse_end_time, parse_time

logger = logging.getLogger(__name__)

router = APIRouter(tags=['schedules'])

MAX_BLOCK_REASON_LENGTH = 200


def _normalize_time(value: str | None, allow_midnight_end: bool = False) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if allow_midnight_end:
        parse_end_time(normalized)
    else:
        parse_time(normalized)
    return normalized


class ScheduleEntryRequest(BaseModel):
    start_time: str
    end_time: str
    break_start_time: str | None = None
    break_end_time: str | None = None
    is_available: bool = True

    @field_validator('start_time', 'break_start_time')
    @classmethod
    def validate_start_times(cls, value: str | None) -> str | None:
        return _normalize_time(value)

    @field_validator('end_time', 'break_end_time')
    @classmethod
    def validate_end_times(cls, value: str | None) -> str | None:
        return _normalize_time(value, allow_midnight_end=True)

    @model_validator(mode='after')
    def validate_window(self) -> 'ScheduleEntryRequest':
        validate_working_hours(
            parse_time(self.start_time),
            parse_end_time(self.end_time),
            parse_time(self.break_start_time) if self.break_start_time else None,
            parse_end_time(self.break_end_time) if self.break_end_time else None,
        )
        return self


class ScheduleEntryResponse(BaseModel):
    id: int
    provider_id: int
    day_of_week: int
    start_time: str
    end_time: str
    break_start_time: str | None = None
    break_end_time: str | None = None
    is_available: bool

    class Config:
        from_attributes = True


class CreateTimeBlockRequest(BaseModel):
    block_date: date
    start_time: str
    end_time: str
    reason: str | None = None

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _normalize_time(value)

    @field_validator('end_time')
    @classmethod
    def validate_end_time(cls, value: str) -> str:
        return _normalize_time(value, allow_midnight_end=True)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        if len(value.strip()) > MAX_BLOCK_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_BLOCK_REASON_LENGTH} characters or fewer.')
        return value.strip()

    @model_validator(mode='after')
    def validate_window(self) -> 'CreateTimeBlockRequest':
        if parse_time(self.start_time) >= parse_end_time(self.end_time):
            raise ValueError('A time block must start before it ends.')
        return self


class TimeBlockResponse(BaseModel):
    id: int
    provider_id: int
    block_date: date
    start_time: str
    end_time: str
    reason: str | None = None

    class Config:
        from_attributes = True


def _require_provider(db: Session, provider_id: int) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if provider is None:
        raise ProviderNotFound(f'Provider {provider_id} not found.')
    return provider


@router.get('/providers/{provider_id}', response_model=list[ScheduleEntryResponse])
def list_provider_schedule(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return db.query(ScheduleEntry).filter(
            ScheduleEntry.provider_id == provider_id,
        ).order_by(ScheduleEntry.day_of_week.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.put('/providers/{provider_id}/days/{day_of_week}', response_model=ScheduleEntryResponse)
def set_provider_schedule_day(
    provider_id: int,
    data: ScheduleEntryRequest,
    day_of_week: int = Path(..., ge=0, le=6),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create or replace the provider's hours for one weekday (0 = Sunday)."""
    ensure_database_ready()

    try:
        _require_provider(db, provider_id)

        entry = db.query(ScheduleEntry).filter(
            ScheduleEntry.provider_id == provider_id,
            ScheduleEntry.day_of_week == day_of_week,
        ).first()
        if entry is None:
            entry = ScheduleEntry(provider_id=provider_id, day_of_week=day_of_week)
            db.add(entry)

        entry.start_time = data.start_time
        entry.end_time = data.end_time
        entry.break_start_time = data.break_start_time
        entry.break_end_time = data.break_end_time
        entry.is_available = data.is_available

        db.commit()
        db.refresh(entry)
    except SQLAlchemyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s set weekday %s hours for provider %s', admin.email, day_of_week, provider_id)
    return entry


@router.delete('/providers/{provider_id}/days/{day_of_week}', status_code=status.HTTP_204_NO_CONTENT)
def remove_provider_schedule_day(
    provider_id: int,
    day_of_week: int = Path(..., ge=0, le=6),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        entry = get_schedule_entry(db, provider_id, day_of_week)
        db.delete(entry)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s removed weekday %s hours for provider %s', admin.email, day_of_week, provider_id)


@router.post(
    '/providers/{provider_id}/blocks',
    response_model=TimeBlockResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_time_block(
    provider_id: int,
    data: CreateTimeBlockRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Block part of a day. Existing appointments in the window are left alone."""
    ensure_database_ready()

    try:
        _require_provider(db, provider_id)

        block = TimeBlock(
            provider_id=provider_id,
            block_date=data.block_date,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
        db.add(block)
        db.commit()
        db.refresh(block)
    except SQLAlchemyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s blocked provider %s on %s', admin.email, provider_id, data.block_date.isoformat())
    return block


@router.get('/providers/{provider_id}/blocks', response_model=list[TimeBlockResponse])
def list_time_blocks(
    provider_id: int,
    block_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(TimeBlock).filter(TimeBlock.provider_id == provider_id)
        if block_date is not None:
            query = query.filter(TimeBlock.block_date == block_date)
        return query.order_by(TimeBlock.block_date.asc(), TimeBlock.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/blocks/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_time_block(
    block_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        block = db.query(TimeBlock).filter(TimeBlock.id == block_id).first()
        if block is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Time block not found.')

        db.delete(block)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc

    logger.info('Admin %s removed time block %s', admin.email, block_id)
