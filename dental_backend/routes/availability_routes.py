from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.core.config import BookingConfig, get_booking_config
from dental_backend.core.errors import SchedulingError
from dental_backend.database import get_db
from dental_backend.models.provider import DentalService
from dental_backend.routes.common import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready, to_http_exception
from dental_backend.scheduling.availability import get_available_slots
from dental_backend.scheduling.booking import resolve_duration
from dental_backend.scheduling.conflicts import has_conflict
from dental_backend.scheduling.times import parse_time

router = APIRouter(tags=['availability'])


class TimeSlotResponse(BaseModel):
    start_time: str
    end_time: str
    duration_minutes: int


class ConflictResponse(BaseModel):
    provider_id: int
    date: date
    start_time: str
    duration_minutes: int
    has_conflict: bool


class ServiceOptionResponse(BaseModel):
    id: int
    name: str
    category: str | None = None
    duration_minutes: int
    price: float

    class Config:
        from_attributes = True


@router.get('/providers/{provider_id}/slots', response_model=list[TimeSlotResponse])
def list_available_slots(
    provider_id: int,
    date: date = Query(...),
    duration_minutes: int | None = Query(default=None, ge=1, le=480),
    service_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    booking_config: BookingConfig = Depends(get_booking_config),
):
    ensure_database_ready()

    try:
        duration = resolve_duration(db, service_id, duration_minutes)
        slots = get_available_slots(db, provider_id, date, duration, config=booking_config)
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    return [
        TimeSlotResponse(start_time=slot.start_time, end_time=slot.end_time, duration_minutes=slot.duration_minutes)
        for slot in slots
    ]


@router.get('/providers/{provider_id}/conflict', response_model=ConflictResponse)
def check_conflict(
    provider_id: int,
    date: date = Query(...),
    start_time: str = Query(...),
    duration_minutes: int = Query(..., ge=1, le=480),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conflict = has_conflict(db, provider_id, date, parse_time(start_time), duration_minutes)
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    return ConflictResponse(
        provider_id=provider_id,
        date=date,
        start_time=start_time,
        duration_minutes=duration_minutes,
        has_conflict=conflict,
    )


@router.get('/services', response_model=list[ServiceOptionResponse])
def list_services(db: Session = Depends(get_db)):
    try:
        return db.query(DentalService).filter(
            DentalService.is_active.is_(True),
        ).order_by(DentalService.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
