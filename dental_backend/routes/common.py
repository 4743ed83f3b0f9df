from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from dental_backend.core.errors import (
    DatabaseUnavailable,
    InvalidStatusTransition,
    RecordNotFound,
    RescheduleLimitReached,
    ScheduleNotFound,
    SchedulingError,
    SlotUnavailable,
)
from dental_backend.database import ensure_appointment_schema, ensure_schedule_schema

DATABASE_UNAVAILABLE_DETAIL = DatabaseUnavailable.user_message


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_schedule_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a scheduling failure onto the response the client should see."""
    if isinstance(exc, SlotUnavailable):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SlotUnavailable.user_message)
    if isinstance(exc, (RescheduleLimitReached, InvalidStatusTransition)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (RecordNotFound, ScheduleNotFound)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (DatabaseUnavailable, SQLAlchemyError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE_DETAIL)
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, SchedulingError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    raise TypeError(f'No HTTP mapping for {type(exc).__name__}')
