from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.core.config import PaymentConfig, get_payment_config
from dental_backend.database import get_db
from dental_backend.models.provider import DentalService
from dental_backend.payments import payment_breakdown
from dental_backend.routes.common import DATABASE_UNAVAILABLE_DETAIL

router = APIRouter(tags=['payments'])


@router.get('/breakdown')
def get_payment_breakdown(
    service_id: int = Query(...),
    db: Session = Depends(get_db),
    payment_config: PaymentConfig = Depends(get_payment_config),
):
    try:
        service = db.query(DentalService).filter(DentalService.id == service_id).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')

    return {'service_id': service.id, **payment_breakdown(service.price, payment_config)}
