"""Amounts due when a patient reserves an appointment.

Only the reservation fee is collected online unless online service payment
is switched on, in which case the service price and its tax are added.
"""

from dental_backend.core.config import PaymentConfig


def _money(amount: float) -> float:
    return round(amount, 2)


def payment_breakdown(service_price: float, config: PaymentConfig) -> dict:
    if service_price < 0:
        raise ValueError('Service price cannot be negative.')

    reservation_fee = config.reservation_fee
    reservation_tax = reservation_fee * config.tax_rate
    service_tax = service_price * config.tax_rate

    total_due = reservation_fee + reservation_tax + config.convenience_fee
    if config.enable_service_payment_online:
        total_due += service_price + service_tax

    return {
        'reservation_fee': _money(reservation_fee),
        'reservation_tax': _money(reservation_tax),
        'reservation_total': _money(reservation_fee + reservation_tax),
        'service_price': _money(service_price),
        'service_tax': _money(service_tax),
        'service_total': _money(service_price + service_tax),
        'convenience_fee': _money(config.convenience_fee),
        'total_due_online': _money(total_due),
        'service_payment_online': config.enable_service_payment_online,
    }
