"""Post-commit appointment notifications.

Events are POSTed as JSON to a webhook owned by the messaging service that
sends the actual email, SMS and push messages. Delivery failures are logged
and reported to the caller; they never undo the write that triggered them.
"""

import logging
from typing import Optional

import httpx

from dental_backend.core import config
from dental_backend.models.appointment import Appointment

logger = logging.getLogger(__name__)

APPOINTMENT_BOOKED = 'appointment.booked'
APPOINTMENT_RESCHEDULED = 'appointment.rescheduled'
APPOINTMENT_CANCELLED = 'appointment.cancelled'
APPOINTMENT_STATUS_CHANGED = 'appointment.status_changed'


def appointment_payload(appointment: Appointment) -> dict:
    return {
        'id': appointment.id,
        'confirmation_code': appointment.confirmation_code,
        'patient_name': appointment.patient_name,
        'patient_email': appointment.patient_email,
        'patient_phone': appointment.patient_phone,
        'provider_id': appointment.provider_id,
        'service_id': appointment.service_id,
        'appointment_date': appointment.appointment_date.isoformat(),
        'start_time': appointment.start_time,
        'end_time': appointment.end_time,
        'status': appointment.status,
        'reschedule_count': appointment.reschedule_count,
    }


class NotificationDispatcher:
    def __init__(self, webhook_url: str = '', timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._client = client

    def send(self, event: str, appointment: Appointment, extra: Optional[dict] = None) -> bool:
        """Deliver one event. Returns whether the webhook accepted it."""
        if not self.webhook_url:
            logger.info('No notification webhook configured; skipping %s for appointment %s', event, appointment.id)
            return False

        body = {'event': event, 'appointment': appointment_payload(appointment)}
        if extra:
            body['details'] = extra

        try:
            if self._client is not None:
                response = self._client.post(self.webhook_url, json=body, timeout=self.timeout)
            else:
                response = httpx.post(self.webhook_url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL):
            logger.exception('Failed to deliver %s for appointment %s', event, appointment.id)
            return False

        logger.info('Delivered %s for appointment %s', event, appointment.id)
        return True


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(
        webhook_url=config.NOTIFICATION_WEBHOOK_URL,
        timeout=config.NOTIFICATION_TIMEOUT_SECONDS,
    )
