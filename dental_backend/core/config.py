import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL")

CORS_ORIGINS = _get_list(
    os.getenv("CORS_ORIGINS"),
    default=["http://localhost:3000", "http://localhost:3001"],
)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

SLOT_INCREMENT_MINUTES = int(os.getenv("SLOT_INCREMENT_MINUTES", "30"))
MAX_RESCHEDULES = int(os.getenv("MAX_RESCHEDULES", "2"))

NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "5"))

APPOINTMENT_RESERVATION_FEE = float(os.getenv("APPOINTMENT_RESERVATION_FEE", "500"))
TAX_RATE = float(os.getenv("TAX_RATE", "0.18"))
CONVENIENCE_FEE = float(os.getenv("CONVENIENCE_FEE", "0"))
ENABLE_SERVICE_PAYMENT_ONLINE = _get_bool(os.getenv("ENABLE_SERVICE_PAYMENT_ONLINE"), default=False)


@dataclass(frozen=True)
class BookingConfig:
    """Scheduling knobs handed to the availability and booking code."""

    slot_increment_minutes: int = 30
    max_reschedules: int = 2


@dataclass(frozen=True)
class PaymentConfig:
    reservation_fee: float = 500.0
    tax_rate: float = 0.18
    convenience_fee: float = 0.0
    enable_service_payment_online: bool = False


def get_booking_config() -> BookingConfig:
    return BookingConfig(
        slot_increment_minutes=SLOT_INCREMENT_MINUTES,
        max_reschedules=MAX_RESCHEDULES,
    )


def get_payment_config() -> PaymentConfig:
    return PaymentConfig(
        reservation_fee=APPOINTMENT_RESERVATION_FEE,
        tax_rate=TAX_RATE,
        convenience_fee=CONVENIENCE_FEE,
        enable_service_payment_online=ENABLE_SERVICE_PAYMENT_ONLINE,
    )


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_INCREMENT_MINUTES <= 0:
        raise RuntimeError("SLOT_INCREMENT_MINUTES must be a positive number of minutes.")
    if MAX_RESCHEDULES < 0:
        raise RuntimeError("MAX_RESCHEDULES cannot be negative.")
