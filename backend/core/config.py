import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dorm2door.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

# Used when a provider has no availability document or an unusable one.
# End hour is exclusive: 8..20 yields 8:00 AM through 7:00 PM.
DEFAULT_OPEN_HOUR = _get_int(os.getenv("DEFAULT_OPEN_HOUR"), 8)
DEFAULT_CLOSE_HOUR = _get_int(os.getenv("DEFAULT_CLOSE_HOUR"), 20)

# IANA zone that slot wall-clock times are in. Unset means the server clock.
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE") or None

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if not 0 <= DEFAULT_OPEN_HOUR < DEFAULT_CLOSE_HOUR <= 24:
        raise RuntimeError("DEFAULT_OPEN_HOUR must precede DEFAULT_CLOSE_HOUR within 0..24.")
    if BOOKING_TIMEZONE is not None:
        try:
            ZoneInfo(BOOKING_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise RuntimeError(f"BOOKING_TIMEZONE {BOOKING_TIMEZONE!r} is not a known time zone.") from exc
