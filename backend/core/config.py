import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


APP_ENV = os.getenv("APP_ENV", "development")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV.lower() == "development" else "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./receptionist.db")
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").strip().lower()
SEED_DEMO_DATA = _get_bool(os.getenv("SEED_DEMO_DATA"), default=True)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), default=["*"])

VAPI_WEBHOOK_SECRET = os.getenv("VAPI_WEBHOOK_SECRET", "")

CALL_LOG_LIMIT = int(os.getenv("CALL_LOG_LIMIT", "50"))

SUPPORTED_STORE_BACKENDS = {"memory", "sql"}

CLINIC_INFO = {
    "name": os.getenv("CLINIC_NAME", "SmileCare Orthodontics"),
    "phone": os.getenv("CLINIC_PHONE", "(555) 123-4567"),
    "email": os.getenv("CLINIC_EMAIL", "hello@smilecareortho.com"),
    "address": os.getenv("CLINIC_ADDRESS", "123 Dental Street, Healthcare City, HC 12345"),
    "hours": {
        "monday": "8:00 AM - 5:00 PM",
        "tuesday": "8:00 AM - 5:00 PM",
        "wednesday": "8:00 AM - 5:00 PM",
        "thursday": "8:00 AM - 5:00 PM",
        "friday": "8:00 AM - 3:00 PM",
        "saturday": "Closed",
        "sunday": "Closed",
    },
    "pricing": {
        "consultation": "$150 (FREE for new patients)",
        "braces": "$3,500 - $7,000",
        "invisalign": "$4,000 - $8,000",
        "retainers": "$300 - $600",
    },
    # Staff contact for escalations
    "staff_phone": os.getenv("CLINIC_STAFF_PHONE", "(555) 123-4567"),
}


def validate_runtime_config() -> None:
    if STORE_BACKEND not in SUPPORTED_STORE_BACKENDS:
        raise RuntimeError(
            f"STORE_BACKEND must be one of {sorted(SUPPORTED_STORE_BACKENDS)}, got {STORE_BACKEND!r}."
        )
    if APP_ENV.lower() == "production" and not VAPI_WEBHOOK_SECRET:
        raise RuntimeError("VAPI_WEBHOOK_SECRET must be set in production.")
