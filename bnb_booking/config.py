import json
import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

SCHEMA = "bnb"
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

SITE_URL = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")
CURRENCY = os.getenv("CURRENCY", "EUR").upper()

# Booking policy
FREE_CANCELLATION_DAYS = int(os.getenv("FREE_CANCELLATION_DAYS", "7"))
LATE_CHANGE_PENALTY_PERCENT = int(os.getenv("LATE_CHANGE_PENALTY_PERCENT", "50"))
DEPOSIT_PERCENT = int(os.getenv("DEPOSIT_PERCENT", "30"))

# Unpaid site bookings hold their dates for this long
PENDING_HOLD_MINUTES = int(os.getenv("PENDING_HOLD_MINUTES", "30"))

# Reminder emails go out this many days before check-in
REMINDER_DAYS_BEFORE: list[int] = [
    int(days) for days in os.getenv("REMINDER_DAYS_BEFORE", "30,7").split(",") if days.strip()
]

# Room catalogue, amounts in minor currency units
_DEFAULT_ROOMS = {
    "1": {
        "name": "Camera Familiare con Balcone",
        "max_guests": 4,
        "base_occupancy": 2,
        "nightly_rate": 18000,
        "extra_guest_rate": 2000,
    },
    "2": {
        "name": "Camera Matrimoniale con Vasca Idromassaggio",
        "max_guests": 2,
        "base_occupancy": 2,
        "nightly_rate": 15000,
        "extra_guest_rate": 0,
    },
}
ROOMS: dict[str, dict] = json.loads(os.getenv("ROOMS_JSON") or "null") or _DEFAULT_ROOMS

# Channel room id -> local room id
BEDS24_ROOM_MAP: dict[str, str] = json.loads(os.getenv("BEDS24_ROOM_MAP") or "{}")
SMOOBU_ROOM_MAP: dict[str, str] = json.loads(os.getenv("SMOOBU_ROOM_MAP") or "{}")

SYNC_LOOKAHEAD_DAYS = int(os.getenv("SYNC_LOOKAHEAD_DAYS", "365"))

# Channel managers synced by the cron job; the primary one receives site blocks
CHANNEL_MANAGERS: list[str] = [
    name.strip().lower()
    for name in os.getenv("CHANNEL_MANAGERS", "smoobu").split(",")
    if name.strip()
]
PRIMARY_CHANNEL = os.getenv("PRIMARY_CHANNEL", CHANNEL_MANAGERS[0] if CHANNEL_MANAGERS else "")

BEDS24_API_URL = os.getenv("BEDS24_API_URL", "https://beds24.com/api/v2")
BEDS24_READ_TOKEN = os.getenv("BEDS24_READ_TOKEN")
BEDS24_REFRESH_TOKEN = os.getenv("BEDS24_REFRESH_TOKEN")

SMOOBU_API_URL = os.getenv("SMOOBU_API_URL", "https://login.smoobu.com/api")
SMOOBU_API_KEY = os.getenv("SMOOBU_API_KEY")

# Payments
PAYMENT_PROVIDER = os.getenv("PAYMENT_PROVIDER", "stripe").lower()
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
PAYMENT_CALLBACK_SECRET = os.getenv("PAYMENT_CALLBACK_SECRET")

# Email
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "prenotazioni@example.com")
# New site bookings are reported here; defaults to the sender mailbox
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", EMAIL_FROM)
