import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dispatch.sqlite3")

# Public URL of the application (used in email call-to-action links)
APP_URL = os.getenv("APP_URL", "https://esil-events.vercel.app")

# Business rules
MAX_FORFEIT = float(os.getenv("MAX_FORFEIT", "10000"))
SESSION_INIT_MAX_ATTEMPTS = int(os.getenv("SESSION_INIT_MAX_ATTEMPTS", "3"))

# Realtime change feed: "local" (single process) or "redis" (fan-out between workers)
REALTIME_BACKEND = os.getenv("REALTIME_BACKEND", "local").lower()

# Redis (realtime fan-out and geocoding cache)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# SMTP Configuration (preferred transport when SMTP_HOST is set)
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_FROM = os.getenv("SMTP_FROM", "noreply@esil-events.com")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Esil-events")

# Serverless email function (fallback when no SMTP server is configured)
EMAIL_FUNCTION_URL = os.getenv("EMAIL_FUNCTION_URL")
EMAIL_FUNCTION_KEY = os.getenv("EMAIL_FUNCTION_KEY")

# Resend Email Configuration (last resort)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")

# Nominatim geocoding
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "EsilDispatch/1.0")
NOMINATIM_COUNTRY_CODES = os.getenv("NOMINATIM_COUNTRY_CODES", "fr")
GEOCODING_CACHE_SECONDS = int(os.getenv("GEOCODING_CACHE_SECONDS", "3600"))

# Timezone used when formatting mission dates in notifications
DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "Europe/Paris")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "https://esil-events.vercel.app,http://localhost:5173"
).split(",")
