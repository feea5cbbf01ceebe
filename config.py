import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int_tuple(name: str, default: str) -> tuple:
    raw = os.getenv(name, default)
    return tuple(sorted({int(part) for part in raw.split(",") if part.strip()}))


# Database configuration
DB_SERVER = os.getenv("DB_SERVER")
DB_PORT = os.getenv("DB_PORT", "1433")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")

# DATABASE_URL wins when set (tests and local runs use sqlite)
DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"mssql+pymssql://{quote_plus(DB_USER or '')}:{quote_plus(DB_PASS or '')}"
    f"@{DB_SERVER}:{DB_PORT}/{DB_NAME}"
)

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "1800"))
SQL_ECHO = _env_bool("SQL_ECHO", "false")

# Transient connection faults are retried this many times in total
DB_RETRY_ATTEMPTS = int(os.getenv("DB_RETRY_ATTEMPTS", "3"))
DB_RETRY_BACKOFF = float(os.getenv("DB_RETRY_BACKOFF", "0.2"))

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

CORS_ORIGINS = [origin for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "10000"))

# Session block policy
SESSION_PACK_SIZES = _env_int_tuple("SESSION_PACK_SIZES", "10,20,30,40")
DEFAULT_PAYMENT_METHOD = os.getenv("DEFAULT_PAYMENT_METHOD", "cash")
ALLOW_MULTIPLE_PENDING_BLOCKS = _env_bool("ALLOW_MULTIPLE_PENDING_BLOCKS", "true")
LATE_CANCELLATION_HOURS = int(os.getenv("LATE_CANCELLATION_HOURS", "24"))
