# salesdesk/core/config.py

import os
from decimal import Decimal
from dotenv import load_dotenv
from salesdesk.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    SQLITE_PATH = os.getenv("SQLITE_PATH", "./salesdesk.db")
    DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SQLite lock wait, seconds ----
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", 15))

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# PRICING
# =====================================================
BASE_CURRENCY = os.getenv("BASE_CURRENCY", "USD").upper()
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", BASE_CURRENCY).upper()

DEFAULT_VAT_PERCENT = Decimal(os.getenv("DEFAULT_VAT_PERCENT", "5"))
if DEFAULT_VAT_PERCENT < 0:
    raise ValueError("DEFAULT_VAT_PERCENT must be >= 0")

QUOTATION_VALIDITY_DAYS = int(os.getenv("QUOTATION_VALIDITY_DAYS", 30))

# =====================================================
# COLLABORATOR DEADLINES
# =====================================================
TRANSITION_TIMEOUT_SECONDS = float(os.getenv("TRANSITION_TIMEOUT_SECONDS", 10))
CATALOG_TIMEOUT_SECONDS = float(os.getenv("CATALOG_TIMEOUT_SECONDS", 15))

# =====================================================
# CART SESSIONS
# =====================================================
SESSION_IDLE_MINUTES = int(os.getenv("SESSION_IDLE_MINUTES", 60))
if SESSION_IDLE_MINUTES <= 0:
    raise ValueError("SESSION_IDLE_MINUTES must be positive")
