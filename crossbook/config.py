"""Runtime configuration for crossbook, read from the environment."""

import os
import logging
from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("CROSSBOOK_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Base URL for the JSON document store
BASE_URL = os.getenv("CROSSBOOK_STORE_URL", "http://localhost:3000").rstrip("/")

# File backing the JSON document store
DB_FILE = os.getenv("CROSSBOOK_DB_FILE", "data/db.json")

# Secret for JWT token generation - override in production
JWT_SECRET = os.getenv("JWT_SECRET", "crossbook_secret_key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

# Surcharge rules (peak, night, weekend) are evaluated in this zone
PRICING_TIMEZONE = os.getenv("PRICING_TIMEZONE", "Asia/Hong_Kong")
CURRENCY = "HKD"

# A driver's existing booking inside [requested - before, requested + after] is a conflict
CONFLICT_WINDOW_BEFORE_HOURS = float(os.getenv("CONFLICT_WINDOW_BEFORE_HOURS", "2"))
CONFLICT_WINDOW_AFTER_HOURS = float(os.getenv("CONFLICT_WINDOW_AFTER_HOURS", "4"))

# Pagination defaults for booking listings
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
