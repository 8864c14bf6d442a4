"""
Quest Academy Configuration
Environment-driven settings for database, auth and gameplay limits
"""

import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(ROOT_DIR / ".env")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "quest_academy")
# Transactions need a replica set; single-node dev databases must turn this off
MONGO_USE_TRANSACTIONS = _env_bool("MONGO_USE_TRANSACTIONS", True)

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

# HTTP
API_PREFIX = "/api/v1"
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Gameplay
DAILY_PRACTICE_REWARD_LIMIT = int(os.getenv("DAILY_PRACTICE_REWARD_LIMIT", "20"))
STAGE_PASS_RATE = 0.6

# Paper doll rendering
ASSET_FETCH_TIMEOUT = float(os.getenv("ASSET_FETCH_TIMEOUT", "5.0"))
# Prefix for relative part asset paths such as /assets/avatar/...
ASSET_BASE_URL = os.getenv("ASSET_BASE_URL", "")
AVATAR_CANVAS_SIZE = (256, 256)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
