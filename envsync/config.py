import os

from .errors import ConfigurationError
from .models import Environment

API_VERSION = os.getenv("API_VERSION", "2025-01")

PRODUCTION = {
    "domain": os.getenv("PRODUCTION_STORE_DOMAIN"),
    "token": os.getenv("PRODUCTION_ACCESS_TOKEN"),
    "name": "production",
}

STAGING = {
    "domain": os.getenv("STAGING_STORE_DOMAIN"),
    "token": os.getenv("STAGING_ACCESS_TOKEN"),
    "name": "staging",
}

DB_PATH = os.getenv("DB_PATH", "envsync.db")
PAGE_DELAY_SEC = float(os.getenv("PAGE_DELAY_SEC", "0.5"))      # between list pages, keeps clear of throttling
SYNC_CHUNK_SIZE = int(os.getenv("SYNC_CHUNK_SIZE", "2"))        # concurrent mutations per chunk
SYNC_PRODUCT_IMAGES = os.getenv("SYNC_PRODUCT_IMAGES", "false").lower() == "true"
FILES_SEARCH_QUERY = os.getenv("FILES_SEARCH_QUERY", "used_in:none status:ready")
REQUEST_TIMEOUT_SEC = int(os.getenv("REQUEST_TIMEOUT_SEC", "30"))


def store_for(environment: Environment, stores: dict | None = None) -> dict:
    store = (stores or {Environment.PRODUCTION: PRODUCTION, Environment.STAGING: STAGING})[environment]
    if not (store.get("domain") and store.get("token")):
        raise ConfigurationError(f"Missing domain/token for {environment.value} store")
    return store
