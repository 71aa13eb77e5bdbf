"""
Settings for the portal, read from the environment (and a local .env file).
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from constants.catalogue import DEFAULT_INITIAL_STOCK, DEFAULT_LOW_STOCK_THRESHOLD

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}, using {default}")
        return default


@dataclass
class Settings:
    storage_dir: str = ".kore_storage"
    # Cart and orders are session-only unless switched on
    persist_cart: bool = False
    persist_orders: bool = False
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    initial_stock: int = DEFAULT_INITIAL_STOCK
    log_level: str = "INFO"
    port: int = 8001


def load_settings() -> Settings:
    """Read settings from KORE_* environment variables."""
    return Settings(
        storage_dir=os.getenv("KORE_STORAGE_DIR", ".kore_storage"),
        persist_cart=_env_flag("KORE_PERSIST_CART"),
        persist_orders=_env_flag("KORE_PERSIST_ORDERS"),
        low_stock_threshold=_env_int("KORE_LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD),
        initial_stock=_env_int("KORE_INITIAL_STOCK", DEFAULT_INITIAL_STOCK),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=_env_int("PORT", 8001),
    )
