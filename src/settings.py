"""Static configuration for tweetrouter.

User-editable settings (database location, logging) live in a single JSON
file for quick edits without touching Python. The database path can be
overridden per environment through TWEETROUTER_DB_PATH (read from .env).

By default config.json is read from the source checkout. Installed copies
point TWEETROUTER_CONFIG at a config file instead; relative paths inside it
resolve against that file's directory.
"""

import json
import os

from dotenv import load_dotenv

from core.config import StorageConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

CONFIG_PATH = os.path.abspath(os.getenv("TWEETROUTER_CONFIG") or os.path.join(PROJECT_ROOT, "config.json"))
CONFIG_DIR = os.path.dirname(CONFIG_PATH)


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(CONFIG_DIR, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# SQLite location and busy timeout. The timeout bounds how long a batch waits
# for another batch holding the write lock.
_database = _CONFIG.get("database", {})
DB_PATH = _resolve_path(os.getenv("TWEETROUTER_DB_PATH") or _database.get("path", "data/tweetrouter.db"))
DB_TIMEOUT_SECONDS = float(_database.get("timeout_seconds", 5))
STORAGE = StorageConfig(db_path=DB_PATH, timeout_seconds=DB_TIMEOUT_SECONDS)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
