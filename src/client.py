"""Storage factory for tweetrouter.

The CLI and the admin panel both open the database through here, so the
schema is always created before first use and both agree on the file.
"""

from __future__ import annotations

import logging
import os

import settings
from adapters.sqlite_storage import SQLiteStorage


def build_storage() -> SQLiteStorage:
    """Create a SQLiteStorage from settings and make sure the schema exists."""

    directory = os.path.dirname(settings.DB_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)

    logging.getLogger(__name__).debug("Opening database %s", settings.DB_PATH)

    storage = SQLiteStorage.from_config(settings.STORAGE)
    storage.init_db()
    return storage
