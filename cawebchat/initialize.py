"""Creation of a fresh chat database from the site configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from .admin import add_user
from .db import Database
from .errors import ChatError
from .store import create_schema, reserve_nickname
from .str_fields import check_strong_password

_RESERVED_NICKNAMES = ("unknown", "undefined", "null", "none", "None", "NaN")
_BAD_DATABASE_SETTINGS = 'Invalid settings["database"] field'


def find_sqlite_db_path(config: Mapping[str, Any]) -> str:
    """The SQLite file named in ``config["database"]``.

    Raises ChatError unless the type is ``sqlite3`` and the file is a real path.
    """
    try:
        section = config["database"]
        db_type = section["type"]
        path = section["file"]
    except (KeyError, TypeError, IndexError) as exc:
        raise ChatError(_BAD_DATABASE_SETTINGS) from exc
    if db_type != "sqlite3" or not isinstance(path, str):
        raise ChatError(_BAD_DATABASE_SETTINGS)
    if not path or path.startswith(":"):
        raise ChatError(_BAD_DATABASE_SETTINGS)
    return path


def initialize_website(config: Mapping[str, Any], root_password: str) -> None:
    """Replace the configured database with an empty one holding only the root user."""
    print("Initialization...")
    if not check_strong_password(root_password):
        raise ChatError("Bad root password")
    db_path = find_sqlite_db_path(config)
    if os.path.isfile(db_path):
        try:
            os.unlink(db_path)
        except OSError as exc:
            raise ChatError("unlink") from exc
    if os.path.isfile(db_path):
        raise ChatError(
            "Database file exists prior to initialization. "
            "Can't proceed without harming existing data"
        )
    with Database(db_path) as db:
        db.execute("PRAGMA foreign_keys = true")
        with db.transaction():
            create_schema(db)
            for nickname in _RESERVED_NICKNAMES:
                reserve_nickname(db, nickname)
            add_user(db, "root", "Rootov Root Rootovich", root_password,
                     "One admin to rule them all", 0)