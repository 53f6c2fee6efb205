import pytest

from cawebchat.db import Database
from cawebchat.errors import ChatError
from cawebchat.initialize import find_sqlite_db_path, initialize_website
from cawebchat.store import find_user_by_credentials, is_nickname_taken, lookup_user


def _config(path):
    return {"database": {"type": "sqlite3", "file": str(path)}}


def test_find_path():
    assert find_sqlite_db_path(_config("/var/chat/data.db")) == "/var/chat/data.db"


@pytest.mark.parametrize(
    "config",
    [
        {},
        {"database": {"type": "postgres", "file": "/x.db"}},
        {"database": {"type": "sqlite3", "file": ":memory:"}},
        {"database": {"type": "sqlite3", "file": ""}},
        {"database": {"type": "sqlite3"}},
        {"database": {"type": "sqlite3", "file": 5}},
    ],
)
def test_find_path_rejects(config):
    with pytest.raises(ChatError):
        find_sqlite_db_path(config)


def test_initialize_creates_root(tmp_path):
    path = tmp_path / "chat.db"
    initialize_website(_config(path), "password")
    with Database(path) as db:
        assert find_user_by_credentials(db, "root", "password") == 0
        assert lookup_user(db, 0).name == "Rootov Root Rootovich"
        assert is_nickname_taken(db, "null") is True
        assert is_nickname_taken(db, "NaN") is True
        assert is_nickname_taken(db, "alice") is False


def test_initialize_rejects_weak_root_password(tmp_path):
    path = tmp_path / "chat.db"
    too_long = "password" * 20
    with pytest.raises(ChatError):
        initialize_website(_config(path), too_long)
    assert not path.exists()


def test_initialize_rejects_bad_config(tmp_path):
    with pytest.raises(ChatError):
        initialize_website({"database": {"type": "sqlite3", "file": ":memory:"}}, "password")


def test_initialize_replaces_existing_file(tmp_path):
    path = tmp_path / "chat.db"
    initialize_website(_config(path), "password")
    initialize_website(_config(path), "placeholder")
    with Database(path) as db:
        assert find_user_by_credentials(db, "root", "placeholder") == 0
        assert find_user_by_credentials(db, "root", "password") == -1