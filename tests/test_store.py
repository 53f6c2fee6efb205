import pytest

from cawebchat.db import Database
from cawebchat.errors import ChatError
from cawebchat.store import (
    ChatRow,
    MessageRow,
    Role,
    UserRow,
    api_error,
    create_schema,
    find_user_by_credentials,
    get_chat_history_id,
    get_chat_list_history_id,
    get_last_msg_id_of_chat,
    get_role_of_user_in_chat,
    get_user_name,
    is_nickname_taken,
    lookup_chat,
    lookup_chat_by_nickname,
    lookup_message,
    lookup_user,
    lookup_user_by_nickname,
    reserve_nickname,
    stringify_user_chat_role,
)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "chat.db")
    create_schema(database)
    yield database
    database.close()


def _add_user(db, uid, nickname, name, password, history=0):
    reserve_nickname(db, nickname)
    db.execute(
        "INSERT INTO `user` (`id`, `nickname`, `name`, `chatList_HistoryId`, `password`, `bio`) "
        "VALUES (?1, ?2, ?3, ?4, ?5, '')",
        (uid, nickname, name, history, password),
    )


def _add_chat(db, nickname, name, history=0, last=-1):
    reserve_nickname(db, nickname)
    db.execute(
        "INSERT INTO `chat` (`nickname`, `name`, `it_HistoryId`, `lastMsgId`) "
        "VALUES (?1, ?2, ?3, ?4)",
        (nickname, name, history, last),
    )
    return db.last_insert_rowid()


def test_schema_tables(db):
    rows = db.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
    names = {r[0] for r in rows}
    assert {"nickname", "user", "chat", "user_chat_membership", "message"} <= names


def test_api_error():
    assert api_error(-2) == {"status": -2}
    assert api_error() == {"status": -1}


@pytest.mark.parametrize(
    "role, expected",
    [(1, "admin"), (2, "regular"), (3, "read-only"), (4, "not-a-member"), (77, "not-a-member")],
)
def test_stringify_role(role, expected):
    assert stringify_user_chat_role(role) == expected


def test_find_root_credentials_repeatedly(db):
    password = "password"
    _add_user(db, 0, "root", "Rootov Root Rootovich", password)
    for _ in range(100):
        assert find_user_by_credentials(db, "root", password) == 0


def test_find_wrong_credentials(db):
    password = "password"
    _add_user(db, 0, "root", "Root", password)
    assert find_user_by_credentials(db, "root", "secret") == -1
    assert find_user_by_credentials(db, "nobody", password) == -1


def test_get_user_name(db):
    password = "password"
    _add_user(db, 5, "alice", "Alice A", password)
    assert get_user_name(db, 5) == "Alice A"
    with pytest.raises(ChatError):
        get_user_name(db, 6)
    with pytest.raises(ChatError):
        get_user_name(db, -1)


def test_lookup_user(db):
    password = "password"
    _add_user(db, 3, "bob", "Bob B", password)
    assert lookup_user(db, 3) == UserRow(3, "bob", "Bob B")
    assert lookup_user_by_nickname(db, "bob") == UserRow(3, "bob", "Bob B")
    with pytest.raises(ChatError):
        lookup_user(db, 4)
    with pytest.raises(ChatError):
        lookup_user_by_nickname(db, "carol")


def test_lookup_chat(db):
    chat_id = _add_chat(db, "talk", "Talk room", history=2, last=7)
    assert lookup_chat(db, chat_id) == ChatRow(chat_id, "talk", "Talk room", 7)
    assert lookup_chat_by_nickname(db, "talk") == ChatRow(chat_id, "talk", "Talk room", 7)
    assert get_last_msg_id_of_chat(db, chat_id) == 7
    assert get_chat_history_id(db, chat_id) == 2
    with pytest.raises(ChatError):
        lookup_chat(db, chat_id + 1)
    with pytest.raises(ChatError):
        lookup_chat_by_nickname(db, "none_here")
    with pytest.raises(ChatError):
        get_last_msg_id_of_chat(db, -3)
    with pytest.raises(ChatError):
        get_chat_history_id(db, chat_id + 1)


def test_lookup_message(db):
    password = "password"
    _add_user(db, 1, "dave", "Dave", password)
    chat_id = _add_chat(db, "room", "Room")
    db.execute(
        "INSERT INTO `message` (`chatId`, `id`, `senderUserId`, `exists`, `isSystem`, "
        "`chat_IncHistoryId`, `text`) VALUES (?1, 0, ?2, 1, 0, 1, 'hi')",
        (chat_id, 1),
    )
    db.execute(
        "INSERT INTO `message` (`chatId`, `id`, `senderUserId`, `exists`, `isSystem`, "
        "`chat_IncHistoryId`, `text`) VALUES (?1, 1, NULL, 0, 1, 2, NULL)",
        (chat_id,),
    )
    assert lookup_message(db, chat_id, 0) == MessageRow(0, 1, True, False, "hi")
    assert lookup_message(db, chat_id, 1) == MessageRow(1, -1, False, True, "")
    with pytest.raises(ChatError):
        lookup_message(db, chat_id, 2)


def test_roles_and_history(db):
    password = "password"
    _add_user(db, 1, "erin", "Erin", password, history=4)
    chat_id = _add_chat(db, "club", "Club")
    assert get_role_of_user_in_chat(db, 1, chat_id) == Role.DELETED
    db.execute(
        "INSERT INTO `user_chat_membership` (`userId`, `chatId`, `user_chatList_IncHistoryId`, "
        "`chat_IncHistoryId`, `role`) VALUES (1, ?1, 1, 1, 3)",
        (chat_id,),
    )
    assert get_role_of_user_in_chat(db, 1, chat_id) == Role.READ_ONLY
    assert get_chat_list_history_id(db, 1) == 4
    with pytest.raises(ChatError):
        get_chat_list_history_id(db, 2)


def test_nickname_reservation(db):
    assert is_nickname_taken(db, "free_name") is False
    reserve_nickname(db, "free_name")
    assert is_nickname_taken(db, "free_name") is True
    assert is_nickname_taken(db, "bad name") is True
    assert is_nickname_taken(db, "") is True


def test_reserve_invalid_or_duplicate(db):
    with pytest.raises(ChatError):
        reserve_nickname(db, "no spaces allowed")
    reserve_nickname(db, "once")
    with pytest.raises(ChatError):
        reserve_nickname(db, "once")