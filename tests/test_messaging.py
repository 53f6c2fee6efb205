import pytest

from cawebchat.db import Database
from cawebchat.errors import ChatError
from cawebchat.membership import add_member, create_chat
from cawebchat.messaging import (
    delete_message,
    insert_new_message,
    insert_system_message,
    send_message,
)
from cawebchat.store import (
    Role,
    create_schema,
    get_chat_history_id,
    get_last_msg_id_of_chat,
    lookup_chat_by_nickname,
    lookup_message,
    reserve_nickname,
)


@pytest.fixture
def db():
    with Database(":memory:") as database:
        create_schema(database)
        for uid, nick in ((0, "root"), (1, "alice"), (2, "bob"), (3, "carol")):
            reserve_nickname(database, nick)
            database.execute(
                "INSERT INTO `user` (`id`, `nickname`, `name`, `chatList_HistoryId`, "
                "`password`, `bio`) VALUES (?1, ?2, ?3, 0, ?4, '')",
                (uid, nick, nick.title(), "password"),
            )
        yield database


@pytest.fixture
def chat_id(db):
    create_chat(db, 1, {"content": {"name": "Room", "nickname": "room"},
                        "chatListUpdReq": {"LocalHistoryId": 0}})
    cid = lookup_chat_by_nickname(db, "room").id
    add_member(db, cid, 2, Role.REGULAR)
    add_member(db, cid, 3, Role.READ_ONLY)
    return cid


def _sent(chat_id, **extra):
    sent = {"chatUpdReq": {"chatId": chat_id, "LocalHistoryId": 0}}
    sent.update(extra)
    return sent


def test_insert_new_message_advances_chat(db, chat_id):
    history = get_chat_history_id(db, chat_id)
    last = get_last_msg_id_of_chat(db, chat_id)
    insert_new_message(db, 2, chat_id, "hello", False)
    assert get_chat_history_id(db, chat_id) == history + 1
    assert get_last_msg_id_of_chat(db, chat_id) == last + 1
    msg = lookup_message(db, chat_id, last + 1)
    assert (msg.sender_user_id, msg.text, msg.exists, msg.is_system) == (2, "hello", True, False)


def test_system_message_has_no_sender(db, chat_id):
    insert_system_message(db, chat_id, 1, "kicked", 2)
    msg = lookup_message(db, chat_id, get_last_msg_id_of_chat(db, chat_id))
    assert msg.text == "1,kicked,2"
    assert msg.is_system is True
    assert msg.sender_user_id == -1


def test_send_message_returns_update(db, chat_id):
    recv = send_message(db, 2, _sent(chat_id, content={"text": "hi there"}))
    assert recv["status"] == 0
    texts = [m.get("text") for m in recv["chatUpdResp"]["messages"] if not m["isSystem"]]
    assert texts == ["hi there"]
    assert recv["chatUpdResp"]["lastMsgId"] == get_last_msg_id_of_chat(db, chat_id)


def test_send_message_read_only_rejected(db, chat_id):
    with pytest.raises(ChatError):
        send_message(db, 3, _sent(chat_id, content={"text": "hi"}))


def test_send_message_outsider_rejected(db, chat_id):
    with pytest.raises(ChatError):
        send_message(db, 0, _sent(chat_id, content={"text": "hi"}))


@pytest.mark.parametrize("text", ["", "a\x00b"])
def test_send_message_bad_text(db, chat_id, text):
    with pytest.raises(ChatError):
        send_message(db, 2, _sent(chat_id, content={"text": text}))


def test_delete_own_message(db, chat_id):
    insert_new_message(db, 2, chat_id, "oops", False)
    msg_id = get_last_msg_id_of_chat(db, chat_id)
    history = get_chat_history_id(db, chat_id)
    recv = delete_message(db, 2, _sent(chat_id, id=msg_id))
    entry = next(m for m in recv["chatUpdResp"]["messages"] if m["id"] == msg_id)
    assert entry["exists"] is False
    assert "text" not in entry
    assert lookup_message(db, chat_id, msg_id).exists is False
    assert get_chat_history_id(db, chat_id) == history + 1


def test_admin_deletes_others_message(db, chat_id):
    insert_new_message(db, 2, chat_id, "spam", False)
    msg_id = get_last_msg_id_of_chat(db, chat_id)
    delete_message(db, 1, _sent(chat_id, id=msg_id))
    assert lookup_message(db, chat_id, msg_id).exists is False


def test_regular_cannot_delete_others_message(db, chat_id):
    insert_new_message(db, 1, chat_id, "mine", False)
    msg_id = get_last_msg_id_of_chat(db, chat_id)
    with pytest.raises(ChatError):
        delete_message(db, 2, _sent(chat_id, id=msg_id))
    assert lookup_message(db, chat_id, msg_id).exists is True


def test_system_message_cannot_be_deleted(db, chat_id):
    insert_system_message(db, chat_id, 1, "left", -1)
    msg_id = get_last_msg_id_of_chat(db, chat_id)
    with pytest.raises(ChatError):
        delete_message(db, 1, _sent(chat_id, id=msg_id))


def test_delete_missing_message(db, chat_id):
    with pytest.raises(ChatError):
        delete_message(db, 1, _sent(chat_id, id=get_last_msg_id_of_chat(db, chat_id) + 5))