"""Database schema and lookups of users, chats, messages and nicknames."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from .db import Database
from .errors import ChatError
from .str_fields import check_nickname

_SCHEMA = (
    "CREATE TABLE `nickname` (`it` TEXT PRIMARY KEY NOT NULL) WITHOUT ROWID",
    "CREATE TABLE `user` ("
    "`id` INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,"
    "`nickname` TEXT UNIQUE REFERENCES `nickname` NOT NULL,"
    "`name` TEXT NOT NULL,"
    "`chatList_HistoryId` INTEGER NOT NULL,"
    "`password` TEXT NOT NULL,"
    "`bio` TEXT NOT NULL"
    ")",
    "CREATE TABLE `chat` ("
    "`id` INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,"
    "`nickname` TEXT UNIQUE REFERENCES `nickname` NOT NULL,"
    "`name` TEXT NOT NULL,"
    "`it_HistoryId` INTEGER NOT NULL,"
    "`lastMsgId` INTEGER NOT NULL"
    ")",
    "CREATE TABLE `user_chat_membership` ("
    "`userId` INTEGER REFERENCES `user` NOT NULL,"
    "`chatId` INTEGER REFERENCES `chat` NOT NULL,"
    "`user_chatList_IncHistoryId` INTEGER NOT NULL,"
    "`chat_IncHistoryId` INTEGER NOT NULL,"
    "`role` INTEGER NOT NULL,"
    "UNIQUE (`userId`, `chatId`)"
    ")",
    "CREATE TABLE `message` ("
    "`chatId` INTEGER REFERENCES `chat` NOT NULL,"
    "`id` INTEGER NOT NULL,"
    "`senderUserId` INTEGER REFERENCES `user`,"
    "`exists` BOOLEAN NOT NULL,"
    "`isSystem` BOOLEAN NOT NULL,"
    "`text` TEXT,"
    "`chat_IncHistoryId` INTEGER NOT NULL,"
    "PRIMARY KEY (`chatId`, `id`)"
    ")",
)


class Role(enum.IntEnum):
    """Role of a user in a chat."""

    ADMIN = 1
    REGULAR = 2
    READ_ONLY = 3
    DELETED = 4


@dataclass(frozen=True)
class UserRow:
    id: int
    nickname: str
    name: str


@dataclass(frozen=True)
class ChatRow:
    id: int
    nickname: str
    name: str
    last_msg_id: int  # negative when the chat is empty


@dataclass(frozen=True)
class MessageRow:
    id: int
    sender_user_id: int  # -1 when there is no sender
    exists: bool
    is_system: bool
    text: str


def create_schema(db: Database) -> None:
    """Create all tables of an empty chat database.

    User id 0 is the root user; a chat with a negative lastMsgId is empty;
    membership roles are the values of Role.
    """
    for statement in _SCHEMA:
        db.execute(statement)


def api_error(code: int = -1) -> dict[str, int]:
    """The reply an API call gives when the client's request is rejected."""
    return {"status": code}


def stringify_user_chat_role(role: int) -> str:
    """The name of a role as the client sees it."""
    if role == Role.ADMIN:
        return "admin"
    if role == Role.REGULAR:
        return "regular"
    if role == Role.READ_ONLY:
        return "read-only"
    return "not-a-member"


def _int_or_none(value: Any) -> int | None:
    if value is None or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    raise ChatError("sqlite3_column_type. Incorrect type")


def _text_or_none(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ChatError("sqlite3_column_type. Incorrect type")


def _require_non_negative(value: int) -> None:
    if value < 0:
        raise ChatError("Are you crazy?")


def find_user_by_credentials(db: Database, nickname: str, password: str) -> int:
    """The id of the user with these credentials, or -1 if there is none."""
    row = db.fetch_one(
        "SELECT `id` FROM `user` WHERE `nickname` = ?1 AND `password` = ?2",
        (nickname, password),
    )
    if row is None:
        return -1
    uid = _int_or_none(row[0])
    if uid is None or uid < 0:
        raise ChatError("Stored user id is invalid")
    return uid


def get_user_name(db: Database, uid: int) -> str:
    _require_non_negative(uid)
    row = db.fetch_one("SELECT `name` FROM `user` WHERE `id` = ?1", (uid,))
    if row is None:
        raise ChatError("No such user")
    name = _text_or_none(row[0])
    if name is None:
        raise ChatError("Stored user name is missing")
    return name


def lookup_user(db: Database, uid: int) -> UserRow:
    _require_non_negative(uid)
    row = db.fetch_one("SELECT `nickname`, `name` FROM `user` WHERE `id` = ?1", (uid,))
    if row is None:
        raise ChatError("No such user")
    return UserRow(uid, _text_or_none(row[0]) or "", _text_or_none(row[1]) or "")


def lookup_user_by_nickname(db: Database, nickname: str) -> UserRow:
    row = db.fetch_one("SELECT `id`, `name` FROM `user` WHERE `nickname` = ?1", (nickname,))
    if row is None:
        raise ChatError("No such user")
    uid = _int_or_none(row[0])
    return UserRow(uid if uid is not None else 0, nickname, _text_or_none(row[1]) or "")


def lookup_chat(db: Database, chat_id: int) -> ChatRow:
    """Chat contents; no authorization check is made."""
    _require_non_negative(chat_id)
    row = db.fetch_one(
        "SELECT `nickname`, `name`, `lastMsgId` FROM `chat` WHERE `id` = ?1", (chat_id,)
    )
    if row is None:
        raise ChatError("No such chat")
    last = _int_or_none(row[2])
    return ChatRow(
        chat_id,
        _text_or_none(row[0]) or "",
        _text_or_none(row[1]) or "",
        last if last is not None else -1,
    )


def lookup_chat_by_nickname(db: Database, nickname: str) -> ChatRow:
    row = db.fetch_one(
        "SELECT `id`, `name`, `lastMsgId` FROM `chat` WHERE `nickname` = ?1", (nickname,)
    )
    if row is None:
        raise ChatError("No such chat")
    chat_id = _int_or_none(row[0])
    last = _int_or_none(row[2])
    return ChatRow(
        chat_id if chat_id is not None else 0,
        nickname,
        _text_or_none(row[1]) or "",
        last if last is not None else -1,
    )


def lookup_message(db: Database, chat_id: int, msg_id: int) -> MessageRow:
    row = db.fetch_one(
        "SELECT `senderUserId`, `exists`, `isSystem`, `text` FROM `message` WHERE "
        "`chatId` = ?1 AND `id` = ?2",
        (chat_id, msg_id),
    )
    if row is None:
        raise ChatError("No such message")
    sender = _int_or_none(row[0])
    return MessageRow(
        msg_id,
        sender if sender is not None else -1,
        bool(_int_or_none(row[1])),
        bool(_int_or_none(row[2])),
        _text_or_none(row[3]) or "",
    )


def get_role_of_user_in_chat(db: Database, user_id: int, chat_id: int) -> int:
    """The user's role in the chat; Role.DELETED when not a member."""
    row = db.fetch_one(
        "SELECT `role` FROM `user_chat_membership` WHERE `userId` = ?1 AND `chatId` = ?2",
        (user_id, chat_id),
    )
    if row is None:
        return Role.DELETED
    role = _int_or_none(row[0])
    return Role.DELETED if role is None else role


def get_last_msg_id_of_chat(db: Database, chat_id: int) -> int:
    _require_non_negative(chat_id)
    row = db.fetch_one("SELECT `lastMsgId` FROM `chat` WHERE `id` = ?1", (chat_id,))
    if row is None:
        raise ChatError("No such chat")
    last = _int_or_none(row[0])
    return last if last is not None else -1


def _single_int(db: Database, statement: str, key: int, what: str) -> int:
    row = db.fetch_one(statement, (key,))
    if row is None:
        raise ChatError(f"No such {what}")
    value = _int_or_none(row[0])
    if value is None:
        raise ChatError(f"History id of {what} is missing")
    return value


def get_chat_history_id(db: Database, chat_id: int) -> int:
    return _single_int(db, "SELECT `it_HistoryId` FROM `chat` WHERE `id` = ?1", chat_id, "chat")


def get_chat_list_history_id(db: Database, user_id: int) -> int:
    return _single_int(
        db, "SELECT `chatList_HistoryId` FROM `user` WHERE `id` = ?1", user_id, "user"
    )


def is_nickname_taken(db: Database, nickname: str) -> bool:
    """True if the nickname is reserved already, or is not a valid nickname."""
    if not check_nickname(nickname):
        return True
    row = db.fetch_one(
        "SELECT EXISTS(SELECT 1 FROM `nickname` WHERE `it` = ?1)", (nickname,)
    )
    return bool(row and row[0])


def reserve_nickname(db: Database, nickname: str) -> None:
    if not check_nickname(nickname):
        raise ChatError("PRECAUTION! Trying to insert incorrect nickname into nickname table")
    db.execute("INSERT INTO `nickname` (`it`) VALUES (?1)", (nickname,))