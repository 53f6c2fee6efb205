"""Sending and deleting chat messages."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .db import Database
from .errors import ChatError
from .polling import _int_field, _str_field, poll_update_chat
from .store import (
    Role,
    get_chat_history_id,
    get_last_msg_id_of_chat,
    get_role_of_user_in_chat,
    lookup_message,
)
from .str_fields import is_orthodox_string


def insert_new_message(db: Database, uid: int, chat_id: int, text: str, is_system: bool) -> None:
    """Append a message to the chat and advance the chat's history id.

    No authorization check is made; ``uid`` is ignored for system messages.
    """
    history_before = get_chat_history_id(db, chat_id)
    last_msg_id = get_last_msg_id_of_chat(db, chat_id)
    db.execute(
        "INSERT INTO `message` (`chatId`, `id`, `senderUserId`, `exists`, `isSystem`, "
        "`chat_IncHistoryId`, `text`) VALUES (?1, ?2, ?3, 1, ?4, ?5, ?6)",
        (chat_id, last_msg_id + 1, None if is_system else uid, int(bool(is_system)),
         history_before + 1, text),
    )
    db.execute(
        "UPDATE `chat` SET `lastMsgId` = ?1, `it_HistoryId` = ?2 WHERE `id` = ?3",
        (last_msg_id + 1, history_before + 1, chat_id),
    )


def insert_system_message(db: Database, chat_id: int, subject: int, verb: str, obj: int) -> None:
    """Record a ``subject,verb,object`` system event in the chat."""
    insert_new_message(db, -1, chat_id, f"{subject},{verb},{obj}", True)


def _require_writer(db: Database, uid: int, chat_id: int) -> int:
    role = get_role_of_user_in_chat(db, uid, chat_id)
    if role == Role.DELETED:
        raise ChatError("Unauthorized user tries to access the chat")
    if role == Role.READ_ONLY:
        raise ChatError("read-only user can't send messages")
    return role


def send_message(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Post ``content.text`` to the chat and reply with the chat update."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    _require_writer(db, uid, chat_id)
    text = _str_field(sent, "content", "text")
    if not text or not is_orthodox_string(text):
        raise ChatError("Bad input text")
    insert_new_message(db, uid, chat_id, text, False)
    return poll_update_chat(db, sent)


def delete_message(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Erase message ``id``; allowed to its sender and to chat admins."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    role = _require_writer(db, uid, chat_id)
    _int_field(sent, "chatUpdReq", "LocalHistoryId")
    msg_id = _int_field(sent, "id")
    msg = lookup_message(db, chat_id, msg_id)
    if msg.is_system or not (msg.sender_user_id == uid or role == Role.ADMIN):
        raise ChatError("Can't delete: permission denied")
    history_before = get_chat_history_id(db, chat_id)
    db.execute(
        "UPDATE `message` SET `exists` = 0, `text` = NULL, `chat_IncHistoryId` = ?1 "
        "WHERE `chatId` = ?3 AND `id` = ?2",
        (history_before + 1, msg_id, chat_id),
    )
    db.execute(
        "UPDATE `chat` SET `it_HistoryId` = ?1 WHERE `id` = ?2",
        (history_before + 1, chat_id),
    )
    return poll_update_chat(db, sent)