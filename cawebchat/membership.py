"""Chat creation and changes of chat membership."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .db import Database
from .errors import ChatError
from .messaging import insert_system_message
from .polling import _int_field, _str_field, poll_update_chat, poll_update_chat_list
from .store import (
    Role,
    api_error,
    get_chat_history_id,
    get_chat_list_history_id,
    get_role_of_user_in_chat,
    is_nickname_taken,
    lookup_user_by_nickname,
    reserve_nickname,
)
from .str_fields import check_name, check_nickname


def is_membership_row_present(db: Database, chat_id: int, user_id: int) -> bool:
    """True if the user has ever had a membership record in the chat."""
    row = db.fetch_one(
        "SELECT EXISTS(SELECT 1 FROM `user_chat_membership` WHERE `chatId` = ?1 AND `userId` = ?2)",
        (chat_id, user_id),
    )
    return bool(row and row[0])


def alter_user_chat_role(db: Database, chat_id: int, user_id: int, role: int) -> None:
    """Set the user's role, advancing both the chat's and the user's history ids."""
    chat_history = get_chat_history_id(db, chat_id) + 1
    list_history = get_chat_list_history_id(db, user_id) + 1
    if not is_membership_row_present(db, chat_id, user_id):
        db.execute(
            "INSERT INTO `user_chat_membership` (`userId`, `chatId`, `user_chatList_IncHistoryId`,"
            "`chat_IncHistoryId`, `role`) VALUES (?1, ?2, ?3, ?4, ?5)",
            (user_id, chat_id, list_history, chat_history, int(role)),
        )
    else:
        db.execute(
            "UPDATE `user_chat_membership` SET `user_chatList_IncHistoryId` = ?3,"
            "`chat_IncHistoryId` = ?4, `role` = ?5 WHERE `userId` = ?1 AND `chatId` = ?2",
            (user_id, chat_id, list_history, chat_history, int(role)),
        )
    db.execute("UPDATE `chat` SET `it_HistoryId` = ?1 WHERE `id` = ?2", (chat_history, chat_id))
    db.execute(
        "UPDATE `user` SET `chatList_HistoryId` = ?1 WHERE `id` = ?2", (list_history, user_id)
    )


def add_member(db: Database, chat_id: int, user_id: int, role: int) -> None:
    """Give the user a live role in the chat."""
    if role == Role.DELETED:
        raise ValueError("add_member needs a role other than DELETED")
    alter_user_chat_role(db, chat_id, user_id, role)


def kick_from_chat(db: Database, chat_id: int, user_id: int) -> None:
    alter_user_chat_role(db, chat_id, user_id, Role.DELETED)


def _require_admin(db: Database, uid: int, chat_id: int) -> None:
    if get_role_of_user_in_chat(db, uid, chat_id) != Role.ADMIN:
        raise ChatError("Only admin can change members of chat")


def add_member_to_chat(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """An admin brings the user named ``nickname`` into the chat."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    _require_admin(db, uid, chat_id)
    nickname = _str_field(sent, "nickname")
    try:
        alien = lookup_user_by_nickname(db, nickname)
    except ChatError:
        return api_error(-1)
    read_only = bool(sent.get("makeReadOnly", False))
    if get_role_of_user_in_chat(db, alien.id, chat_id) != Role.DELETED:
        return api_error(-2)
    add_member(db, chat_id, alien.id, Role.READ_ONLY if read_only else Role.REGULAR)
    insert_system_message(db, chat_id, uid, "summoned", alien.id)
    return poll_update_chat(db, sent)


def remove_member_from_chat(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """An admin removes user ``userId`` from the chat."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    _require_admin(db, uid, chat_id)
    victim = _int_field(sent, "userId")
    kick_from_chat(db, chat_id, victim)
    insert_system_message(db, chat_id, uid, "kicked", victim)
    return poll_update_chat(db, sent)


def create_chat(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Create a chat from ``content`` with the caller as its admin."""
    name = _str_field(sent, "content", "name")
    nickname = _str_field(sent, "content", "nickname")
    if not check_nickname(nickname) or not check_name(name):
        return api_error(-1)
    if is_nickname_taken(db, nickname):
        return api_error(-2)
    reserve_nickname(db, nickname)
    db.execute(
        "INSERT INTO `chat` (`nickname`, `name`, `it_HistoryId`, `lastMsgId`) "
        "VALUES (?1, ?2, 0, -1)",
        (nickname, name),
    )
    chat_id = db.last_insert_rowid()
    add_member(db, chat_id, uid, Role.ADMIN)
    return poll_update_chat_list(db, uid, sent)


def leave_chat(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """The caller leaves chat ``chatId``."""
    chat_id = _int_field(sent, "chatId")
    if get_role_of_user_in_chat(db, uid, chat_id) == Role.DELETED:
        raise ChatError("Not a member")
    kick_from_chat(db, chat_id, uid)
    insert_system_message(db, chat_id, uid, "left", -1)
    return poll_update_chat_list(db, uid, sent)