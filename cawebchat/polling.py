"""Polling of chat and chat-list updates since a client's known history point."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .db import Database
from .errors import ChatError
from .store import (
    Role,
    get_chat_history_id,
    get_chat_list_history_id,
    get_last_msg_id_of_chat,
    get_role_of_user_in_chat,
    lookup_chat,
    lookup_message,
    lookup_user,
    stringify_user_chat_role,
)

_MAX_NEIGHBOURS = 15


def _field(sent: Any, *path: str) -> Any:
    node = sent
    for key in path:
        try:
            node = node[key]
        except (KeyError, IndexError, TypeError) as exc:
            raise ChatError(f"Request lacks field {'.'.join(path)}") from exc
    return node


def _int_field(sent: Any, *path: str) -> int:
    value = _field(sent, *path)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ChatError(f"Field {'.'.join(path)} is not an integer")
    return value


def _str_field(sent: Any, *path: str) -> str:
    value = _field(sent, *path)
    if not isinstance(value, str):
        raise ChatError(f"Field {'.'.join(path)} is not a string")
    return value


def chat_list_update(db: Database, user_id: int, local_history_id: int) -> dict[str, Any]:
    """Membership changes of the user newer than ``local_history_id``."""
    rows = db.fetch_all(
        "SELECT `chatId`, `role` FROM `user_chat_membership` WHERE `userId` = ?1 "
        "AND `user_chatList_IncHistoryId` > ?2",
        (user_id, local_history_id),
    )
    my_chats = []
    for chat_id, role in rows:
        entry: dict[str, Any] = {
            "chatId": chat_id,
            "myRoleHere": stringify_user_chat_role(role),
        }
        if role != Role.DELETED:
            chat = lookup_chat(db, chat_id)
            entry["chatName"] = chat.name
            entry["chatNickname"] = chat.nickname
        my_chats.append(entry)
    return {"myChats": my_chats, "HistoryId": get_chat_list_history_id(db, user_id)}


def poll_update_chat_list(db: Database, user_id: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """A successful reply carrying the chat-list update the request asks for."""
    local = _int_field(sent, "chatListUpdReq", "LocalHistoryId")
    return {"status": 0, "chatListUpdResp": chat_list_update(db, user_id, local)}


def message_entry(msg_id: int, sender_user_id: int, exists: bool, is_system: bool,
                  text: str) -> dict[str, Any]:
    """How one message is presented to the client."""
    entry: dict[str, Any] = {"id": msg_id}
    if not is_system:
        entry["senderUserId"] = sender_user_id
    entry["exists"] = bool(exists)
    entry["isSystem"] = bool(is_system)
    if exists:
        entry["text"] = text
    return entry


def chat_messages_update(db: Database, chat_id: int, local_history_id: int,
                         seg_start: int, seg_end: int) -> list[dict[str, Any]]:
    """Messages changed after ``local_history_id`` plus those with ids in the segment."""
    rows = db.fetch_all(
        "SELECT `id`, `senderUserId`, `exists`, `isSystem`, `text` FROM `message` "
        "WHERE `chatId` = ?1 AND ( `chat_IncHistoryId` > ?2 OR ( ?3 <= `id` AND `id` <= ?4 ) )",
        (chat_id, local_history_id, seg_start, seg_end),
    )
    return [
        message_entry(
            msg_id,
            sender if sender is not None else 0,
            bool(exists),
            bool(is_system),
            text if text is not None else "",
        )
        for msg_id, sender, exists, is_system, text in rows
    ]


def chat_members_update(db: Database, chat_id: int, local_history_id: int) -> list[dict[str, Any]]:
    """Membership changes of the chat newer than ``local_history_id``."""
    rows = db.fetch_all(
        "SELECT `userId`, `role` FROM `user_chat_membership` WHERE `chatId` = ?1 "
        "AND `chat_IncHistoryId` > ?2",
        (chat_id, local_history_id),
    )
    members = []
    for user_id, role in rows:
        entry: dict[str, Any] = {
            "userId": user_id,
            "roleHere": stringify_user_chat_role(role),
        }
        if role != Role.DELETED:
            user = lookup_user(db, user_id)
            entry["name"] = user.name
            entry["nickname"] = user.nickname
        members.append(entry)
    return members


def chat_single_message_update(db: Database, chat_id: int, selected_msg: int) -> dict[str, Any]:
    """Initial chat state: all members and, if selected, one message."""
    messages = []
    if selected_msg >= 0:
        msg = lookup_message(db, chat_id, selected_msg)
        messages.append(
            message_entry(msg.id, msg.sender_user_id, msg.exists, msg.is_system, msg.text)
        )
    return {
        "members": chat_members_update(db, chat_id, 0),
        "messages": messages,
        "lastMsgId": get_last_msg_id_of_chat(db, chat_id),
        "HistoryId": get_chat_history_id(db, chat_id),
    }


def chat_segment_update(db: Database, chat_id: int, local_history_id: int,
                        seg_start: int, seg_end: int) -> dict[str, Any]:
    """Chat changes since ``local_history_id``, always including the id segment."""
    return {
        "members": chat_members_update(db, chat_id, local_history_id),
        "messages": chat_messages_update(db, chat_id, local_history_id, seg_start, seg_end),
        "lastMsgId": get_last_msg_id_of_chat(db, chat_id),
        "HistoryId": get_chat_history_id(db, chat_id),
    }


def poll_update_chat_segment(db: Database, sent: Mapping[str, Any],
                             seg_start: int, seg_end: int) -> dict[str, Any]:
    """A successful reply with the chat update requested in ``chatUpdReq``."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    local = _int_field(sent, "chatUpdReq", "LocalHistoryId")
    return {
        "status": 0,
        "chatUpdResp": chat_segment_update(db, chat_id, local, seg_start, seg_end),
    }


def poll_update_chat(db: Database, sent: Mapping[str, Any]) -> dict[str, Any]:
    """A chat update with no extra message segment."""
    return poll_update_chat_segment(db, sent, -1, -2)


def chat_poll_events(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Chat update for a member of the chat."""
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    if get_role_of_user_in_chat(db, uid, chat_id) == Role.DELETED:
        raise ChatError("chatPollEvents: trying to access chat that user does not belong to")
    return poll_update_chat(db, sent)


def chat_list_poll_events(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Chat-list update of the user."""
    return poll_update_chat_list(db, uid, sent)


def get_message_neighbours(db: Database, uid: int, sent: Mapping[str, Any]) -> dict[str, Any]:
    """Chat update including up to 15 messages next to ``msgId`` in ``direction``.

    A negative ``msgId`` means the bottom of the chat and only works backward.
    """
    chat_id = _int_field(sent, "chatUpdReq", "chatId")
    if get_role_of_user_in_chat(db, uid, chat_id) == Role.DELETED:
        raise ChatError("Authentication failure")
    last_msg_id = get_last_msg_id_of_chat(db, chat_id)
    forward = _str_field(sent, "direction") == "forward"
    amount = _int_field(sent, "amount")
    anchor = _int_field(sent, "msgId")
    if amount <= 0 or amount > _MAX_NEIGHBOURS:
        raise ChatError("Incorrect amount")
    seg_start, seg_end = -1, -2
    if last_msg_id >= 0:
        if anchor < 0:
            if forward:
                raise ChatError("Can't go from the top of chat")
            seg_start, seg_end = max(0, last_msg_id - amount + 1), last_msg_id
        elif forward:
            seg_start, seg_end = anchor + 1, anchor + amount
        else:
            seg_start, seg_end = anchor - amount, anchor - 1
    return poll_update_chat_segment(db, sent, seg_start, seg_end)