"""Administrative commands: user registration and the admin-control request handler."""

from __future__ import annotations

from dataclasses import dataclass

from .db import Database
from .errors import ChatError
from .store import is_nickname_taken, reserve_nickname
from .str_fields import (
    check_name,
    check_nickname,
    check_strong_password,
    is_orthodox_string,
    is_space,
)


@dataclass(frozen=True)
class AdminReply:
    """Text sent back to the administrator, and whether the server should stop."""

    text: str
    terminate: bool = False


def add_user(db: Database, nickname: str, name: str, password: str, bio: str,
             forced_id: int = -1) -> None:
    """Register a user; a negative ``forced_id`` lets the database choose the id."""
    if not check_nickname(nickname):
        raise ChatError(f"Bad user nickname {nickname}. Can't reg")
    if not check_name(name):
        raise ChatError(f"Bad user name {name}. Can't reg")
    if not check_strong_password(password):
        raise ChatError("Bad user password. Can't reg")
    if not is_orthodox_string(bio):
        raise ChatError("Bad user bio. Can't reg")
    if is_nickname_taken(db, nickname):
        raise ChatError("Nickname taken already. Can't reg")
    reserve_nickname(db, nickname)
    db.execute(
        "INSERT INTO `user` (`id`, `nickname`, `name`, `chatList_HistoryId`, `password`, `bio`) "
        "VALUES (?1, ?2, ?3, 0, ?4, ?5)",
        (forced_id if forced_id >= 0 else None, nickname, name, password, bio),
    )


def split_admin_words(request: str) -> list[str]:
    """Split an admin request into whitespace-separated words.

    A backslash makes the next character literal, spaces included.
    """
    words: list[str] = []
    current: list[str] = []
    in_word = False
    escaped = False
    for ch in request:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            in_word = True
            escaped = True
        elif is_space(ch):
            if in_word:
                words.append("".join(current))
                current = []
                in_word = False
        else:
            current.append(ch)
            in_word = True
    if in_word:
        words.append("".join(current))
    return words


def admin_control_procedure(db: Database, request: str) -> AdminReply:
    """Execute one admin command and describe the outcome.

    Known commands: ``hello``, ``8`` (stop the server), ``updaterootpw <password>``
    and ``adduser <nickname> <name> <password> <bio>``.
    """
    words = iter(split_admin_words(request))

    def next_word() -> str:
        return next(words, "")

    command = next_word()
    if command == "hello":
        return AdminReply(":0 omg! hiii!! Hewwou :3 !!!!\n")
    if command == "8":
        return AdminReply("Bye\n", terminate=True)
    if command == "updaterootpw":
        new_password = next_word()
        if not check_strong_password(new_password):
            return AdminReply("Bad password. Can't update")
        db.execute("UPDATE `user` SET `password` = ?1 WHERE `id` = 0", (new_password,))
        return AdminReply("Successul update\n")
    if command == "adduser":
        nickname = next_word()
        name = next_word()
        new_password = next_word()
        bio = next_word()
        add_user(db, nickname, name, new_password, bio)
        return AdminReply(f"User {nickname} successfully registered")
    return AdminReply("Incorrect command\n")