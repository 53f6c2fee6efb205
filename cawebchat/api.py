"""Request-level helpers: login from cookies and dispatch of the JSON API."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .db import Database
from .errors import ChatError
from .login_cookie import Cookie, LoginCookie, select_login_cookies, select_oldest_login_cookie
from .membership import add_member_to_chat, create_chat, leave_chat, remove_member_from_chat
from .messaging import delete_message, send_message
from .polling import chat_list_poll_events, chat_poll_events, get_message_neighbours
from .store import find_user_by_credentials, get_user_name

ApiHandler = Callable[[Database, int, Mapping[str, Any]], Any]

_API_HANDLERS: dict[str, ApiHandler] = {
    "/api/chatPollEvents": chat_poll_events,
    "/api/chatListPollEvents": chat_list_poll_events,
    "/api/getMessageNeighbours": get_message_neighbours,
    "/api/sendMessage": send_message,
    "/api/deleteMessage": delete_message,
    "/api/addMemberToChat": add_member_to_chat,
    "/api/removeMemberFromChat": remove_member_from_chat,
    "/api/createChat": create_chat,
    "/api/leaveChat": leave_chat,
}


@dataclass(frozen=True)
class HtmlMsgBox:
    """A notice shown on a page, with its CSS class."""

    class_: str
    text: str


@dataclass(frozen=True)
class UserInfo:
    """The logged-in user as pages see it."""

    uid: int
    nickname: str
    name: str


def login_from_cookies(db: Database,
                       cookies: Iterable[Cookie]) -> tuple[list[LoginCookie], UserInfo | None]:
    """The client's login cookies and the user the oldest of them logs in, if any."""
    login_cookies = select_login_cookies(cookies)
    if not login_cookies:
        return login_cookies, None
    tried = login_cookies[select_oldest_login_cookie(login_cookies)]
    uid = find_user_by_credentials(db, tried.nickname, tried.password)
    if uid < 0:
        return login_cookies, None
    return login_cookies, UserInfo(uid, tried.nickname, get_user_name(db, uid))


def jsonify_html_message_list(messages: Iterable[HtmlMsgBox]) -> list[dict[str, str]]:
    """Page notices in the form the templates expect."""
    return [{"class": message.class_, "text": message.text} for message in messages]


def handle_api(db: Database, path: str, uid: int, body: str | bytes) -> str:
    """Run the API call at ``path`` for user ``uid`` (-1 if anonymous).

    ``body`` is the JSON request; the JSON reply text is returned.
    """
    handler = _API_HANDLERS.get(path)
    if handler is None:
        raise ChatError(f"Unknown API call {path}")
    try:
        sent = json.loads(body)
    except ValueError as exc:
        raise ChatError(f"Bad JSON in request body: {exc}") from exc
    if not isinstance(sent, dict):
        raise ChatError("Request body must be a JSON object")
    return json.dumps(handler(db, uid, sent), indent=2, ensure_ascii=False)