"""Login cookies: encoding, decoding and selection."""

from __future__ import annotations

import json
import re
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import ChatError
from .str_fields import base64_decode, base64_encode

_PREFIX = "login_"
_NS_PER_SECOND = 1_000_000_000
_UINT_RE = re.compile(r"\s*\+?(\d+)")

Cookie = tuple[str, str]


@dataclass(frozen=True)
class LoginCookie:
    """Credentials remembered by the browser together with the login moment."""

    login_sec: int
    login_nsec: int
    nickname: str
    password: str

    @property
    def login_time(self) -> tuple[int, int]:
        return (self.login_sec, self.login_nsec)

    def cookie_name(self) -> str:
        """The cookie name, which carries the login moment."""
        return f"{_PREFIX}{self.login_sec}_{self.login_nsec}"


def is_login_cookie(cookie: Cookie) -> bool:
    """True if the (name, value) pair looks like a non-empty login cookie."""
    name, value = cookie
    return name.startswith(_PREFIX) and bool(value)


def _parse_uint(text: str) -> int:
    match = _UINT_RE.match(text)
    if match is None:
        raise ChatError(f"Bad number in login cookie name: {text!r}")
    return int(match.group(1))


def decode_login_cookie(cookie: Cookie) -> LoginCookie:
    """Decode a login cookie, raising ChatError if it is malformed."""
    name, value = cookie
    if not name.startswith(_PREFIX):
        raise ChatError("Not a login cookie")
    sep = name.find("_", len(_PREFIX))
    if sep < 0:
        sep = len(name)
    if sep + 1 >= len(name):
        raise ChatError("Malformed login cookie name")
    sec = _parse_uint(name[len(_PREFIX):sep])
    nsec = _parse_uint(name[sep + 1:])
    if nsec >= _NS_PER_SECOND:
        raise ChatError("Malformed login cookie time")
    try:
        content = json.loads(base64_decode(value).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ChatError("Malformed login cookie value") from exc
    if not isinstance(content, list) or len(content) < 2:
        raise ChatError("Malformed login cookie value")
    nickname, password = content[0], content[1]
    if not isinstance(nickname, str) or not isinstance(password, str):
        raise ChatError("Malformed login cookie value")
    return LoginCookie(sec, nsec, nickname, password)


def create_login_cookie(nickname: str, password: str) -> LoginCookie:
    """A login cookie stamped with the current wall-clock time."""
    sec, nsec = divmod(time.time_ns(), _NS_PER_SECOND)
    return LoginCookie(sec, nsec, nickname, password)


def encode_login_cookie(cookie: LoginCookie) -> Cookie:
    """The (name, value) pair to store in the browser."""
    content = json.dumps(
        [cookie.nickname, cookie.password], separators=(",", ":"), ensure_ascii=False
    )
    return cookie.cookie_name(), base64_encode(content.encode("utf-8"))


def select_login_cookies(cookies: Iterable[Cookie]) -> list[LoginCookie]:
    """All login cookies among ``cookies``; any malformed one voids them all."""
    try:
        return [decode_login_cookie(c) for c in cookies if is_login_cookie(c)]
    except (ChatError, ValueError):
        return []


def select_oldest_login_cookie(login_cookies: Sequence[LoginCookie]) -> int:
    """Index of the earliest login cookie (first on ties); 0 for an empty list."""
    if not login_cookies:
        return 0
    return min(range(len(login_cookies)), key=lambda i: login_cookies[i].login_time)


def expired_login_cookies(old_login_cookies: Iterable[LoginCookie]) -> list[Cookie]:
    """Empty-valued cookies that overwrite the given login cookies on logout."""
    return [(cookie.cookie_name(), "") for cookie in old_login_cookies]