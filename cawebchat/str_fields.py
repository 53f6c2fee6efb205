"""Validation of user-supplied text fields and a strict base64 codec."""

from __future__ import annotations

import base64

from .errors import ChatError

_MAX_FIELD_BYTES = 150
_MIN_STRONG_PASSWORD_BYTES = 8

_B64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_B64_VALUES = {ch: value for value, ch in enumerate(_B64_ALPHABET)}
_B64_CHARS = frozenset(_B64_ALPHABET)
_BAD_BASE64 = "Bad base64 string. Can't decode"


def is_alpha(ch: str) -> bool:
    """True for an ASCII Latin letter."""
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def is_num(ch: str) -> bool:
    """True for an ASCII decimal digit."""
    return "0" <= ch <= "9"


def is_unchar(ch: str) -> bool:
    """True for a character allowed in nicknames."""
    return is_alpha(ch) or is_num(ch) or ch in ("-", "_")


def is_space(ch: str) -> bool:
    """True for space, carriage return, tab or newline."""
    return ch in (" ", "\r", "\t", "\n")


def _utf8_bytes(text: str | bytes) -> bytes | None:
    """The UTF-8 bytes of ``text``, or None if it cannot be represented."""
    if isinstance(text, (bytes, bytearray)):
        return bytes(text)
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError:
        return None


def is_orthodox_string(text: str | bytes) -> bool:
    """True if ``text`` is valid UTF-8 and holds no NUL characters."""
    raw = _utf8_bytes(text)
    if raw is None or b"\x00" in raw:
        return False
    try:
        raw.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _fits(text: str | bytes, limit: int) -> bool:
    raw = _utf8_bytes(text)
    return raw is not None and len(raw) <= limit


def check_password(pwd: str | bytes) -> bool:
    """A password must be orthodox text of at most 150 bytes."""
    return is_orthodox_string(pwd) and _fits(pwd, _MAX_FIELD_BYTES)


def check_strong_password(pwd: str | bytes) -> bool:
    """A strong password is a valid password of at least 8 bytes."""
    if not check_password(pwd):
        return False
    raw = _utf8_bytes(pwd)
    return raw is not None and len(raw) >= _MIN_STRONG_PASSWORD_BYTES


def check_name(name: str | bytes) -> bool:
    """A display name must be orthodox text of at most 150 bytes."""
    return is_orthodox_string(name) and _fits(name, _MAX_FIELD_BYTES)


def check_nickname(nickname: str) -> bool:
    """A nickname is 1 to 150 letters, digits, dashes or underscores."""
    if not nickname:
        return False
    if not all(is_unchar(ch) for ch in nickname):
        return False
    return len(nickname) <= _MAX_FIELD_BYTES


def base64_encode(data: bytes | str) -> str:
    """Encode bytes (or UTF-8 text) as padded standard base64."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(bytes(data)).decode("ascii")


def base64_decode(text: str | bytes) -> bytes:
    """Decode canonical padded base64, raising ChatError on any deviation.

    Unused bits of the final group must be zero, so every accepted string
    is exactly what ``base64_encode`` produces for the result.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    if len(text) % 4:
        raise ChatError(_BAD_BASE64)
    if not text:
        return b""
    if text[-2] == "=":
        padding = 2
        if text[-1] != "=":
            raise ChatError(_BAD_BASE64)
    elif text[-1] == "=":
        padding = 1
    else:
        padding = 0
    body = text[: len(text) - padding]
    if not set(body) <= _B64_CHARS:
        raise ChatError(_BAD_BASE64)
    if padding == 2 and _B64_VALUES[body[-1]] & 0x0F:
        raise ChatError(_BAD_BASE64)
    if padding == 1 and _B64_VALUES[body[-1]] & 0x03:
        raise ChatError(_BAD_BASE64)
    return base64.b64decode(text, validate=True)