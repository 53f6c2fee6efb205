"""Exception type shared by the chat package."""


class ChatError(Exception):
    """Raised when a request, a stored record or an encoded value is invalid."""