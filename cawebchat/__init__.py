"""Core of a SQLite-backed web chat: field checks, login cookies, localisation, storage, polling and a JSON API dispatcher."""

__version__ = "1.0.0"