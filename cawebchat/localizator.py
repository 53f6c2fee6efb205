"""Choosing a localization file from the client's preferred language ranges."""

from __future__ import annotations

import json
import os
import stat
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any

from .errors import ChatError

_LANG_FILE_SUFFIX = ".lang.json"
_UNRANKED = 999_999_999


def language_range_simpler(lang_range: str) -> str:
    """Map the wildcard range ``*`` to the empty range; keep anything else."""
    return "" if lang_range == "*" else lang_range


def language_range_prefixes(lang_range: str) -> list[str]:
    """All prefixes of a language range that end before a ``-`` or at its end.

    The empty range is always the first entry.
    """
    if not lang_range:
        return [""]
    prefixes = ["", ""]
    for ch in lang_range:
        if ch == "-":
            prefixes.append(prefixes[-1])
        prefixes[-1] += ch
    return prefixes


def is_in_whitelist(lang_range: str, whitelist: Iterable[str]) -> bool:
    """True if some prefix of ``lang_range`` is listed in ``whitelist``."""
    allowed = set(whitelist)
    return any(prefix in allowed for prefix in language_range_prefixes(lang_range))


@dataclass
class LocalizatorSettings:
    """Where the localization files live and how to rank them."""

    lang_dir: str
    whitelist: list[str] = field(default_factory=list)
    force_order: list[str] = field(default_factory=list)


@dataclass
class LanguageFile:
    """A parsed localization file; its language range comes from the file name."""

    language_range: str
    content: Any


def _read_lang_file(path: str) -> Any:
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ChatError(f"Can't read {path}: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ChatError(f"Bad JSON in {path}: {exc}") from exc


def collect_lang_dir_content(lang_dir: str | os.PathLike[str],
                             whitelist: Iterable[str]) -> list[LanguageFile]:
    """Load every whitelisted ``<range>.lang.json`` regular file in ``lang_dir``.

    Files are returned in the order of their names.
    """
    allowed = list(whitelist)
    directory = os.fspath(lang_dir)
    try:
        with os.scandir(directory) as entries:
            names = sorted(entry.name for entry in entries)
    except OSError as exc:
        raise ChatError(f"opendir ({directory}): {exc}") from exc

    result: list[LanguageFile] = []
    for name in names:
        path = f"{directory}/{name}"
        try:
            info = os.stat(path)
        except OSError as exc:
            raise ChatError(f"stat({path}): {exc}") from exc
        if not stat.S_ISREG(info.st_mode):
            continue
        if not name.endswith(_LANG_FILE_SUFFIX):
            continue
        raw_range = name[: -len(_LANG_FILE_SUFFIX)]
        if not is_in_whitelist(raw_range, allowed):
            continue
        result.append(LanguageFile(language_range_simpler(raw_range), _read_lang_file(path)))
    return result


def _string_list(config: Mapping[str, Any], section: str, key: str) -> list[str]:
    try:
        entries = config[section][key]
    except (KeyError, TypeError, IndexError) as exc:
        raise ChatError(f'config["{section}"]["{key}"] is missing') from exc
    if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
        raise ChatError(f'config["{section}"]["{key}"] must be a list of strings')
    return [language_range_simpler(entry) for entry in entries]


def make_localizator_settings(assets_dir: str, config: Mapping[str, Any]) -> LocalizatorSettings:
    """Build localizator settings from the ``lang`` section of the site config."""
    return LocalizatorSettings(
        lang_dir=f"{assets_dir}/lang",
        whitelist=_string_list(config, "lang", "whitelist"),
        force_order=_string_list(config, "lang", "force-order"),
    )


class Localizator:
    """Maps every known language-range prefix to the best matching file."""

    def __init__(self, settings: LocalizatorSettings) -> None:
        self.settings = settings
        self.files: list[LanguageFile] = collect_lang_dir_content(
            settings.lang_dir, settings.whitelist
        )

        for first, second in combinations(self.files, 2):
            a, b = first.language_range, second.language_range
            if b in language_range_prefixes(a) or a in language_range_prefixes(b):
                raise ChatError("Redundant localization file")

        prefix_to_candidates: dict[str, list[int]] = {}
        for index, lang_file in enumerate(self.files):
            for prefix in language_range_prefixes(lang_file.language_range):
                prefix_to_candidates.setdefault(prefix, []).append(index)

        # For each file: (length of the longest force-order prefix matched, its rank).
        assignment = [(0, _UNRANKED)] * len(self.files)
        if len(settings.force_order) >= _UNRANKED - 2:
            raise ChatError("force-order list is too long")
        for rank, prefix in enumerate(settings.force_order):
            if prefix not in prefix_to_candidates:
                raise ChatError(
                    f"force-order list contains entries that match no files ({prefix})"
                )
            for index in prefix_to_candidates[prefix]:
                if assignment[index][0] <= len(prefix):
                    assignment[index] = (len(prefix), rank)

        # Among equally ranked candidates the last one wins.
        self.prefix_to_file: dict[str, int] = {
            prefix: min(reversed(candidates), key=lambda k: assignment[k][1])
            for prefix, candidates in prefix_to_candidates.items()
        }
        if "" not in self.prefix_to_file:
            raise ChatError("No locales were provided")

    def get_right_locale(self, preferred_langs: Sequence[str]) -> LanguageFile:
        """The file for the first known preferred range, else the default one."""
        for lang_range in preferred_langs:
            if lang_range in self.prefix_to_file:
                return self.files[self.prefix_to_file[lang_range]]
        return self.files[self.prefix_to_file[""]]