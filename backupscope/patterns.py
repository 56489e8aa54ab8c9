from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable

from wcmatch import glob as wcglob

from backupscope.errors import PatternSyntaxError


ANY_DEPTH_PREFIX = "**/"
GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.DOTGLOB | wcglob.FORCEUNIX


def _check_syntax(glob: str) -> None:
    index = 0
    length = len(glob)
    while index < length:
        char = glob[index]
        if char == "\\":
            if index + 1 >= length:
                raise PatternSyntaxError(glob, "dangling escape at end of pattern")
            index += 2
            continue
        if char == "[":
            end = index + 1
            if end < length and glob[end] in "!^":
                end += 1
            # A leading ']' is a literal member of the class.
            if end < length and glob[end] == "]":
                end += 1
            while end < length and glob[end] != "]":
                if glob[end] == "\\":
                    end += 1
                end += 1
            if end >= length:
                raise PatternSyntaxError(glob, "unclosed character class")
            index = end + 1
            continue
        index += 1


def _compile(glob: str) -> re.Pattern[str]:
    # Rooted globs are matched against root-relative text.
    relative = glob.lstrip("/")
    try:
        include, _ = wcglob.translate(relative, flags=GLOB_FLAGS)
    except ValueError as exc:
        raise PatternSyntaxError(glob, str(exc)) from exc
    return re.compile(include[0])


def _validate(glob: str) -> str:
    if not glob:
        raise PatternSyntaxError(glob, "pattern is empty")
    _check_syntax(glob)
    _compile(glob)
    return glob


@dataclass(frozen=True, order=True, slots=True)
class Pattern:
    """A depth-qualified exclusion glob.

    ``glob`` is either rooted (``/data/cache``) or prefixed with ``**/`` so it
    matches at any depth. Use :meth:`parse` for user text and :meth:`text` for
    the form written back to config files.
    """

    glob: str

    @classmethod
    def parse(cls, raw: str) -> "Pattern":
        normalized = raw.rstrip("/")
        if not normalized:
            raise PatternSyntaxError(raw, "pattern is empty")
        if normalized.startswith("/"):
            return cls(_validate(normalized))
        return cls(_validate(f"{ANY_DEPTH_PREFIX}{normalized}"))

    @classmethod
    def from_glob(cls, glob: str) -> "Pattern":
        normalized = glob.rstrip("/")
        if not (normalized.startswith("/") or normalized.startswith("**")):
            raise PatternSyntaxError(glob, "glob must be rooted or start with '**'")
        return cls(_validate(normalized))

    @property
    def text(self) -> str:
        if self.glob.startswith(ANY_DEPTH_PREFIX):
            return self.glob[len(ANY_DEPTH_PREFIX):]
        return self.glob

    def __str__(self) -> str:
        return self.glob


def _match_target(path: str | os.PathLike[str]) -> str:
    # Globs are anchored at the filesystem root, so match root-relative text.
    return PurePath(path).as_posix().lstrip("/")


class PatternSet:
    """Compiled matcher answering whether any of its patterns matches a path."""

    __slots__ = ("patterns", "_regexes")

    def __init__(self, patterns: Iterable[Pattern] = ()) -> None:
        self.patterns: tuple[Pattern, ...] = tuple(patterns)
        self._regexes = [_compile(pattern.glob) for pattern in self.patterns]

    def __len__(self) -> int:
        return len(self.patterns)

    def is_match(self, path: str | os.PathLike[str]) -> bool:
        if not self.patterns:
            return False
        candidate = _match_target(path)
        if not candidate or candidate == ".":
            return False
        return any(regex.fullmatch(candidate) for regex in self._regexes)

    def first_ancestor_match(self, path: Path) -> Path | None:
        """Return the nearest of ``path`` and its ancestors that matches, if any."""
        for candidate in (path, *path.parents):
            if self.is_match(candidate):
                return candidate
        return None


def parse_patterns(raw_patterns: Iterable[str] | None) -> list[Pattern]:
    return [Pattern.parse(raw) for raw in (raw_patterns or [])]


def build_pattern_set(patterns: Iterable[Pattern | str] | None = None) -> PatternSet:
    return PatternSet(
        pattern if isinstance(pattern, Pattern) else Pattern.parse(pattern)
        for pattern in (patterns or [])
    )
