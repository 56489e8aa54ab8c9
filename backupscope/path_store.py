from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Iterator

from backupscope.errors import InsertError


@dataclass(slots=True)
class _Node:
    children: dict[str, "_Node"] = field(default_factory=dict)
    present: bool = False
    payload: Any = None


class PathStore:
    """Trie of absolute paths keyed by path component.

    Only inserted paths are reported by ``count``/iteration; the intermediate
    nodes created on the way down are structure, not members.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self._root = _Node()
        self._count = 0
        self.max_entries = max_entries

    @staticmethod
    def _parts(path: str | os.PathLike[str]) -> tuple[str, ...]:
        return PurePath(path).parts

    def _find(self, path: str | os.PathLike[str]) -> _Node | None:
        node = self._root
        for part in self._parts(path):
            node = node.children.get(part)
            if node is None:
                return None
        return node

    def insert(self, path: str | os.PathLike[str], payload: Any = None) -> None:
        pure = PurePath(path)
        if not pure.is_absolute():
            raise InsertError(pure, "path store only accepts absolute paths")

        node = self._root
        for part in pure.parts:
            child = node.children.get(part)
            if child is None:
                child = _Node()
                node.children[part] = child
            node = child

        if node.present:
            node.payload = payload
            return
        if self.max_entries is not None and self._count >= self.max_entries:
            raise InsertError(pure, f"store is full ({self.max_entries} entries)")
        node.present = True
        node.payload = payload
        self._count += 1

    def count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        node = self._find(path)
        return node is not None and node.present

    def get(self, path: str | os.PathLike[str], default: Any = None) -> Any:
        node = self._find(path)
        if node is None or not node.present:
            return default
        return node.payload

    def children(self, path: str | os.PathLike[str]) -> list[Path]:
        """Inserted paths directly beneath ``path``, sorted by name."""
        node = self._find(path)
        if node is None:
            return []
        base = Path(path)
        return [base / name for name in sorted(node.children) if node.children[name].present]

    def __iter__(self) -> Iterator[Path]:
        stack: list[tuple[Path | None, _Node]] = [(None, self._root)]
        while stack:
            prefix, node = stack.pop()
            if prefix is not None and node.present:
                yield prefix
            for name in sorted(node.children, reverse=True):
                child_path = Path(name) if prefix is None else prefix / name
                stack.append((child_path, node.children[name]))
