from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import structlog

from backupscope.errors import PathResolutionError
from backupscope.models import SelectionType
from backupscope.path_store import PathStore
from backupscope.patterns import Pattern, PatternSet, parse_patterns
from backupscope.scanner import ErrorCallback, select_into


logger = structlog.get_logger(__name__)

PathLike = str | os.PathLike[str]


def canonicalize(path: PathLike) -> Path:
    """Resolve ``path`` to an absolute, symlink-free path that must exist."""
    try:
        return Path(path).expanduser().resolve(strict=True)
    except FileNotFoundError as exc:
        raise PathResolutionError(path, "path does not exist") from exc
    except PermissionError as exc:
        raise PathResolutionError(path, "permission denied") from exc
    except RuntimeError as exc:
        # Python < 3.13 reports symlink loops as RuntimeError.
        raise PathResolutionError(path, str(exc)) from exc
    except OSError as exc:
        raise PathResolutionError(path, exc.strerror or str(exc)) from exc


def _folder_within(folder: Path, ancestor: Path) -> bool:
    # Folders may have been removed since the target was built.
    try:
        resolved = canonicalize(folder)
    except PathResolutionError:
        return False
    return resolved.is_relative_to(ancestor)


@dataclass(slots=True)
class BackupTarget:
    """Folders to back up, the exclusions applied beneath them, and tags.

    Build instances with :meth:`new` or :meth:`new_from_text`; both resolve
    every folder up front and fail on the first one that does not exist.
    """

    folders: list[Path] = field(default_factory=list)
    exclusions: list[Pattern] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def new(
        cls,
        folders: Iterable[PathLike],
        exclusions: Iterable[Pattern] = (),
        tags: Iterable[str] = (),
    ) -> "BackupTarget":
        return cls(
            folders=[canonicalize(folder) for folder in folders],
            exclusions=list(exclusions),
            tags=list(tags),
        )

    @classmethod
    def new_from_text(
        cls,
        folders: Iterable[PathLike],
        exclusions: Iterable[str] = (),
        tags: Iterable[str] = (),
    ) -> "BackupTarget":
        resolved = [canonicalize(folder) for folder in folders]
        return cls(folders=resolved, exclusions=parse_patterns(exclusions), tags=list(tags))

    def add_folder(self, path: PathLike) -> Path:
        resolved = canonicalize(path)
        self.folders.append(resolved)
        return resolved

    def compile_exclusions(self) -> PatternSet:
        return PatternSet(self.exclusions)

    def check_path_is_in_backup(self, path: PathLike) -> SelectionType:
        missing: PathResolutionError | None = None
        try:
            canonical = canonicalize(path)
        except PathResolutionError as exc:
            if not isinstance(exc.__cause__, FileNotFoundError):
                raise
            # A missing path can still sit above or beside the target.
            missing = exc
            canonical = Path(path).expanduser().resolve()

        if any(canonical.is_relative_to(folder) for folder in self.folders):
            if missing is not None:
                raise missing
            matcher = self.compile_exclusions()
            matched = matcher.first_ancestor_match(canonical)
            if matched is not None:
                logger.debug("path_excluded", path=str(canonical), matched=str(matched))
                return SelectionType.EXCLUDED
            return SelectionType.INCLUDED

        if any(_folder_within(folder, canonical) for folder in self.folders):
            return SelectionType.CONTAINS
        return SelectionType.IRRELEVANT

    def generate_files(
        self,
        store: PathStore | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> PathStore:
        store = store if store is not None else PathStore()
        select_into(store, self.folders, self.compile_exclusions(), on_error=on_error)
        logger.info("selection_complete", folders=len(self.folders), paths=store.count())
        return store

    def to_dict(self) -> dict[str, Any]:
        return {
            "folders": [str(folder) for folder in self.folders],
            "exclusions": [pattern.text for pattern in self.exclusions],
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackupTarget":
        return cls.new_from_text(
            data.get("folders") or [],
            data.get("exclusions") or [],
            data.get("tags") or [],
        )
