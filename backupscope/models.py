from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SelectionType(str, Enum):
    """Relationship of a queried path to a backup target."""

    INCLUDED = "included"
    EXCLUDED = "excluded"
    CONTAINS = "contains"
    IRRELEVANT = "irrelevant"

    @property
    def is_backed_up(self) -> bool:
        return self is SelectionType.INCLUDED


@dataclass(slots=True)
class SnapshotRecord:
    id: str
    short_id: str
    time: str
    hostname: str
    username: str
    tree: str
    paths: list[str]
    parent: str | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "SnapshotRecord":
        snapshot_id = str(data["id"])
        return cls(
            id=snapshot_id,
            short_id=str(data.get("short_id") or snapshot_id[:8]),
            time=str(data.get("time", "")),
            hostname=str(data.get("hostname", "")),
            username=str(data.get("username", "")),
            tree=str(data.get("tree", "")),
            paths=[str(path) for path in data.get("paths") or []],
            parent=data.get("parent"),
            tags=[str(tag) for tag in data.get("tags") or []],
        )


@dataclass(slots=True)
class ListRecord:
    name: str
    type: str
    path: str
    uid: int
    gid: int
    mode: int
    mtime: str
    atime: str
    ctime: str
    size: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ListRecord":
        size = data.get("size")
        return cls(
            name=str(data["name"]),
            type=str(data.get("type", "")),
            path=str(data["path"]),
            uid=int(data.get("uid", 0)),
            gid=int(data.get("gid", 0)),
            mode=int(data.get("mode", 0)),
            mtime=str(data.get("mtime", "")),
            atime=str(data.get("atime", "")),
            ctime=str(data.get("ctime", "")),
            size=int(size) if size is not None else None,
        )


@dataclass(slots=True)
class BackupSummary:
    snapshot_id: str | None
    files_new: int = 0
    files_changed: int = 0
    files_unmodified: int = 0
    dirs_new: int = 0
    dirs_changed: int = 0
    dirs_unmodified: int = 0
    data_added: int = 0
    total_files_processed: int = 0
    total_bytes_processed: int = 0
    total_duration: float = 0.0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any], errors: list[str] | None = None) -> "BackupSummary":
        return cls(
            snapshot_id=data.get("snapshot_id"),
            files_new=int(data.get("files_new", 0)),
            files_changed=int(data.get("files_changed", 0)),
            files_unmodified=int(data.get("files_unmodified", 0)),
            dirs_new=int(data.get("dirs_new", 0)),
            dirs_changed=int(data.get("dirs_changed", 0)),
            dirs_unmodified=int(data.get("dirs_unmodified", 0)),
            data_added=int(data.get("data_added", 0)),
            total_files_processed=int(data.get("total_files_processed", 0)),
            total_bytes_processed=int(data.get("total_bytes_processed", 0)),
            total_duration=float(data.get("total_duration", 0.0)),
            errors=list(errors or []),
        )
