from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union


B2_PREFIX = "b2:"
B2_ACCOUNT_ID_ENV = "B2_ACCOUNT_ID"
B2_ACCOUNT_KEY_ENV = "B2_ACCOUNT_KEY"


@dataclass(frozen=True, slots=True)
class LocalStorage:
    path: Path

    def locator(self) -> str:
        return str(self.path)

    def env_overrides(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True, slots=True)
class B2Storage:
    bucket_name: str
    repo_path: str
    account_id: str = ""
    account_key: str = ""

    def locator(self) -> str:
        return f"{B2_PREFIX}{self.bucket_name}:{self.repo_path}"

    def env_overrides(self) -> dict[str, str]:
        env: dict[str, str] = {}
        if self.account_id:
            env[B2_ACCOUNT_ID_ENV] = self.account_id
        if self.account_key:
            env[B2_ACCOUNT_KEY_ENV] = self.account_key
        return env

    def __repr__(self) -> str:
        return f"B2Storage(bucket_name={self.bucket_name!r}, repo_path={self.repo_path!r})"


StorageLocation = Union[LocalStorage, B2Storage]


def parse_storage(value: str) -> StorageLocation:
    """Build a storage location from a restic repository string.

    ``b2:<bucket>:<path>`` selects Backblaze B2 with credentials taken from
    the environment; anything else is a local repository path.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("Repository location must not be empty")

    if text.startswith(B2_PREFIX):
        bucket, sep, repo_path = text[len(B2_PREFIX):].partition(":")
        if not bucket or not sep:
            raise ValueError(f"B2 repository must look like b2:<bucket>:<path>, got {text!r}")
        return B2Storage(
            bucket_name=bucket,
            repo_path=repo_path.strip("/") or "/",
            account_id=os.getenv(B2_ACCOUNT_ID_ENV, ""),
            account_key=os.getenv(B2_ACCOUNT_KEY_ENV, ""),
        )

    return LocalStorage(Path(text).expanduser())
