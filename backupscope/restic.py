from __future__ import annotations

import json
import os
import shlex
import string
import subprocess
from dataclasses import dataclass
from typing import Any

import structlog

from backupscope.errors import (
    InvalidId,
    NoOutputFromRestic,
    ResticCommandError,
    ResticRepoInvalidPassword,
    ResticRepoNotFound,
)
from backupscope.models import BackupSummary, ListRecord, SnapshotRecord
from backupscope.storage import StorageLocation
from backupscope.target import BackupTarget


logger = structlog.get_logger(__name__)

RESTIC_COMMAND = "restic"
RESTIC_PASSWORD_ENV = "RESTIC_PASSWORD"
RESTIC_REPO_FLAG = "-r"
EXIT_REPO_NOT_FOUND = 10
EXIT_WRONG_PASSWORD = 12
_HEX_DIGITS = frozenset(string.hexdigits)


def validate_snapshot_id(value: str) -> str:
    text = value.strip()
    if not text or not set(text) <= _HEX_DIGITS:
        raise InvalidId(value)
    return text.lower()


def _decode_json_lines(stdout: str) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for line in stdout.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            messages.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("restic_unparsed_line", line=line)
    return messages


@dataclass(slots=True)
class ResticConfig:
    password: str
    storage: StorageLocation
    executable: str = RESTIC_COMMAND

    def base_command(self) -> list[str]:
        return [self.executable, RESTIC_REPO_FLAG, self.storage.locator()]

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env[RESTIC_PASSWORD_ENV] = self.password
        env.update(self.storage.env_overrides())
        return env

    def _run(self, args: list[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = [*self.base_command(), *args]
        display = shlex.join(command)
        logger.debug("restic_command", command=display)
        try:
            completed = subprocess.run(
                command,
                env=self.environment(),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ResticCommandError(display, -1, f"Unable to spawn restic: {exc}") from exc

        if check and completed.returncode != 0:
            if completed.returncode == EXIT_WRONG_PASSWORD:
                raise ResticRepoInvalidPassword()
            if completed.returncode == EXIT_REPO_NOT_FOUND:
                raise ResticRepoNotFound(self.storage.locator())
            raise ResticCommandError(display, completed.returncode, completed.stderr or "")
        return completed

    def check_repo(self) -> bool:
        completed = self._run(["check"], check=False)
        logger.info("restic_check", returncode=completed.returncode)
        return completed.returncode == 0

    def init_repo(self) -> None:
        completed = self._run(["init"], check=False)
        if completed.returncode != 0:
            logger.error("restic_init_failed", stderr=(completed.stderr or "").strip())
            raise ResticRepoNotFound(self.storage.locator())

    def snapshots(self) -> list[SnapshotRecord]:
        completed = self._run(["--json", "snapshots"])
        stdout = (completed.stdout or "").strip()
        if not stdout:
            raise NoOutputFromRestic("snapshots")
        return [SnapshotRecord.from_json(item) for item in json.loads(stdout)]

    def list_snapshot(self, snapshot_id: str) -> list[ListRecord]:
        snapshot = validate_snapshot_id(snapshot_id)
        completed = self._run(["--json", "ls", snapshot])
        messages = _decode_json_lines(completed.stdout or "")
        if not messages:
            raise NoOutputFromRestic(f"ls {snapshot}")
        return [
            ListRecord.from_json(message)
            for message in messages
            if message.get("struct_type") == "node"
        ]

    def backup_args(self, target: BackupTarget) -> list[str]:
        args = ["--json", "backup"]
        args.extend(str(folder) for folder in target.folders)
        for pattern in target.exclusions:
            args.extend(["--exclude", pattern.glob])
        for tag in target.tags:
            args.extend(["--tag", tag])
        return args

    def backup(self, target: BackupTarget) -> BackupSummary:
        if not target.folders:
            raise ValueError("Backup target has no folders")
        completed = self._run(self.backup_args(target))
        messages = _decode_json_lines(completed.stdout or "")
        errors = [
            f"{message.get('item', '')}: {(message.get('error') or {}).get('message', '')}"
            for message in messages
            if message.get("message_type") == "error"
        ]
        for message in reversed(messages):
            if message.get("message_type") == "summary":
                summary = BackupSummary.from_json(message, errors)
                logger.info(
                    "restic_backup_complete",
                    snapshot=summary.snapshot_id,
                    files_new=summary.files_new,
                    errors=len(errors),
                )
                return summary
        raise NoOutputFromRestic("backup")
