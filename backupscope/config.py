from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from backupscope.restic import RESTIC_PASSWORD_ENV, ResticConfig
from backupscope.storage import StorageLocation, parse_storage
from backupscope.target import BackupTarget


CONFIG_FILENAME = ".backupscope.json"
RESTIC_PASSWORD_FILE_ENV = "RESTIC_PASSWORD_FILE"


@dataclass(slots=True)
class BackupScopeConfig:
    repository: str
    password: str = ""
    target: BackupTarget = field(default_factory=BackupTarget)

    @property
    def storage(self) -> StorageLocation:
        return parse_storage(self.repository)

    def restic(self) -> ResticConfig:
        return ResticConfig(password=resolve_password(self.password), storage=self.storage)


def config_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / CONFIG_FILENAME


def load_config(base_dir: Path | None = None) -> BackupScopeConfig:
    path = config_path(base_dir)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}. Run `bscope init <repository>` first."
        )

    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    return BackupScopeConfig(
        repository=str(data["repository"]).strip(),
        password=data.get("password", ""),
        target=BackupTarget.from_dict(data.get("target") or {}),
    )


def save_config(config: BackupScopeConfig, base_dir: Path | None = None) -> Path:
    path = config_path(base_dir)
    payload = {
        "repository": config.repository.strip(),
        "password": config.password,
        "target": config.target.to_dict(),
    }
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")
    return path


def default_password() -> str:
    return os.getenv(RESTIC_PASSWORD_ENV, "")


def resolve_password(config_password: str | None = None) -> str:
    """Resolve the repository password from env, config, or a password file."""
    value = default_password().strip()
    if value:
        return value

    if config_password and config_password.strip():
        return config_password.strip()

    password_file = os.getenv(RESTIC_PASSWORD_FILE_ENV, "").strip()
    if password_file:
        try:
            return Path(password_file).expanduser().read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise RuntimeError(f"Cannot read {RESTIC_PASSWORD_FILE_ENV} {password_file}: {exc}") from exc

    raise RuntimeError(
        f"No repository password found. Set {RESTIC_PASSWORD_ENV} or store one with `bscope init --password`."
    )
