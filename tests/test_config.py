import json
from pathlib import Path

import pytest

from backupscope.config import (
    CONFIG_FILENAME,
    BackupScopeConfig,
    load_config,
    resolve_password,
    save_config,
)
from backupscope.errors import PathResolutionError
from backupscope.storage import LocalStorage
from backupscope.target import BackupTarget


@pytest.fixture(autouse=True)
def _clear_password_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RESTIC_PASSWORD", raising=False)
    monkeypatch.delenv("RESTIC_PASSWORD_FILE", raising=False)


def test_config_round_trip(data_tree: Path, root: Path) -> None:
    target = BackupTarget.new_from_text([data_tree], ["cache"], ["daily"])
    config = BackupScopeConfig(repository=str(root / "repo"), password="pw", target=target)

    path = save_config(config, root)

    assert path == root / CONFIG_FILENAME
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["target"]["exclusions"] == ["cache"]
    loaded = load_config(root)
    assert loaded.repository == str(root / "repo")
    assert loaded.password == "pw"
    assert loaded.target == target
    assert loaded.storage == LocalStorage(root / "repo")


def test_missing_config_mentions_init(root: Path) -> None:
    with pytest.raises(FileNotFoundError) as exc:
        load_config(root)
    assert "bscope init" in str(exc.value)


def test_config_with_deleted_folder_fails_fast(data_tree: Path, root: Path) -> None:
    (root / CONFIG_FILENAME).write_text(
        json.dumps({"repository": "repo", "target": {"folders": [str(root / "gone")]}}),
        encoding="utf-8",
    )
    with pytest.raises(PathResolutionError):
        load_config(root)


def test_password_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESTIC_PASSWORD", "from-env")
    assert resolve_password("from-config") == "from-env"


def test_password_falls_back_to_config_then_file(monkeypatch: pytest.MonkeyPatch, root: Path) -> None:
    assert resolve_password(" stored ") == "stored"

    password_file = root / "pw.txt"
    password_file.write_text("from-file\n", encoding="utf-8")
    monkeypatch.setenv("RESTIC_PASSWORD_FILE", str(password_file))
    assert resolve_password("") == "from-file"


def test_missing_password_raises() -> None:
    with pytest.raises(RuntimeError):
        resolve_password(None)
