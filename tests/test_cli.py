import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import backupscope.cli as cli
from backupscope.config import CONFIG_FILENAME, load_config


runner = CliRunner()


@pytest.fixture
def workspace(root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(root)
    monkeypatch.delenv("RESTIC_PASSWORD", raising=False)
    monkeypatch.delenv("RESTIC_PASSWORD_FILE", raising=False)
    return root


def _init(data_tree: Path, *extra: str):
    return runner.invoke(
        cli.app,
        ["init", "repo", "--folder", str(data_tree), "--exclude", "cache", "--tag", "nightly", *extra],
    )


def test_init_writes_config(workspace: Path, data_tree: Path) -> None:
    result = _init(data_tree, "--password", "pw")

    assert result.exit_code == 0, result.output
    assert "Initialized backupscope" in result.output
    data = json.loads((workspace / CONFIG_FILENAME).read_text(encoding="utf-8"))
    assert data["repository"] == "repo"
    assert data["password"] == "pw"
    assert data["target"] == {"folders": [str(data_tree)], "exclusions": ["cache"], "tags": ["nightly"]}


def test_init_warns_without_password(workspace: Path, data_tree: Path) -> None:
    result = _init(data_tree)
    assert result.exit_code == 0, result.output
    assert "RESTIC_PASSWORD not found" in result.output


def test_init_rejects_missing_folder(workspace: Path) -> None:
    result = runner.invoke(cli.app, ["init", "repo", "--folder", str(workspace / "missing")])
    assert result.exit_code == 1
    assert "Cannot resolve path" in result.output
    assert not (workspace / CONFIG_FILENAME).exists()


def test_init_rejects_bad_pattern(workspace: Path, data_tree: Path) -> None:
    result = runner.invoke(cli.app, ["init", "repo", "--folder", str(data_tree), "--exclude", "[oops"])
    assert result.exit_code == 1
    assert "Invalid glob pattern" in result.output


def test_commands_require_config(workspace: Path) -> None:
    result = runner.invoke(cli.app, ["files"])
    assert result.exit_code == 1
    assert "bscope init" in result.output


def test_classify_prints_selection(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(
        cli.app,
        ["classify", str(data_tree / "a.txt"), str(data_tree / "cache" / "x.bin"), "/", str(workspace / "other")],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("included")
    assert lines[1].startswith("excluded")
    assert lines[2].startswith("contains")
    assert lines[3].startswith("irrelevant")


def test_classify_missing_path_fails(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["classify", str(data_tree / "ghost")])
    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_files_lists_selection(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["files", "--no-progress"])

    assert result.exit_code == 0, result.output
    listed = {line for line in result.output.splitlines() if line.startswith("/")}
    assert listed == {str(data_tree), str(data_tree / "a.txt"), str(data_tree / "sub")}
    assert "Selected: 3 path(s)" in result.output


def test_files_count_only(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["files", "--count"])
    assert result.exit_code == 0, result.output
    assert str(data_tree / "a.txt") not in result.output
    assert "Selected: 3 path(s)" in result.output


def test_add_folder_and_exclude_update_config(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)

    result = runner.invoke(cli.app, ["add-folder", str(workspace / "other")])
    assert result.exit_code == 0, result.output
    result = runner.invoke(cli.app, ["exclude", "*.bin", "/srv/tmp/"])
    assert result.exit_code == 0, result.output

    config = load_config(workspace)
    assert config.target.folders == [data_tree, workspace / "other"]
    assert [pattern.text for pattern in config.target.exclusions] == ["cache", "*.bin", "/srv/tmp"]


def test_exclude_rebuilds_target_with_same_folders_and_tags(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["exclude", "*.bin"])
    assert result.exit_code == 0, result.output

    target = load_config(workspace).target
    assert target.folders == [data_tree]
    assert target.tags == ["nightly"]
    assert [pattern.glob for pattern in target.exclusions] == ["**/cache", "**/*.bin"]


def test_exclude_rejects_bad_pattern_without_saving(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["exclude", "good", "[bad"])
    assert result.exit_code == 1
    assert [pattern.text for pattern in load_config(workspace).target.exclusions] == ["cache"]


def test_backup_dry_run_prints_command(workspace: Path, data_tree: Path) -> None:
    _init(data_tree, "--password", "pw")
    result = runner.invoke(cli.app, ["backup", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "restic -r repo --json backup" in result.output
    assert "--exclude '**/cache'" in result.output
    assert "--tag nightly" in result.output


def test_backup_without_password_fails(workspace: Path, data_tree: Path) -> None:
    _init(data_tree)
    result = runner.invoke(cli.app, ["backup"])
    assert result.exit_code == 1
    assert "No repository password found" in result.output


def test_ls_rejects_non_hex_id(workspace: Path, data_tree: Path) -> None:
    _init(data_tree, "--password", "pw")
    result = runner.invoke(cli.app, ["ls", "latest"])
    assert result.exit_code == 1
    assert "hex characters" in result.output
