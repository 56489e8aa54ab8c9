from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path.resolve()


@pytest.fixture
def data_tree(root: Path) -> Path:
    """data/a.txt, data/cache/x.bin, data/sub/cache/y.bin plus an unrelated other/ dir."""
    data = root / "data"
    (data / "cache").mkdir(parents=True)
    (data / "sub" / "cache").mkdir(parents=True)
    (data / "a.txt").write_text("a", encoding="utf-8")
    (data / "cache" / "x.bin").write_bytes(b"x")
    (data / "sub" / "cache" / "y.bin").write_bytes(b"y")
    (root / "other").mkdir()
    return data
