from __future__ import annotations

from pathlib import Path

import pytest


def test_sqlalchemy_declared_with_asyncio_extra() -> None:
    tomllib = pytest.importorskip("tomllib")
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"

    data = tomllib.loads(pyproject.read_text(encoding="utf-8"))

    dependencies = data["project"]["dependencies"]
    assert any(dep.startswith("sqlalchemy[asyncio]") for dep in dependencies)
    assert any(dep.startswith("aiosqlite") for dep in dependencies)
