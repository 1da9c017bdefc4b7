from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_DIR / "src"
TESTS_DIR = Path(__file__).resolve().parent

for path in (PROJECT_DIR, SRC_DIR):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


@pytest.fixture
def read_fixture():
    def _read(name: str) -> str:
        return (TESTS_DIR / name).read_text(encoding="utf-8")

    return _read
