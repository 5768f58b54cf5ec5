from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def invite_turns(fixtures_dir: Path) -> dict:
    return json.loads((fixtures_dir / "invite_turns.json").read_text(encoding="utf-8"))


@pytest.fixture
def assignment_turns(fixtures_dir: Path) -> dict:
    return json.loads((fixtures_dir / "assignment_turns.json").read_text(encoding="utf-8"))
