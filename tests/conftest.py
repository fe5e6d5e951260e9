"""Test harness configuration.

This repo uses a `src/` layout; make sure tests import the in-repo code even
when an older installed `rolebot` is on the path.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_SRC = str(Path(__file__).resolve().parents[1] / "src")
if sys.path[:1] != [_SRC] and _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from rolebot.testing.fakes import FakeDirectory, FakePanelSource, RecordingPacer  # noqa: E402

GUILD = 1000
CHANNEL = 2000

RED, BLUE, GREEN = 10, 20, 30


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(roles=[RED, BLUE, GREEN])


@pytest.fixture
def pacer() -> RecordingPacer:
    return RecordingPacer()


@pytest.fixture
def panels() -> FakePanelSource:
    return FakePanelSource()
