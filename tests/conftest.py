"""Shared fixtures for the participation tracker tests."""

import itertools
import os
import sys

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from simonev.models import School, SchoolType, Snapshot
from simonev.scoring import BonusPolicy
from simonev.store import EntityStore


@pytest.fixture
def schools():
    return (
        School(id="20101234", name="SMAK Kristen Kalam Kudus", type=SchoolType.SMAK, province="Sumatera Utara"),
        School(id="60118805", name="SMTK Bethel Jakarta", type=SchoolType.SMTK, province="DKI Jakarta"),
        School(id="30104412", name="SMAK Kristen Petra", type=SchoolType.SMAK, province="Jawa Timur"),
    )


@pytest.fixture
def store(schools):
    counter = itertools.count(1)
    return EntityStore(
        Snapshot(schools=schools),
        bonus_policy=BonusPolicy(fast_bonus=5, normal_bonus=2, fast_window_days=0),
        id_factory=lambda: f"e{next(counter)}",
    )


@pytest.fixture
def event_payload():
    def _make(**overrides):
        payload = {
            "name": "Sosialisasi A",
            "date": "2024-05-10",
            "type": "Socialization",
            "weight": 10,
            "description": "",
        }
        payload.update(overrides)
        return payload
    return _make
