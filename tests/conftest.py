"""
Shared pytest fixtures for mynotes tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- An isolated home and data directory per test
- Controller and session fixtures
- Sample record text
"""

import pytest
from freezegun import freeze_time

from mynotes.controller import Controller
from mynotes.model import ApplicationSnapshot
from mynotes.mynotes_env import MynotesEnvironment
from mynotes.session import EditSession


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """
    Points MYNOTES_HOME and MYNOTES_DATA at temporary directories so no
    test touches the real config, logs or snapshot files.
    """
    home = tmp_path / "mynotes-home"
    data = tmp_path / "mynotes-data"
    monkeypatch.setenv("MYNOTES_HOME", str(home))
    monkeypatch.setenv("MYNOTES_DATA", str(data))
    return home


@pytest.fixture
def data_dir(isolated_home, tmp_path):
    return tmp_path / "mynotes-data"


@pytest.fixture
def frozen_time():
    """
    Freezes time to 2025-01-01 12:00:00 for the duration of the test.

    Usage:
        def test_something(frozen_time):
            frozen_time.tick(delta=timedelta(days=1))
    """
    with freeze_time("2025-01-01 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns freezegun's freeze_time for tests that need a specific moment.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2025-01-15 10:00:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def test_env():
    env = MynotesEnvironment()
    env.ensure(init_config=True)
    return env


@pytest.fixture
def test_controller(test_env):
    """A Controller over an empty data directory."""
    return Controller(test_env)


@pytest.fixture
def snapshot():
    return ApplicationSnapshot.default()


@pytest.fixture
def session(snapshot):
    """An EditSession that counts persist calls in ``session.saves``."""
    saves = []
    s = EditSession(snapshot, persist=lambda: saves.append(1))
    s.saves = saves
    return s


@pytest.fixture
def sample_text():
    """Editor text for one valid new record of each kind."""
    return {
        "task": (
            "Title: Pay rent\n"
            "Status: Pending\n"
            "Priority: High\n"
            "Due: 2025-01-05\n"
            "\n"
            "Description:\n"
            "Monthly"
        ),
        "habit": (
            "Name: Drink water\n"
            "Frequency: daily\n"
            "Status: Active\n"
            "Start Date: 2024-12-01\n"
            "Notes:\n"
            "Eight glasses"
        ),
        "finance": "Category: Groceries\nAmount: 42.5\nDate: 2024-12-30\nNotes:\nweekly shop",
        "calorie": "Meal: Lunch\nCalories: 650\nDate: 2024-12-31\nNotes:\n",
        "kanban": "Title: Write report\nStage: In Progress\nNote:\nfirst draft",
        "flashcard": (
            "Front: hola\n"
            "Type: basic\n"
            "Collection: Spanish\n"
            "Tags: greetings, basics\n"
            "Back:\n"
            "hello"
        ),
    }
