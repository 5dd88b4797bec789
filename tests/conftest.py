"""Shared test fixtures."""

import pytest

from models import OPPONENT
from state import DEFAULT_CONFIG
from tests.boards import blank_rows, block, make_state, paint


# --- Fixtures ---


@pytest.fixture
def config():
    """Default tunables, independent of config.json on disk."""
    return dict(DEFAULT_CONFIG)


@pytest.fixture
def state():
    """Open arena on turn 1 with no gold."""
    return make_state()


@pytest.fixture
def corridor_state():
    """
    An enemy corridor running up column 5 out of a wide enemy area.

    My territory is the block x<=4, y<=5. Enemy units stand at (5, 1), the
    corridor tip, and (5, 3). The corridor widens at (5, 6).
    """
    rows = paint(blank_rows(), block(0, 0, 4, 5), "O")
    rows = paint(rows, block(5, 6, 6, 11) + block(7, 11, 11, 11) + block(5, 1, 5, 5), "X")
    return make_state(
        rows,
        my_gold=10,
        my_income=5,
        units=[(OPPONENT, 10, 1, 5, 1), (OPPONENT, 11, 1, 5, 3)],
    )


@pytest.fixture
def api_client():
    """Flask test client."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
