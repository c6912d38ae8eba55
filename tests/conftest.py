"""
Shared pytest fixtures for the cube engine tests.

Boards are function-scoped so each test owns its own mutable grid.
"""

import random

import pytest

from cubestate import make_empty_board


class FixedRandom(random.Random):
    """random() always returns `value`; sample() and choice() draw from it as well, so every pick is fixed."""

    def __init__(self, value, seed=0):
        super().__init__(seed)
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def board():
    return make_empty_board()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def always_notice():
    """Every awareness roll passes and every noise draw is the same."""
    return FixedRandom(0.0)


@pytest.fixture
def client(tmp_path):
    import cubeagent

    cubeagent.game_logger.logs_dir = str(tmp_path / "logs")
    cubeagent.app.config["TESTING"] = True
    with cubeagent.app.test_client() as test_client:
        yield test_client
    cubeagent.game_logger.close()


def place_all(board, cells, player):
    for x, y, z in cells:
        board[x, y, z] = player
    return board
