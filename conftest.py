import pytest

from candy_board import Board

# 14 reds, every other colour 12 or fewer, no runs anywhere.
BOMB_ROWS = [
    "rygbroyg",
    "gbroygrp",
    "roygrpoy",
    "ygrpoyrb",
    "rpoyrbpo",
    "oyrbporg",
    "rbporgbp",
    "poygbpoy",
]

# Same board with (1, 1) turned red: swapping (1, 0) and (1, 1) lines up
# reds in rows 0-2 of column 0.
SWAP_ROWS = list(BOMB_ROWS)
SWAP_ROWS[1] = "grroygrp"


class ScriptedRandom:
    """Hands out a fixed sequence of randrange results."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def randrange(self, n):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        assert 0 <= value < n, f"scripted value {value} out of range for randrange({n})"
        return value

    def shuffle(self, items):
        items.reverse()


@pytest.fixture
def bomb_board():
    return Board.from_rows(BOMB_ROWS)


@pytest.fixture
def swap_board():
    return Board.from_rows(SWAP_ROWS)


@pytest.fixture
def scripted_rng():
    return ScriptedRandom
