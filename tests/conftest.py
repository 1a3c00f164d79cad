import random

import pytest

from snekfarm.lucky import FOOD, HAZARD, PREY, SNEK, Grid
from snekfarm.api import Point

LABELS = {"s": SNEK, "p": PREY, "f": FOOD, "h": HAZARD}


def parse_grid(s: str) -> Grid:
    """Decode a picture of the board. The top row is the highest y."""
    rows = [row.strip() for row in s.strip().splitlines()]
    rows.reverse()
    b = Grid(len(rows[0]), len(rows))
    for y, row in enumerate(rows):
        for x, c in enumerate(row):
            if c in LABELS:
                b.set(Point(x, y), LABELS[c])
    return b


def snake_json(snake_id, body, health=100):
    body = [{"x": x, "y": y} for x, y in body]
    return {
        "id": snake_id,
        "name": snake_id,
        "health": health,
        "body": body,
        "head": dict(body[0]),
        "length": len(body),
        "latency": "0",
        "shout": "",
    }


def game_request(you, others=(), food=(), hazards=(), width=11, height=11,
                 game_id="game-1", turn=0):
    return {
        "game": {"id": game_id, "ruleset": {"name": "standard"}, "timeout": 500},
        "turn": turn,
        "board": {
            "width": width,
            "height": height,
            "food": [{"x": x, "y": y} for x, y in food],
            "hazards": [{"x": x, "y": y} for x, y in hazards],
            "snakes": [you, *others],
        },
        "you": you,
    }


@pytest.fixture
def grid():
    return parse_grid


@pytest.fixture
def request_body():
    return game_request


@pytest.fixture
def snake():
    return snake_json


@pytest.fixture
def rng():
    return random.Random(1234)


# A 7x7 board with the head at (2,5) and its own body to the right.
TANGLED = """
.......
.fss...
...ss..
.f..s..
....s..
f......
.......
"""


@pytest.fixture
def tangled(grid):
    return grid(TANGLED)
