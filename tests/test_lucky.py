import logging
import random
from collections import Counter

import pytest

from snekfarm import api, lucky
from snekfarm.api import Point
from snekfarm.lucky import (
    EMPTY, FOOD, HAZARD, MAX_ORIENT_DEPTH, PREY, SNEK, VISIT_CAP, WALL,
    Docile, Grid, Node, decide, new_node, observe, orient,
)


def walk(n):
    yield n
    for _, child in n.children():
        yield from walk(child)


def test_node_cardinal():
    n = new_node(Point(3, 3), EMPTY)
    assert n is not None
    assert n.above() == Point(3, 4)
    assert n.below() == Point(3, 2)
    assert n.left_of() == Point(2, 3)
    assert n.right_of() == Point(4, 3)


def test_grid(tangled):
    assert tangled.get(Point(0, 0)) == EMPTY
    assert tangled.get(Point(0, 1)) == FOOD
    assert tangled.get(Point(4, 2)) == SNEK


def test_grid_walls():
    b = Grid(3, 2)
    # Whatever sits in the backing map, off the board is a wall.
    for p in (Point(-1, 0), Point(3, 0), Point(0, -1), Point(0, 2)):
        b.set(p, FOOD)
        assert b.get(p) == WALL
    assert b.get(Point(2, 1)) == EMPTY
    assert b.get(Point(0, 0)) == EMPTY


def test_observe(snake, request_body):
    me = snake("me", [(5, 5), (5, 4), (5, 3)])
    small = snake("small", [(1, 1), (1, 2)])
    same = snake("same", [(8, 8), (8, 9), (8, 10)])
    st = api.State.from_json(request_body(
        me, [small, same], food=[(0, 0), (3, 3)], hazards=[(3, 3), (10, 10)]))
    b = observe(st)
    assert b.get(Point(5, 5)) == SNEK
    assert b.get(Point(5, 4)) == SNEK
    assert b.get(Point(1, 1)) == PREY
    assert b.get(Point(1, 2)) == SNEK
    assert b.get(Point(8, 8)) == SNEK
    assert b.get(Point(0, 0)) == FOOD
    assert b.get(Point(3, 3)) == HAZARD
    assert b.get(Point(10, 10)) == HAZARD
    assert b.get(Point(11, 10)) == WALL


def test_food_scent_decays():
    root = Node(point=Point(0, 0))
    a = new_node(Point(0, 1), EMPTY, root)
    b = new_node(Point(0, 2), EMPTY, a)
    food = new_node(Point(0, 3), FOOD, b)
    assert food.depth == 3
    assert [food.yum, b.yum, a.yum, root.yum] == [7, 7, 6, 5]
    assert [food.freedom, b.freedom, a.freedom, root.freedom] == [1, 2, 3, 3]


def test_food_out_of_scent_range():
    cur = Node(point=Point(0, 0))
    chain = [cur]
    for y in range(1, 10):
        cur = new_node(Point(0, y), EMPTY, cur)
        chain.append(cur)
    near = new_node(Point(1, 9), FOOD, chain[-2])
    assert near.depth == 9
    assert near.yum == 1
    assert chain[-2].yum == 1
    assert chain[-3].yum == 0

    far = new_node(Point(0, 10), FOOD, chain[-1])
    assert far.depth == 10
    assert far.yum == 0
    assert chain[-1].yum == 0
    # Food is still room to move.
    assert far.freedom == 1
    assert chain[0].freedom == 9 + 2


def test_hazard_repulsion():
    root = Node(point=Point(0, 0))
    near = new_node(Point(1, 0), HAZARD, root)
    assert near.yuck == 1
    assert root.yuck == 1
    assert near.freedom == 1
    assert root.freedom == 0

    far = new_node(Point(2, 0), HAZARD, near)
    assert far.yuck == 0
    assert near.yuck == 1


def test_prey_strike_only_adjacent():
    root = Node(point=Point(0, 0))
    adjacent = new_node(Point(1, 0), PREY, root)
    assert adjacent.can_strike
    assert adjacent.freedom == 0
    beyond = new_node(Point(2, 0), PREY, adjacent)
    assert not beyond.can_strike


def test_walls_and_sneks_not_entered():
    assert new_node(Point(0, 0), WALL) is None
    assert new_node(Point(0, 0), SNEK) is None


def test_orient_no_backtrack(tangled, rng):
    n = orient(tangled, Point(2, 5), rng)
    assert n.up is not None
    assert n.down is not None
    assert n.left is not None
    assert n.right is None


def test_orient_no_autophagy(grid, rng):
    b = grid("""
        .......
        .fss...
        ..sss..
        .fsss..
        ....s..
        f......
        .......
    """)
    n = orient(b, Point(3, 3), rng)
    assert n.up is None
    assert n.down is not None
    assert n.left is None
    assert n.right is None


def test_orient_depth_bound(rng):
    b = Grid(15, 15)
    origin = orient(b, Point(7, 7), rng)
    depths = set()
    for n in walk(origin):
        assert n.depth <= MAX_ORIENT_DEPTH
        assert n.depth == len(list(n.ancestors()))
        depths.add(n.depth)
    assert max(depths) == MAX_ORIENT_DEPTH


def test_orient_visit_cap(monkeypatch, rng):
    events = []
    neighbors = Node.neighbors
    sense = lucky.new_node

    def expanding(self):
        events.append(("expand", self.point))
        return neighbors(self)

    def sensing(p, val, parent=None):
        n = sense(p, val, parent)
        if n is not None:
            events.append(("sense", p))
        return n

    monkeypatch.setattr(Node, "neighbors", expanding)
    monkeypatch.setattr(lucky, "new_node", sensing)
    origin = orient(Grid(3, 3), Point(1, 1), rng)

    # A cell is sensed only while it has been expanded fewer than VISIT_CAP times.
    expanded = Counter()
    sensed_after = []
    for event, p in events:
        if event == "expand":
            expanded[p] += 1
        else:
            sensed_after.append(expanded[p])
    assert max(sensed_after) == VISIT_CAP - 1

    # The same cell reached through two parents is two nodes, not one.
    corner = [n for n in walk(origin) if n.point == Point(0, 2) and n.depth == 2]
    assert len(corner) == 2
    assert {n.parent.point for n in corner} == {Point(1, 2), Point(0, 1)}


def test_orient_never_enters_blocked_cells(tangled, rng):
    origin = orient(tangled, Point(2, 5), rng)
    for n in walk(origin):
        if n is origin:
            continue
        assert tangled.get(n.point) not in (WALL, SNEK)


def test_orient_strike_signal(grid, rng):
    b = grid("""
        ....p
        .....
        .sp..
        .s...
        .....
    """)
    origin = orient(b, Point(1, 2), rng)
    assert origin.right is not None
    assert origin.right.can_strike
    for n in walk(origin):
        assert n.can_strike == (n.depth == 1 and b.get(n.point) == PREY)


def test_orient_deterministic_with_seed(tangled):
    def signature(seed):
        origin = orient(tangled, Point(2, 5), random.Random(seed))
        return [(n.depth, n.point, n.yum, n.freedom, n.yuck) for n in walk(origin)]

    assert signature(99) == signature(99)


def make_origin(**children):
    origin = Node(point=Point(5, 5))
    for d, attrs in children.items():
        setattr(origin, d, Node(point=Point(0, 0), parent=origin, depth=1, **attrs))
    return origin


def test_decide_survival_filter(rng):
    origin = make_origin(up=dict(freedom=4, yum=50), down=dict(freedom=5))
    assert decide(origin, 4, rng) == "down"


def test_decide_out_of_moves(rng, caplog):
    origin = make_origin(up=dict(freedom=4), left=dict(freedom=2))
    with caplog.at_level(logging.WARNING, logger="snekfarm.lucky"):
        assert decide(origin, 4, rng) == ""
    assert "out of moves" in caplog.text
    assert decide(Node(point=Point(0, 0)), 1, rng) == ""


def test_decide_strike_beats_food(rng):
    origin = make_origin(up=dict(freedom=20, yum=50), left=dict(freedom=20, can_strike=True))
    assert decide(origin, 3, rng) == "left"


def test_decide_strong_food():
    origin = make_origin(up=dict(freedom=20, yum=9), down=dict(freedom=30, yum=10))
    assert decide(origin, 3, random.Random(0)) == "down"
    tied = make_origin(up=dict(freedom=20, yum=12), right=dict(freedom=40, yum=12))
    assert decide(tied, 3, random.Random(0)) == "up"


def test_decide_clearly_more_open():
    origin = make_origin(up=dict(freedom=10, yum=9), down=dict(freedom=14))
    assert decide(origin, 6, random.Random(0)) == "down"


@pytest.mark.parametrize("seed", range(10))
def test_decide_spread_of_half_length_wanders(seed):
    # 13 - 10 == 6 // 2 is not clearly more open.
    origin = make_origin(up=dict(freedom=10), down=dict(freedom=13, yuck=1))
    assert decide(origin, 6, random.Random(seed)) == "up"


@pytest.mark.parametrize("seed", range(20))
def test_decide_wander_avoids_yuck(seed):
    origin = make_origin(
        up=dict(freedom=10, yuck=1),
        down=dict(freedom=12, yuck=1),
        left=dict(freedom=11),
    )
    assert decide(origin, 6, random.Random(seed)) == "left"


def test_decide_wander_is_random():
    picks = set()
    for seed in range(50):
        origin = make_origin(up=dict(freedom=10), down=dict(freedom=10))
        picks.add(decide(origin, 6, random.Random(seed)))
    assert picks == {"up", "down"}


@pytest.mark.parametrize("seed", range(5))
def test_orient_decide(tangled, seed):
    rng = random.Random(seed)
    n = orient(tangled, Point(2, 5), rng)
    assert decide(n, 6, rng) == "left"


@pytest.mark.parametrize("seed", range(5))
def test_wall_avoid(grid, seed):
    b = grid("""
        .......
        .....f.
        .......
        .......
        s......
        s......
        s......
    """)
    rng = random.Random(seed)
    n = orient(b, Point(0, 0), rng)
    assert n.down is None
    assert n.left is None
    assert decide(n, 3, rng) == "right"


def strike_state(snake, request_body):
    me = snake("me", [(5, 5), (5, 4), (5, 3), (5, 2)])
    prey = snake("prey", [(6, 5), (7, 5), (8, 5)])
    return api.State.from_json(request_body(me, [prey], food=[(4, 5), (3, 5)]))


@pytest.mark.parametrize("seed", range(5))
def test_strike_adjacent_prey(snake, request_body, seed):
    st = strike_state(snake, request_body)
    rng = random.Random(seed)
    origin = orient(observe(st), st.me.head, rng)
    assert origin.left.yum >= 10
    assert decide(origin, st.me.length, rng) == "right"


def test_docile_leaves_prey_alone(snake, request_body):
    st = strike_state(snake, request_body)
    rng = random.Random(3)
    origin = orient(observe(st), st.me.head, rng)
    assert decide(origin, st.me.length, rng, Docile()) == "left"
