"""
lucky - a Battlesnake that reacts only to the board in front of it.

Every turn lucky rebuilds its picture of the board from scratch:

1. observe() labels each occupied cell (snek, prey, food, hazard).
2. orient() grows a tree of reachable cells out from the head, breadth-first,
   up to MAX_ORIENT_DEPTH steps. Each new cell pushes signals back up the
   branch that reached it: yum for food, freedom for open space, yuck for
   hazards.
3. decide() looks at the four first steps and picks one.

Drives, strongest first:
- Survive: never step into walls or bodies, skip obviously tight spaces.
- Strike a smaller snake's head when it is right next to us.
- Seek food when the scent is strong.
- Seek freedom when one direction is clearly more open.
- Otherwise wander, preferring to stay out of hazards.

The walk through the board is shuffled, and so is the final pick when
nothing stands out, so lucky doesn't trace the same loop forever.

Known gaps:
- No sense of time. lucky avoids spaces its own tail would vacate, so it
  never learns to coil.
- Smaller snakes still get eaten by accident even when docile.
"""

import logging
import os
import sys
import time
import random
from collections import defaultdict, deque
from dataclasses import dataclass, field

from snekfarm.api import Point, Snek, State

log = logging.getLogger(__name__)

# Cell labels
WALL = "wall"
SNEK = "snek"
PREY = "prey"
FOOD = "food"
HAZARD = "hazard"
EMPTY = ""

# How far lucky can sense. Bounded by CPU more than anything else.
MAX_ORIENT_DEPTH = 12

# Food is worth crossing the board for.
YUM_SCENT_RANGE = 10

# Hazards only matter up close.
YUCK_SCENT_RANGE = 2

# How many times a cell may be expanded before new branches stop entering
# it. Above 1 so that sensing from adjacent directions can overlap.
VISIT_CAP = 2

DIRECTIONS = ("up", "down", "left", "right")


# ── Occupancy ─────────────────────────────────────────────────────

class Grid:
    """Labels for one turn's board. Anything off the board is a wall."""

    def __init__(self, w: int, h: int):
        self.w = w
        self.h = h
        self.m: dict[Point, str] = {}

    def in_bounds(self, p: Point) -> bool:
        return 0 <= p.x < self.w and 0 <= p.y < self.h

    def set(self, p: Point, val: str):
        self.m[p] = val

    def get(self, p: Point) -> str:
        if not self.in_bounds(p):
            return WALL
        return self.m.get(p, EMPTY)


def observe(st: State) -> Grid:
    """Classify the board. Later writes win: bodies, then food, then hazards."""
    b = Grid(st.board.width, st.board.height)
    for snake in st.board.snakes:
        for i, point in enumerate(snake.body):
            if i == 0 and snake.length < st.me.length:
                b.set(point, PREY)
            else:
                b.set(point, SNEK)
    for point in st.board.food:
        b.set(point, FOOD)
    for point in st.board.hazards:
        b.set(point, HAZARD)
    return b


# ── Perception ────────────────────────────────────────────────────

@dataclass(eq=False)
class Node:
    point: Point
    parent: "Node | None" = None
    depth: int = 0

    # Where can we go from here?
    up: "Node | None" = field(default=None, repr=False)
    down: "Node | None" = field(default=None, repr=False)
    left: "Node | None" = field(default=None, repr=False)
    right: "Node | None" = field(default=None, repr=False)

    # Cumulative signals
    yum: int = 0
    freedom: int = 0
    yuck: int = 0
    can_strike: bool = False

    def ancestors(self):
        """Yield the chain back to the origin, closest first."""
        n = self.parent
        while n is not None:
            yield n
            n = n.parent

    def children(self):
        """(direction, node) for each reachable neighbor, in fixed order."""
        for d in DIRECTIONS:
            n = getattr(self, d)
            if n is not None:
                yield d, n

    def neighbors(self):
        return (("up", self.above()), ("down", self.below()),
                ("left", self.left_of()), ("right", self.right_of()))

    def above(self) -> Point:
        return Point(self.point.x, self.point.y + 1)

    def below(self) -> Point:
        return Point(self.point.x, self.point.y - 1)

    def left_of(self) -> Point:
        return Point(self.point.x - 1, self.point.y)

    def right_of(self) -> Point:
        return Point(self.point.x + 1, self.point.y)


def new_node(p: Point, val: str, parent: Node | None = None) -> Node | None:
    """Sense the cell at p as reached through parent.

    Returns None for cells that can't be entered.
    """
    if val in (WALL, SNEK):
        return None
    depth = parent.depth + 1 if parent is not None else 0
    n = Node(point=p, parent=parent, depth=depth)
    if val == FOOD:
        n.freedom += 1
        attraction = YUM_SCENT_RANGE - depth
        if attraction > 0:
            n.yum += attraction
        for i, anc in enumerate(n.ancestors()):
            if i < attraction:
                anc.yum += attraction - i
            anc.freedom += 1
    elif val == HAZARD:
        n.freedom += 1  # yucky, but still room to move
        repulsion = YUCK_SCENT_RANGE - depth
        if repulsion > 0:
            n.yuck += repulsion
            for i, anc in enumerate(n.ancestors()):
                if i >= repulsion:
                    break
                anc.yuck += repulsion - i
    elif val == EMPTY:
        n.freedom += 1
        for anc in n.ancestors():
            anc.freedom += 1
    elif val == PREY and depth == 1:
        n.can_strike = True
    return n


def orient(b: Grid, head: Point, rng: random.Random | None = None) -> Node:
    """Grow the perception tree from head and return its origin node.

    The same cell may show up on several branches; the tree is not
    deduplicated. Branch order is shuffled with rng so that no direction
    gets sensed first every time.
    """
    rng = rng or random.Random()
    origin = Node(point=head)
    frontier = deque([origin])
    visited: dict[Point, int] = defaultdict(int)
    while frontier:
        cur = frontier.popleft()
        if cur.depth >= MAX_ORIENT_DEPTH:
            continue
        adjacent = []
        for direction, p in cur.neighbors():
            if visited[p] >= VISIT_CAP:
                continue
            n = new_node(p, b.get(p), cur)
            if n is None:
                continue
            setattr(cur, direction, n)
            if n.depth < MAX_ORIENT_DEPTH:
                adjacent.append(n)
        visited[cur.point] += 1
        rng.shuffle(adjacent)
        frontier.extend(adjacent)
    return origin


# ── Decision ──────────────────────────────────────────────────────

@dataclass
class Move:
    direction: str
    node: Node

    @property
    def yum(self) -> int:
        return self.node.yum

    @property
    def freedom(self) -> int:
        return self.node.freedom

    @property
    def yuck(self) -> int:
        return self.node.yuck

    @property
    def can_strike(self) -> bool:
        return self.node.can_strike


class Policy:
    """Picks a direction from moves that already passed the survival check."""

    name = ""

    def choose(self, moves: list[Move], length: int, rng: random.Random) -> str:
        raise NotImplementedError


class Precedence(Policy):
    """Strike, then food, then freedom, then a hazard-shy random wander."""

    name = "precedence"

    def __init__(self, strike: bool = True):
        self.strike = strike

    def choose(self, moves, length, rng):
        if self.strike:
            for m in moves:
                if m.can_strike:
                    return m.direction
        max_yum, max_yum_at = 0, 0
        max_free, max_free_at, min_free = 0, 0, sys.maxsize
        for i, m in enumerate(moves):
            if m.yum > max_yum:
                max_yum, max_yum_at = m.yum, i
            if m.freedom > max_free:
                max_free, max_free_at = m.freedom, i
            if m.freedom < min_free:
                min_free = m.freedom
        if max_yum >= YUM_SCENT_RANGE:
            return moves[max_yum_at].direction
        # Without a strong food signal, aim for a clearly more open space.
        if max_free - min_free > length // 2:
            return moves[max_free_at].direction
        # Otherwise mix it up so we don't go around in circles.
        return jitter(moves, rng)[-1].direction


class Docile(Precedence):
    """Precedence without the strike."""

    name = "docile"

    def __init__(self):
        super().__init__(strike=False)


class RandomWalk(Policy):
    """Any move that fits. The baseline lucky started out as."""

    name = "random"

    def choose(self, moves, length, rng):
        return rng.choice(moves).direction


class Weighted(Policy):
    """One score per move instead of a ladder of drives."""

    name = "weighted"

    def __init__(self, yum: float = 1.0, freedom: float = 0.5,
                 yuck: float = 4.0, strike: float = 100.0):
        self.w_yum = yum
        self.w_freedom = freedom
        self.w_yuck = yuck
        self.w_strike = strike

    def score(self, m: Move) -> float:
        s = m.yum * self.w_yum + m.freedom * self.w_freedom - m.yuck * self.w_yuck
        if m.can_strike:
            s += self.w_strike
        return s

    def choose(self, moves, length, rng):
        best, best_score = moves[0], self.score(moves[0])
        for m in moves[1:]:
            s = self.score(m)
            if s > best_score:
                best, best_score = m, s
        return best.direction


POLICIES = {
    "precedence": Precedence,
    "docile": Docile,
    "random": RandomWalk,
    "weighted": Weighted,
}


def jitter(moves: list[Move], rng: random.Random) -> list[Move]:
    """Order moves yuckiest first; equally yucky moves land in random order."""
    ms = list(moves)
    rng.shuffle(ms)
    ms.sort(key=lambda m: m.yuck, reverse=True)
    return ms


def decide(origin: Node, length: int, rng: random.Random | None = None,
           policy: Policy | None = None) -> str:
    """Pick a direction from origin's children, or "" if none is survivable."""
    rng = rng or random.Random()
    policy = policy or Precedence()
    # Only moves we can fit into. Ignores growth and a retreating tail.
    moves = [Move(d, n) for d, n in origin.children() if n.freedom > length]
    if not moves:
        log.warning("out of moves! head=%s length=%d", origin.point, length)
        return ""
    direction = policy.choose(moves, length, rng)
    log.debug("%s picked %s from %s", policy.name, direction,
              [(m.direction, m.yum, m.freedom, m.yuck) for m in moves])
    return direction


# ── Snek ──────────────────────────────────────────────────────────

class Lucky(Snek):
    def __init__(self, policy: Policy | None = None, rng: random.Random | None = None,
                 entropy=os.urandom):
        super().__init__()
        self.policy = policy or Precedence()
        self.rng = rng or random.Random()
        self.entropy = entropy

    def start(self, st: State) -> None:
        super().start(st)
        self.reseed()

    def reseed(self):
        """Shake off residual determinism between games. Best effort."""
        try:
            seed = int.from_bytes(self.entropy(8), "little", signed=True)
        except OSError as e:
            log.debug("entropy source unavailable, seeding from clock: %s", e)
            seed = time.time_ns()
        self.rng.seed(seed)

    def direction(self) -> str:
        st = self.current_state
        b = observe(st)
        origin = orient(b, st.me.head, self.rng)
        return decide(origin, st.me.length, self.rng, self.policy)


def new(policy: str = "precedence") -> Lucky:
    return Lucky(POLICIES[policy]())


def new_docile() -> Lucky:
    return Lucky(Docile())
