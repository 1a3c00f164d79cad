"""
Battlesnake wire types and the snek lifecycle contract.

The dataclasses mirror the request body the game host posts to /start,
/move and /end. See https://docs.battlesnake.com/api for the field list.

Board coordinates: (0,0) is bottom-left, "up" is y + 1.
"""

from dataclasses import dataclass, field
from typing import Any


class SnekError(Exception):
    """Base class for errors raised while serving a game."""


class GameInProgress(SnekError):
    def __init__(self, key: str = ""):
        super().__init__(f"cannot start a game in progress {key}".rstrip())


class GameNotStarted(SnekError):
    def __init__(self, key: str = ""):
        super().__init__(f"game not started {key}".rstrip())


class BadRequest(SnekError):
    """The request body could not be decoded into a game state."""


@dataclass(frozen=True)
class Point:
    x: int
    y: int

    @classmethod
    def from_json(cls, data: dict) -> "Point":
        return cls(int(data["x"]), int(data["y"]))

    def to_json(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class Battlesnake:
    id: str
    name: str = ""
    health: int = 100
    body: list[Point] = field(default_factory=list)
    latency: str = ""
    head: Point | None = None
    length: int = 0
    shout: str = ""
    squad: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "Battlesnake":
        body = [Point.from_json(p) for p in data.get("body", [])]
        head = Point.from_json(data["head"]) if "head" in data else (body[0] if body else None)
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            health=data.get("health", 100),
            body=body,
            latency=str(data.get("latency", "")),
            head=head,
            length=data.get("length", len(body)),
            shout=data.get("shout", ""),
            squad=data.get("squad", ""),
        )


@dataclass
class Board:
    height: int
    width: int
    food: list[Point] = field(default_factory=list)
    hazards: list[Point] = field(default_factory=list)
    snakes: list[Battlesnake] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "Board":
        return cls(
            height=data["height"],
            width=data["width"],
            food=[Point.from_json(p) for p in data.get("food", [])],
            hazards=[Point.from_json(p) for p in data.get("hazards", [])],
            snakes=[Battlesnake.from_json(s) for s in data.get("snakes", [])],
        )


@dataclass
class Game:
    id: str
    ruleset: dict[str, Any] = field(default_factory=dict)
    timeout: int = 500

    @classmethod
    def from_json(cls, data: dict) -> "Game":
        return cls(
            id=data["id"],
            ruleset=data.get("ruleset") or {},
            timeout=data.get("timeout", 500),
        )


@dataclass
class State:
    """Game state on a given turn, from the point of view of one snake."""
    game: Game
    turn: int
    board: Board
    me: Battlesnake

    @property
    def key(self) -> str:
        return self.game.id + self.me.id

    @classmethod
    def from_json(cls, data: dict) -> "State":
        """Decode a GameRequest body. Raises BadRequest on malformed input."""
        try:
            st = cls(
                game=Game.from_json(data["game"]),
                turn=data.get("turn", 0),
                board=Board.from_json(data["board"]),
                me=Battlesnake.from_json(data["you"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise BadRequest(f"failed to decode request: {e!r}") from e
        if st.me.head is None:
            raise BadRequest(f"failed to decode request: snake {st.me.id!r} has no head")
        return st


def info_response(author: str = "", color: str = "", head: str = "",
                  tail: str = "", version: str = "") -> dict:
    """Body of GET /. Empty fields are omitted."""
    resp = {"apiversion": "1", "author": author, "color": color,
            "head": head, "tail": tail, "version": version}
    return {k: v for k, v in resp.items() if v or k == "apiversion"}


def move_response(move: str, shout: str = "") -> dict:
    return {"move": move, "shout": shout}


class Snek:
    """Interactions of a Battlesnake with the API.

    One instance plays exactly one game: once it has a history, start is
    refused. Subclasses implement direction().
    """

    def __init__(self):
        self.current_state: State | None = None
        self.previous_states: list[State] = []

    def start(self, st: State) -> None:
        if self.current_state is not None or self.previous_states:
            raise GameInProgress(st.key)
        self.current_state = st

    def move(self, st: State) -> tuple[str, str]:
        if self.current_state is None:
            raise GameNotStarted(st.key)
        self.previous_states.append(self.current_state)
        self.current_state = st
        return self.direction(), ""

    def end(self, st: State) -> None:
        if self.current_state is None:
            return
        self.previous_states.extend([self.current_state, st])
        self.current_state = None

    def direction(self) -> str:
        raise NotImplementedError
