"""
Local Battlesnake game engine for trying strategies against each other.

Simulates the standard Battlesnake rules:
- (0,0) = bottom-left, default board 11x11
- Health starts at 100, decreases by 1 per turn
- Hazard cells cost HAZARD_DAMAGE extra health per turn
- Eating food restores health to 100 and grows the snake
- Death on wall collision, body collision, starvation, or head-to-head
  with a longer/equal snake
- Last snake alive wins; on timeout the longest snake wins

Strategies are callables taking the wire-format game state dict and
returning a move. A strategy may also expose start(data) and end(data),
which are called once per game.
"""

import copy
import logging
import random
from typing import Callable

log = logging.getLogger(__name__)

MoveFunc = Callable[[dict], str]

DIRECTIONS = {
    "up": (0, 1),
    "down": (0, -1),
    "left": (-1, 0),
    "right": (1, 0),
}

START_HEALTH = 100
HAZARD_DAMAGE = 14


def create_snake(snake_id: str, start_x: int, start_y: int) -> dict:
    """A new length-3 snake stacked on one square."""
    head = {"x": start_x, "y": start_y}
    return {
        "id": snake_id,
        "name": snake_id,
        "head": dict(head),
        "body": [dict(head), dict(head), dict(head)],
        "health": START_HEALTH,
        "length": 3,
        "shout": "",
    }


def spawn_food(board: dict, rng: random.Random, count: int = 1) -> None:
    """Spawn food on squares free of snakes, food and hazards."""
    w, h = board["width"], board["height"]
    occupied = {(seg["x"], seg["y"]) for snake in board["snakes"] for seg in snake["body"]}
    occupied.update((f["x"], f["y"]) for f in board["food"])
    occupied.update((z["x"], z["y"]) for z in board["hazards"])

    free = [(x, y) for x in range(w) for y in range(h) if (x, y) not in occupied]
    for _ in range(min(count, len(free))):
        pos = rng.choice(free)
        free.remove(pos)
        board["food"].append({"x": pos[0], "y": pos[1]})


def make_game_state(game_id: str, board: dict, snake: dict, turn: int) -> dict:
    """The request body a strategy sees for this turn."""
    return {
        "game": {"id": game_id, "ruleset": {"name": "standard"}, "timeout": 500},
        "turn": turn,
        "you": copy.deepcopy(snake),
        "board": copy.deepcopy(board),
    }


def _call_hook(strategy, hook: str, data: dict) -> None:
    fn = getattr(strategy, hook, None)
    if fn is not None:
        fn(data)


def resolve_deaths(board: dict, alive_snakes: list[dict], turn: int) -> dict[str, str]:
    """Apply the elimination rules to snakes that just moved."""
    width, height = board["width"], board["height"]
    deaths = {}

    for snake in alive_snakes:
        hx, hy = snake["head"]["x"], snake["head"]["y"]
        if not (0 <= hx < width and 0 <= hy < height):
            deaths[snake["id"]] = f"wall collision (turn {turn})"
        elif snake["health"] <= 0:
            deaths[snake["id"]] = f"starvation (turn {turn})"

    # Body collisions: any segment but the head, own body included
    for snake in alive_snakes:
        if snake["id"] in deaths:
            continue
        head = snake["head"]
        for other in alive_snakes:
            if any(seg == head for seg in other["body"][1:]):
                deaths[snake["id"]] = f"body collision with {other['id']} (turn {turn})"
                break

    heads = {}
    for snake in alive_snakes:
        if snake["id"] in deaths:
            continue
        heads.setdefault((snake["head"]["x"], snake["head"]["y"]), []).append(snake)
    for snakes_at_pos in heads.values():
        if len(snakes_at_pos) < 2:
            continue
        max_len = max(s["length"] for s in snakes_at_pos)
        longest = [s for s in snakes_at_pos if s["length"] == max_len]
        for snake in snakes_at_pos:
            if snake["length"] < max_len:
                deaths[snake["id"]] = f"head-to-head loss vs longer snake (turn {turn})"
            elif len(longest) > 1:
                deaths[snake["id"]] = f"head-to-head tie (turn {turn})"

    return deaths


def run_game(
    strategies: dict[str, MoveFunc],
    width: int = 11,
    height: int = 11,
    max_turns: int = 500,
    seed: int | None = None,
    food_spawn_chance: float = 0.15,
    initial_food: int = 1,
    hazards: list[dict] | None = None,
    game_id: str = "local-test",
    verbose: bool = False,
) -> dict:
    """
    Run a full Battlesnake game.

    Args:
        strategies: dict mapping snake_id -> strategy
        width, height: board dimensions
        max_turns: turn limit
        seed: random seed for reproducible food placement
        food_spawn_chance: probability of spawning food each turn
        initial_food: number of food to spawn besides the center one
        hazards: fixed hazard squares
        game_id: sent to strategies as game.id
        verbose: print turn-by-turn moves

    Returns:
        dict with winner, turns, death_reasons, turn_log, final_snakes
    """
    rng = random.Random(seed)
    snake_ids = list(strategies.keys())

    spawn_points = [
        (1, 1), (width - 2, height - 2),
        (1, height - 2), (width - 2, 1),
        (width // 2, 1), (width // 2, height - 2),
        (1, height // 2), (width - 2, height // 2),
    ]

    board = {
        "width": width,
        "height": height,
        "snakes": [],
        "food": [],
        "hazards": [dict(z) for z in hazards or []],
    }
    for i, sid in enumerate(snake_ids):
        sp = spawn_points[i % len(spawn_points)]
        board["snakes"].append(create_snake(sid, sp[0], sp[1]))

    board["food"].append({"x": width // 2, "y": height // 2})
    spawn_food(board, rng, initial_food)

    for snake in board["snakes"]:
        _call_hook(strategies[snake["id"]], "start", make_game_state(game_id, board, snake, 0))

    hazard_cells = {(z["x"], z["y"]) for z in board["hazards"]}
    death_reasons = {}
    turn_log = []
    last_seen = {snake["id"]: snake for snake in board["snakes"]}

    for turn in range(max_turns):
        alive_snakes = [s for s in board["snakes"] if s["id"] not in death_reasons]
        if len(alive_snakes) <= 1:
            break

        moves = {}
        for snake in alive_snakes:
            state = make_game_state(game_id, board, snake, turn)
            try:
                move = strategies[snake["id"]](state)
            except Exception:
                log.exception("strategy %s failed on turn %d", snake["id"], turn)
                move = None
            if move not in DIRECTIONS:
                move = "up"
            moves[snake["id"]] = move

        if verbose:
            print(f"Turn {turn}: {moves}")

        for snake in alive_snakes:
            dx, dy = DIRECTIONS[moves[snake["id"]]]
            new_head = {"x": snake["head"]["x"] + dx, "y": snake["head"]["y"] + dy}
            snake["body"].insert(0, new_head)
            snake["head"] = dict(new_head)
            snake["health"] -= 1

        eaten = set()
        for snake in alive_snakes:
            for i, f in enumerate(board["food"]):
                if f == snake["head"]:
                    snake["health"] = START_HEALTH
                    snake["length"] += 1
                    eaten.add(i)
                    break
            else:
                snake["body"].pop()
                if (snake["head"]["x"], snake["head"]["y"]) in hazard_cells:
                    snake["health"] -= HAZARD_DAMAGE
        board["food"] = [f for i, f in enumerate(board["food"]) if i not in eaten]

        deaths = resolve_deaths(board, alive_snakes, turn)
        death_reasons.update(deaths)
        for snake in alive_snakes:
            last_seen[snake["id"]] = snake
        board["snakes"] = [s for s in board["snakes"] if s["id"] not in death_reasons]

        if eaten or rng.random() < food_spawn_chance:
            spawn_food(board, rng, 1)

        turn_log.append({
            "turn": turn,
            "moves": dict(moves),
            "alive": [s["id"] for s in board["snakes"]],
            "deaths": deaths,
        })

    final_turn = turn_log[-1]["turn"] if turn_log else 0
    for sid, snake in last_seen.items():
        _call_hook(strategies[sid], "end", make_game_state(game_id, board, snake, final_turn))

    alive = board["snakes"]
    if len(alive) == 1:
        winner = alive[0]["id"]
    elif len(alive) > 1:
        winner = max(alive, key=lambda s: s["length"])["id"]
    else:
        winner = None

    return {
        "winner": winner,
        "turns": final_turn + 1,
        "death_reasons": death_reasons,
        "turn_log": turn_log,
        "final_snakes": {s["id"]: {"length": s["length"], "health": s["health"]} for s in alive},
    }


def run_match(
    strategies: dict[str, MoveFunc],
    games: int = 5,
    seed_base: int | None = None,
    verbose: bool = False,
    **kwargs,
) -> dict:
    """
    Run a best-of-N match between strategies.

    Returns dict with per-strategy win counts, game results, and match winner.
    """
    wins = {sid: 0 for sid in strategies}
    results = []

    for i in range(games):
        seed = (seed_base + i) if seed_base is not None else None
        result = run_game(strategies, seed=seed, game_id=f"local-{i}", verbose=verbose, **kwargs)
        results.append(result)
        if result["winner"]:
            wins[result["winner"]] += 1

    match_winner = max(wins, key=wins.get) if any(wins.values()) else None
    return {
        "match_winner": match_winner,
        "wins": wins,
        "games": results,
        "total_games": games,
    }
