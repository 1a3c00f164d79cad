#!/usr/bin/env python3
"""
Arena runner - pit the lucky variants against each other locally.

Usage:
    snekfarm-arena                                  # every pairing, best-of-5
    snekfarm-arena --games 10 --seed 42             # reproducible food
    snekfarm-arena --snake lucky --snake luckyrandom
    snekfarm-arena --ffa                            # free-for-all
    snekfarm-arena --verbose                        # turn-by-turn output
"""

import argparse
import itertools
import logging
import sys
import time

from snekfarm import api, engine
from snekfarm.server import STRATEGIES
from snekfarm.sessions import EndPolicy, SessionManager


class Player:
    """Drives a snek through the same session lifecycle the server uses."""

    def __init__(self, name: str, new_snek):
        self.name = name
        self.sessions = SessionManager(new_snek, EndPolicy.IGNORE)

    def start(self, data: dict) -> None:
        self.sessions.start(api.State.from_json(data))

    def __call__(self, data: dict) -> str:
        move, _ = self.sessions.move(api.State.from_json(data))
        return move

    def end(self, data: dict) -> None:
        self.sessions.end(api.State.from_json(data))


def print_match_result(a: str, b: str, result: dict):
    a_wins = result["wins"].get(a, 0)
    b_wins = result["wins"].get(b, 0)
    print(f"\n  {a} {a_wins} - {b_wins} {b}  ({result['total_games']} games)")
    for i, game in enumerate(result["games"]):
        winner = game["winner"] or "draw"
        deaths = "".join(f" [{sid}: {reason}]" for sid, reason in game["death_reasons"].items())
        print(f"    Game {i+1}: winner={winner:15s} turns={game['turns']:4d}{deaths}")


def run_ffa(names: list[str], games: int, seed_base, verbose: bool, **kwargs):
    print("\n" + "-" * 65)
    print("  FREE-FOR-ALL")
    print("-" * 65)
    players = {name: Player(name, STRATEGIES[name]) for name in names}
    result = engine.run_match(players, games=games, seed_base=seed_base, verbose=verbose, **kwargs)
    for i, game in enumerate(result["games"]):
        w = game["winner"] or "none"
        print(f"  Game {i+1}: winner={w:15s}  turns={game['turns']:4d}")
        for sid, reason in game["death_reasons"].items():
            print(f"           {sid}: {reason}")

    print(f"\n  FFA Results ({games} games):")
    ranked = sorted(result["wins"].items(), key=lambda x: -x[1])
    for rank, (sid, w) in enumerate(ranked, 1):
        pct = w / games * 100
        print(f"    {rank}. {sid:15s}  {w:2d} wins ({pct:5.1f}%)  {'#' * int(pct / 5)}")
    return result


def run_pairings(names: list[str], games: int, seed_base, verbose: bool, **kwargs):
    totals = {name: 0 for name in names}
    for a, b in itertools.combinations(names, 2):
        players = {a: Player(a, STRATEGIES[a]), b: Player(b, STRATEGIES[b])}
        start = time.time()
        result = engine.run_match(players, games=games, seed_base=seed_base, verbose=verbose, **kwargs)
        print_match_result(a, b, result)
        print(f"  Time: {time.time() - start:.1f}s")
        totals[a] += result["wins"][a]
        totals[b] += result["wins"][b]

    print(f"\n{'=' * 65}")
    print("  OVERALL RESULTS")
    print(f"{'=' * 65}")
    for name, w in sorted(totals.items(), key=lambda x: -x[1]):
        print(f"    {name:15s}: {w} wins")
    return totals


def main(argv=None):
    parser = argparse.ArgumentParser(description="Local arena for the lucky Battlesnakes")
    parser.add_argument("--snake", action="append", choices=list(STRATEGIES),
                        help="Strategy to enter (repeatable, default: all)")
    parser.add_argument("--games", type=int, default=5, help="Games per match (default: 5)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--width", type=int, default=11)
    parser.add_argument("--height", type=int, default=11)
    parser.add_argument("--max-turns", type=int, default=500)
    parser.add_argument("--ffa", action="store_true", help="Free-for-all with all entrants")
    parser.add_argument("--verbose", "-v", action="store_true", help="Turn-by-turn output")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    names = list(dict.fromkeys(args.snake or STRATEGIES))
    if len(names) < 2:
        print("  ERROR: need at least two different snakes")
        sys.exit(1)

    print("=" * 65)
    print("  SNEKFARM ARENA")
    print(f"  Snakes: {', '.join(names)}")
    print(f"  Games per match: {args.games}")
    if args.seed is not None:
        print(f"  Seed: {args.seed}")
    print("=" * 65)

    board = {"width": args.width, "height": args.height, "max_turns": args.max_turns}
    if args.ffa:
        run_ffa(names, args.games, args.seed, args.verbose, **board)
    else:
        run_pairings(names, args.games, args.seed, args.verbose, **board)


if __name__ == "__main__":
    main()
