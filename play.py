"""Play headless 2048 games with a simple policy and report per-game metrics."""

from __future__ import annotations

import argparse
import csv
import random
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from statistics import mean
from typing import Callable, Deque, List, Sequence

import numpy as np

from board_engine import BoardEngine, Direction

Policy = Callable[[BoardEngine, Sequence[Direction], random.Random], Direction]


@dataclass
class GameStats:
    score: int
    moves: int
    max_tile: int


def random_policy(engine: BoardEngine, available: Sequence[Direction], rng: random.Random) -> Direction:
    return rng.choice(list(available))


def greedy_policy(engine: BoardEngine, available: Sequence[Direction], rng: random.Random) -> Direction:
    """Pick the move with the largest immediate score gain; ties broken at random."""
    gains = {direction: engine.peek_move(direction)[1] for direction in available}
    best = max(gains.values())
    return rng.choice([direction for direction in available if gains[direction] == best])


POLICIES = {
    "random": random_policy,
    "greedy": greedy_policy,
}


def run_game(engine: BoardEngine, policy: Policy, rng: random.Random) -> GameStats:
    engine.reset()
    moves = 0

    while True:
        available = engine.get_available_moves()
        if not available:
            break

        direction = policy(engine, available, rng)
        _, _, game_over = engine.step(direction)
        moves += 1

        if game_over:
            break

    return GameStats(score=int(engine.score), moves=moves, max_tile=engine.max_tile())


def summarize(stats: Sequence[GameStats]) -> GameStats:
    return GameStats(
        score=int(mean(s.score for s in stats)) if stats else 0,
        moves=int(mean(s.moves for s in stats)) if stats else 0,
        max_tile=max((s.max_tile for s in stats), default=0),
    )


def prepare_metrics_writer(path: str, append: bool):
    if not path:
        return None, None
    metrics_path = Path(path)
    metrics_path.parent.mkdir(parents=True, exist_ok=True)
    file_exists = metrics_path.exists()
    file_size = metrics_path.stat().st_size if file_exists else 0
    mode = "a" if append and file_exists else "w"
    need_header = mode == "w" or file_size == 0
    handle = metrics_path.open(mode, newline="")
    writer = csv.writer(handle)
    if need_header:
        writer.writerow(["game", "score", "moves", "max_tile"])
    return writer, handle


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--games", type=int, default=100, help="Number of games to play")
    parser.add_argument("--policy", choices=sorted(POLICIES), default="random", help="Move selection policy")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")
    parser.add_argument("--log-interval", type=int, default=10, help="Games between progress lines")
    parser.add_argument(
        "--metrics-path",
        type=str,
        default="",
        help="Optional path to a CSV file where per-game metrics are written",
    )
    parser.add_argument(
        "--metrics-append",
        action="store_true",
        help="Append to an existing metrics file instead of overwriting it",
    )
    return parser.parse_args(argv)


def main(argv=None) -> List[GameStats]:
    args = parse_args(argv)

    policy = POLICIES[args.policy]
    policy_rng = random.Random(args.seed)
    engine = BoardEngine(rng=np.random.default_rng(args.seed))
    recent: Deque[GameStats] = deque(maxlen=max(args.log_interval, 1))
    results: List[GameStats] = []

    writer, handle = prepare_metrics_writer(args.metrics_path, args.metrics_append)
    try:
        for game in range(1, args.games + 1):
            stats = run_game(engine, policy, policy_rng)
            results.append(stats)
            recent.append(stats)

            if writer is not None:
                writer.writerow([game, stats.score, stats.moves, stats.max_tile])
                handle.flush()

            if args.log_interval > 0 and game % args.log_interval == 0:
                window = summarize(list(recent))
                print(
                    f"Game {game:>5}: avg score={window.score:8d} | avg moves={window.moves:5d} | "
                    f"best tile={window.max_tile:5d}"
                )
    finally:
        if handle is not None:
            handle.close()

    total = summarize(results)
    print(
        f"Summary ({args.policy}, {len(results)} games): "
        f"avg score={total.score} | avg moves={total.moves} | best tile={total.max_tile}"
    )
    return results


if __name__ == "__main__":
    main()
