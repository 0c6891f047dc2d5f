import csv
import random

import numpy as np

import play
from board_engine import BoardEngine, Direction


class TestPolicies:
    def test_greedy_prefers_largest_merge(self):
        engine = BoardEngine.from_rows([
            [2, 2, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [8, 0, 0, 8],
        ])
        available = engine.get_available_moves()
        choice = play.greedy_policy(engine, available, random.Random(0))
        assert choice in (Direction.LEFT, Direction.RIGHT)

    def test_random_policy_stays_in_available(self):
        engine = BoardEngine.from_rows([[2, 4, 8, 16], [0] * 4, [0] * 4, [0] * 4])
        rng = random.Random(1)
        for _ in range(20):
            assert play.random_policy(engine, engine.get_available_moves(), rng) is Direction.DOWN


class TestRunGame:
    def test_game_runs_to_terminal(self):
        engine = BoardEngine(rng=np.random.default_rng(11))
        stats = play.run_game(engine, play.random_policy, random.Random(11))
        assert engine.is_terminal() is True
        assert stats.moves > 0
        assert stats.score == engine.get_score()
        assert stats.max_tile == int(engine.board.max())

    def test_seeded_runs_match(self):
        a = play.run_game(BoardEngine(rng=np.random.default_rng(5)), play.greedy_policy, random.Random(5))
        b = play.run_game(BoardEngine(rng=np.random.default_rng(5)), play.greedy_policy, random.Random(5))
        assert a == b

    def test_summarize_empty(self):
        assert play.summarize([]) == play.GameStats(score=0, moves=0, max_tile=0)


class TestMain:
    def test_writes_metrics_csv(self, tmp_path, capsys):
        metrics = tmp_path / "out" / "metrics.csv"
        results = play.main([
            "--games", "3",
            "--seed", "2",
            "--log-interval", "2",
            "--metrics-path", str(metrics),
        ])
        with metrics.open(newline="") as handle:
            rows = list(csv.DictReader(handle))
        assert [int(row["game"]) for row in rows] == [1, 2, 3]
        assert [int(row["score"]) for row in rows] == [r.score for r in results]

        out = capsys.readouterr().out
        assert "Game     2" in out
        assert "Summary (random, 3 games)" in out

    def test_metrics_append(self, tmp_path):
        metrics = tmp_path / "metrics.csv"
        play.main(["--games", "1", "--metrics-path", str(metrics), "--log-interval", "0"])
        play.main(["--games", "2", "--metrics-path", str(metrics), "--metrics-append", "--log-interval", "0"])
        lines = metrics.read_text().splitlines()
        assert lines[0] == "game,score,moves,max_tile"
        assert len(lines) == 4
