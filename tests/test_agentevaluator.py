import json
import os

import pandas as pd

from agentevaluator import AgentEvaluator, BatchEvaluator
from cubestate import PLAYER_A, PLAYER_B


def _history(game_id, moves, winner, p1_level=1, p2_level=5):
    players = [PLAYER_A, PLAYER_B]
    return {
        "game_id": game_id,
        "player_setup": {
            "p1_name": f"Level {p1_level} AI",
            "p2_name": f"Level {p2_level} AI",
            "p1_level": p1_level,
            "p2_level": p2_level,
        },
        "starting_player": PLAYER_A,
        "move_history": [
            {"player_id": players[i % 2], "move": list(m), "thinking_time": 0.5, "blocked": False}
            for i, m in enumerate(moves)
        ],
        "winner": winner,
        "winner_name": "Draw",
        "winning_line": None,
    }


# A builds the x axis, B never blocks, A completes it
MISSED_BLOCK_GAME = [(0, 0, 0), (0, 3, 3), (1, 0, 0), (1, 3, 3), (2, 0, 0), (3, 3, 0), (3, 0, 0)]
# A threatens, B blocks, then B misses its own win on the z axis at (3,3,3)
MISSED_WIN_GAME = [
    (0, 0, 0), (3, 3, 0),
    (1, 0, 0), (3, 3, 1),
    (2, 0, 0), (3, 0, 0),
    (0, 2, 1), (3, 3, 2),
    (1, 2, 1), (1, 1, 1),
]


def test_missed_block_is_counted():
    rows = AgentEvaluator(_history("g1", MISSED_BLOCK_GAME, PLAYER_A)).run_analysis()
    by_side = {row["Side"]: row for row in rows}

    assert by_side["A"]["Result"] == "Win"
    assert by_side["A"]["Moves"] == 4
    assert by_side["A"]["Missed Wins"] == 0
    assert by_side["A"]["Moved First"]
    assert by_side["B"]["Result"] == "Loss"
    assert by_side["B"]["Moves"] == 3
    assert by_side["B"]["Missed Blocks"] == 1
    assert by_side["B"]["Blocked Threats"] == 0
    assert by_side["B"]["Avg. Time (s)"] == 0.5


def test_blocks_and_missed_wins_are_counted():
    rows = AgentEvaluator(_history("g2", MISSED_WIN_GAME, None)).run_analysis()
    by_side = {row["Side"]: row for row in rows}

    assert by_side["B"]["Blocked Threats"] == 1
    assert by_side["B"]["Missed Wins"] == 1
    assert by_side["A"]["Result"] == "Draw"
    assert by_side["B"]["Result"] == "Draw"


def test_batch_report(tmp_path):
    history_dir = tmp_path / "history"
    history_dir.mkdir()
    for name, moves, winner in (("g1", MISSED_BLOCK_GAME, PLAYER_A), ("g2", MISSED_WIN_GAME, None)):
        with open(history_dir / f"game_{name}.json", "w", encoding="utf-8") as f:
            json.dump(_history(name, moves, winner), f)
    (history_dir / "broken.json").write_text("{not json", encoding="utf-8")

    evaluator = BatchEvaluator(str(history_dir))
    reports = evaluator.run_batch_analysis()
    assert len(reports) == 4

    summary = evaluator.summary_frame().set_index("Level")
    assert summary.loc[1, "Games"] == 2
    assert summary.loc[1, "Wins"] == 1
    assert summary.loc[1, "Win Rate (%)"] == 50.0
    assert summary.loc[5, "Losses"] == 1
    assert summary.loc[5, "Draws"] == 1

    details_path, summary_path = evaluator.generate_report(str(tmp_path / "evaluation"))
    assert os.path.exists(details_path)
    assert len(pd.read_csv(summary_path)) == 2


def test_missing_directory_and_empty_report(tmp_path):
    evaluator = BatchEvaluator(str(tmp_path / "nowhere"))
    assert evaluator.run_batch_analysis() == []
    assert evaluator.summary_frame().empty
    assert evaluator.generate_report(str(tmp_path / "evaluation")) is None
