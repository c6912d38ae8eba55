# -*- coding: utf-8 -*-
import json
import logging
import os
import sys
from collections import defaultdict
from datetime import datetime

import pandas as pd

from cubeagent import immediate_winning_threats
from cubestate import PLAYER_A, PLAYER_B, key_of, make_empty_board, opponent_of

logger = logging.getLogger("cube.evaluator")


class AgentEvaluator:
    """
    Replays a single game from a history file and measures how each side
    handled immediate wins and threats.
    """

    def __init__(self, history_data):
        self.history = history_data
        self.stats = {}

    def analyze_move(self, board_before, player, move):
        """Scores one move against the immediate wins available before it was played."""
        stats = self.stats[player]
        own_wins = immediate_winning_threats(board_before, player)
        opp_wins = immediate_winning_threats(board_before, opponent_of(player))
        move_key = key_of(*move)

        if own_wins and move_key not in own_wins:
            stats["missed_wins"] += 1
        if move_key in opp_wins:
            stats["blocked_threats"] += 1
        elif opp_wins and move_key not in own_wins:
            stats["missed_blocks"] += 1

    def run_analysis(self):
        """Replays the game, analyzes each move, and returns one report row per side."""
        self.stats = {
            PLAYER_A: defaultdict(float),
            PLAYER_B: defaultdict(float),
        }

        board = make_empty_board()
        for move_info in self.history["move_history"]:
            player = move_info["player_id"]
            x, y, z = move_info["move"]
            self.stats[player]["total_moves"] += 1
            self.stats[player]["total_thinking_time"] += move_info.get("thinking_time", 0.0)

            self.analyze_move(board, player, (x, y, z))
            board[x, y, z] = player

        return self.get_report_data()

    def get_report_data(self):
        setup = self.history["player_setup"]
        winner = self.history.get("winner")
        rows = []
        for player, prefix in ((PLAYER_A, "p1"), (PLAYER_B, "p2")):
            stats = self.stats[player]
            if winner is None:
                result = "Draw"
            elif winner == player:
                result = "Win"
            else:
                result = "Loss"

            moves = int(stats["total_moves"])
            avg_time = stats["total_thinking_time"] / moves if moves > 0 else 0.0
            rows.append(
                {
                    "Game ID": self.history["game_id"],
                    "Agent": setup[f"{prefix}_name"],
                    "Level": setup.get(f"{prefix}_level"),
                    "Side": "A" if player == PLAYER_A else "B",
                    "Moved First": self.history.get("starting_player") == player,
                    "Result": result,
                    "Moves": moves,
                    "Avg. Time (s)": round(avg_time, 4),
                    "Blocked Threats": int(stats["blocked_threats"]),
                    "Missed Wins": int(stats["missed_wins"]),
                    "Missed Blocks": int(stats["missed_blocks"]),
                }
            )
        return rows


class BatchEvaluator:
    """
    Evaluates every game history file in a directory and builds a per-level summary.
    """

    def __init__(self, history_dir):
        self.history_dir = history_dir
        self.all_game_reports = []

    def run_batch_analysis(self):
        logger.info(f"Starting batch analysis in directory: '{self.history_dir}'...")
        if not os.path.isdir(self.history_dir):
            logger.error(f"Directory not found at '{self.history_dir}'")
            return self.all_game_reports

        history_files = sorted(f for f in os.listdir(self.history_dir) if f.endswith(".json"))
        if not history_files:
            logger.warning("No game history files (.json) found.")

        for filename in history_files:
            filepath = os.path.join(self.history_dir, filename)
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    game_data = json.load(f)
                self.all_game_reports.extend(AgentEvaluator(game_data).run_analysis())
                logger.info(f"  - Analyzed {filename}")
            except (OSError, ValueError, KeyError) as e:
                logger.error(f"  - Failed to analyze {filename}: {e}")

        return self.all_game_reports

    def details_frame(self):
        return pd.DataFrame(self.all_game_reports)

    def summary_frame(self):
        details_df = self.details_frame()
        if details_df.empty:
            return details_df

        summary_df = (
            details_df.groupby("Level")
            .agg(
                Games=("Game ID", "count"),
                Wins=("Result", lambda r: int((r == "Win").sum())),
                Losses=("Result", lambda r: int((r == "Loss").sum())),
                Draws=("Result", lambda r: int((r == "Draw").sum())),
                AvgMoves=("Moves", "mean"),
                AvgTime=("Avg. Time (s)", "mean"),
                BlockedThreats=("Blocked Threats", "mean"),
                MissedWins=("Missed Wins", "mean"),
                MissedBlocks=("Missed Blocks", "mean"),
            )
            .reset_index()
        )
        summary_df["Win Rate (%)"] = (summary_df["Wins"] / summary_df["Games"] * 100).round(2)
        return summary_df.round(4)

    def generate_report(self, output_dir="evaluation"):
        if not self.all_game_reports:
            logger.warning("No data to generate report.")
            return None

        os.makedirs(output_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        details_path = os.path.join(output_dir, f"evaluation_details_{timestamp}.csv")
        summary_path = os.path.join(output_dir, f"evaluation_summary_{timestamp}.csv")

        self.details_frame().to_csv(details_path, index=False)
        self.summary_frame().to_csv(summary_path, index=False)
        logger.info(f"Evaluation report successfully generated: {summary_path}")
        return details_path, summary_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    history_dir = sys.argv[1] if len(sys.argv) > 1 else "game_history"

    batch_evaluator = BatchEvaluator(history_dir)
    batch_evaluator.run_batch_analysis()
    batch_evaluator.generate_report()
