# -*- coding: utf-8 -*-

import argparse
import json
import logging
import os
import random
import time
from datetime import datetime

import requests

from cubeagent import CubeAgent
from cubegame import GameSession
from cubestate import PLAYER_A, PLAYER_B, board_to_list
from gamelog import GameLogger

logger = logging.getLogger("cube.match")


class AgentUnavailableError(Exception):
    pass


class LocalAgent:
    """Runs the move selector in-process."""

    def __init__(self, level, rng=None, name=None):
        self.level = level
        self.rng = rng or random.Random()
        self.name = name or f"Level {level} AI"

    def get_move(self, board, player, new_game=False):
        agent = CubeAgent(ai_level=self.level, player=player, rng=self.rng)
        return agent.find_best_move(board)


class RemoteAgent:
    """Asks an agent service (`cubeagent.py` running elsewhere) for moves over HTTP."""

    def __init__(self, url, level, timeout=10, retries=3, name=None):
        self.url = url.rstrip("/")
        self.level = level
        self.timeout = timeout
        self.retries = retries
        self.name = name or f"Remote level {level} AI"

    def build_payload(self, board, player, new_game):
        return {
            "board": board_to_list(board),
            "player": player,
            "ai_level": self.level,
            "new_game": new_game,
        }

    def get_move(self, board, player, new_game=False):
        payload = self.build_payload(board, player, new_game)
        for attempt in range(1, self.retries + 1):
            try:
                response = requests.post(f"{self.url}/get_move", json=payload, timeout=self.timeout)
                response.raise_for_status()
                move = response.json().get("move")
                return tuple(move) if move is not None else None
            except requests.RequestException as e:
                logger.warning(f"{self.name}: request {attempt}/{self.retries} failed: {e}")
                if attempt < self.retries:
                    time.sleep(0.5 * attempt)
        raise AgentUnavailableError(f"{self.name} at {self.url} did not answer after {self.retries} attempts")


def play_game(agent_a, agent_b, session=None, think_delay=(0.0, 0.0), rng=None):
    """
    Plays one game to the end with an AI on each side and returns its history.
    `think_delay` is a (min, max) pause in seconds before every AI move.
    """
    rng = rng or random.Random()
    session = session or GameSession(players_count=2, first_move_policy="alternate", rng=rng)
    session.reset_board()
    agents = {PLAYER_A: agent_a, PLAYER_B: agent_b}
    first_move = {PLAYER_A: True, PLAYER_B: True}

    history = {
        "game_id": datetime.now().strftime("%Y%m%d_%H%M%S_%f"),
        "player_setup": {
            "p1_name": agent_a.name,
            "p2_name": agent_b.name,
            "p1_level": agent_a.level,
            "p2_level": agent_b.level,
        },
        "starting_player": session.current_player,
        "move_history": [],
        "winner": None,
        "winner_name": "Draw",
        "winning_line": None,
    }

    while not session.game_over:
        player = session.current_player
        low, high = think_delay
        if high > 0:
            time.sleep(rng.uniform(low, high))

        start_time = time.time()
        move = agents[player].get_move(session.board, player, new_game=first_move[player])
        thinking_time = time.time() - start_time
        first_move[player] = False
        if move is None:
            logger.warning(f"{agents[player].name} returned no move. Stopping game.")
            break

        outcome = session.place(*move)
        history["move_history"].append(
            {
                "player_id": player,
                "move": list(move),
                "thinking_time": thinking_time,
                "blocked": outcome.blocked_line is not None,
            }
        )
        if outcome.winning_line:
            history["winner"] = player
            history["winner_name"] = agents[player].name
            history["winning_line"] = [list(cell) for cell in outcome.winning_line]

    logger.info(
        f"Game {history['game_id']} finished after {len(history['move_history'])} moves. "
        f"Winner: {history['winner_name']}"
    )
    return history


def save_game_history(history, directory="game_history"):
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"game_{history['game_id']}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(history, f, indent=2)
    logger.info(f"Game history saved to {path}")
    return path


def make_agent(level, url=None, rng=None):
    if url:
        return RemoteAgent(url, level)
    return LocalAgent(level, rng=rng)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Plays AI-vs-AI games on the 4x4x4 cube and saves their histories.")
    parser.add_argument("--level-a", type=int, default=3, help="Difficulty of player A (1-5)")
    parser.add_argument("--level-b", type=int, default=5, help="Difficulty of player B (1-5)")
    parser.add_argument("--url-a", type=str, default=None, help="Agent service URL for player A (default: in-process)")
    parser.add_argument("--url-b", type=str, default=None, help="Agent service URL for player B (default: in-process)")
    parser.add_argument("-n", "--games", type=int, default=10, help="Number of games to play")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    parser.add_argument("--history-dir", type=str, default="game_history")
    parser.add_argument("--logs-dir", type=str, default="./logs")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    agent_a = make_agent(args.level_a, args.url_a, rng)
    agent_b = make_agent(args.level_b, args.url_b, rng)
    session = GameSession(players_count=2, first_move_policy="alternate", match_style="endless", rng=rng)
    game_logger = GameLogger(args.logs_dir)

    for i in range(args.games):
        game_logger.start_new_game()
        history = play_game(agent_a, agent_b, session=session, rng=rng)
        save_game_history(history, args.history_dir)
        print(f"Game {i + 1}/{args.games}: {history['winner_name']} ({session.score_line()})")
    game_logger.close()
