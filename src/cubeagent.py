# -*- coding: utf-8 -*-

import argparse
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Dict, Optional

from flask import Flask, request, jsonify

from cubestate import (
    AI_PLAYER,
    CELL_COUNT,
    CENTER_COORD,
    PLAYER_A,
    PLAYER_B,
    Coord,
    InvalidBoardError,
    OutOfBoundsError,
    board_from_list,
    is_full,
    key_of,
    legal_moves,
    opponent_of,
    tentative_move,
)
from cuberules import WinLine, check_win, complete_lines_through, get_winning_line_from
from gamelog import GameLogger
from heuristic import heuristic_score

logger = logging.getLogger("cube.agent")


# --- Configuration ---
@dataclass(frozen=True)
class AIConfig:
    p_see_win: float  # chance of noticing its own immediate win
    p_see_block: float  # chance of noticing the opponent's immediate win
    sample: int  # candidate moves scored per decision
    use_minimax: bool
    depth: int
    noise: float  # amplitude of uniform noise added to each candidate score


AI_LEVELS = {
    1: AIConfig(p_see_win=0.50, p_see_block=0.18, sample=10, use_minimax=False, depth=0, noise=12.0),
    2: AIConfig(p_see_win=0.70, p_see_block=0.32, sample=14, use_minimax=False, depth=0, noise=9.0),
    3: AIConfig(p_see_win=0.90, p_see_block=0.62, sample=18, use_minimax=False, depth=0, noise=6.0),
    4: AIConfig(p_see_win=0.95, p_see_block=0.85, sample=22, use_minimax=True, depth=2, noise=3.5),
    5: AIConfig(p_see_win=0.97, p_see_block=0.90, sample=26, use_minimax=True, depth=2, noise=3.1),
}
MIN_LEVEL = min(AI_LEVELS)
MAX_LEVEL = max(AI_LEVELS)

# Awareness degrades linearly until this many cells are filled
BUSY_SATURATION = 40
WIN_AWARENESS_DECAY = 0.18
BLOCK_AWARENESS_DECAY = 0.22
MIN_WIN_AWARENESS = 0.20
MIN_BLOCK_AWARENESS = 0.18

WIN_SCORE = 100_000

_default_rng = random.Random()


class SearchTimeout(Exception):
    pass


def ai_config(level) -> AIConfig:
    return AI_LEVELS.get(level, AI_LEVELS[MIN_LEVEL])


def busyness(board_moves_left: int) -> float:
    filled = CELL_COUNT - board_moves_left
    return min(1.0, filled / BUSY_SATURATION)


def awareness(cfg: AIConfig, busy: float):
    p_win = max(MIN_WIN_AWARENESS, cfg.p_see_win - busy * WIN_AWARENESS_DECAY)
    p_block = max(MIN_BLOCK_AWARENESS, cfg.p_see_block - busy * BLOCK_AWARENESS_DECAY)
    return p_win, p_block


def center_distance(move) -> float:
    return sum(abs(c - CENTER_COORD) for c in move)


# --- Immediate threats ---
def try_immediate(board, player) -> Optional[Coord]:
    """First empty cell (lexicographic order) that would complete a line for `player`."""
    for move in legal_moves(board):
        with tentative_move(board, move, player):
            line = get_winning_line_from(board, *move, player)
        if line:
            return move
    return None


def immediate_winning_threats(board, player) -> Dict[str, WinLine]:
    """
    Maps the key of every cell that would win for `player` to the line it completes.
    A cell that completes several lines maps to the first of them in catalog order.
    """
    threats = {}
    for move in legal_moves(board):
        with tentative_move(board, move, player):
            lines = complete_lines_through(board, *move, player)
        if lines:
            threats[key_of(*move)] = lines[0]
    return threats


# --- Search ---
def negamax(board, depth, alpha, beta, player, root_player, ai_level) -> float:
    """
    Bounded negamax with alpha-beta pruning. `player` is the side to move; the
    returned score is from that side's point of view. Losses found closer to the
    root carry a larger penalty so faster wins and slower losses are preferred.
    """
    opp = opponent_of(player)
    if check_win(board, opp):
        return -WIN_SCORE - depth
    if depth == 0 or is_full(board):
        score = heuristic_score(board, root_player, ai_level)
        return score if player == root_player else -score

    best = -math.inf
    # Center-first ordering prunes more
    for move in sorted(legal_moves(board), key=center_distance):
        with tentative_move(board, move, player):
            score = -negamax(board, depth - 1, -beta, -alpha, opp, root_player, ai_level)
        if score > best:
            best = score
        if score > alpha:
            alpha = score
        if alpha >= beta:
            break
    return best


def _check_timeout(start_time, time_limit):
    if time_limit is not None and time.time() - start_time > time_limit:
        raise SearchTimeout()


def choose_ai_move(board, ai_level, player=AI_PLAYER, rng=None, time_limit=None) -> Optional[Coord]:
    """
    Picks a move for `player` at the given difficulty. The board is mutated while
    candidates are scored and is restored before returning. Returns None only when
    the board has no empty cell.
    """
    rng = rng or _default_rng
    moves = legal_moves(board)
    if not moves:
        logger.info("No legal moves left, nothing to choose.")
        return None

    cfg = ai_config(ai_level)
    opp = opponent_of(player)
    busy = busyness(len(moves))
    p_win, p_block = awareness(cfg, busy)

    # 1st Priority: win now, if it is noticed
    if rng.random() < p_win:
        win_now = try_immediate(board, player)
        if win_now:
            logger.info(f"[Level {ai_level}] Immediate win at {win_now}.")
            return win_now

    # 2nd Priority: block, if it is noticed
    if rng.random() < p_block:
        block = try_immediate(board, opp)
        if block:
            logger.info(f"[Level {ai_level}] Blocking opponent's win at {block}.")
            return block

    candidates = rng.sample(moves, min(cfg.sample, len(moves)))
    start_time = time.time()
    best, best_score = None, -math.inf

    try:
        for move in candidates:
            # Cancellation point between candidates, never inside a search
            if best is not None:
                _check_timeout(start_time, time_limit)

            with tentative_move(board, move, player):
                if cfg.use_minimax and cfg.depth > 0:
                    score = -negamax(board, cfg.depth - 1, -math.inf, math.inf, opp, player, ai_level)
                else:
                    score = heuristic_score(board, player, ai_level)
                score += (rng.random() - 0.5) * cfg.noise

            if score > best_score:
                best_score = score
                best = move
    except SearchTimeout:
        logger.warning(
            f"[Level {ai_level}] Time limit hit after {time.time() - start_time:.2f}s, "
            f"returning best move so far {best}."
        )

    if best is None:
        best = rng.choice(moves)
        logger.info(f"Sampling produced nothing. Falling back to random move: {best}")
    else:
        logger.debug(
            f"[Level {ai_level}] Sampled {len(candidates)} moves (busy={busy:.2f}), "
            f"best {best} scored {best_score:.2f}."
        )
    return best


class CubeAgent:
    """Holds the difficulty and random source for one AI seat."""

    def __init__(self, ai_level=1, player=AI_PLAYER, rng=None, time_limit=None):
        self.ai_level = ai_level
        self.player = player
        self.rng = rng or random.Random()
        self.time_limit = time_limit
        self.moves_played = 0

    def find_best_move(self, board):
        move = choose_ai_move(
            board, self.ai_level, player=self.player, rng=self.rng, time_limit=self.time_limit
        )
        if move is not None:
            self.moves_played += 1
        return move

    def reset_for_new_game(self, seed=None):
        self.moves_played = 0
        if seed is not None:
            self.rng.seed(seed)
        logger.info(f"New game signal received. Level {self.ai_level} agent reset.")


# --- Flask HTTP Server ---
app = Flask(__name__)
game_logger = GameLogger()


def _lines_to_json(line):
    return [list(cell) for cell in line] if line else None


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_player(value, default=AI_PLAYER):
    player = default if value is None else value
    if not _is_int(player) or player not in (PLAYER_A, PLAYER_B):
        raise ValueError(f"Invalid player: {player!r}")
    return player


def _parse_level(value):
    if value is None:
        return MIN_LEVEL
    if not _is_int(value) or value not in AI_LEVELS:
        raise ValueError(f"ai_level must be an integer from {MIN_LEVEL} to {MAX_LEVEL}, got {value!r}")
    return value


def _parse_time_limit(value):
    if value is None:
        return None
    if not (_is_int(value) or isinstance(value, float)) or not value >= 0:
        raise ValueError(f"time_limit must be a non-negative number of seconds, got {value!r}")
    return float(value)


def _parse_seed(value):
    if value is not None and not _is_int(value):
        raise ValueError(f"seed must be an integer, got {value!r}")
    return value


@app.route("/get_move", methods=["POST"])
def get_move():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "board" not in data:
        return jsonify({"error": "Invalid input"}), 400

    try:
        board = board_from_list(data["board"])
        player = _parse_player(data.get("player"))
        ai_level = _parse_level(data.get("ai_level"))
        time_limit = _parse_time_limit(data.get("time_limit"))
        seed = _parse_seed(data.get("seed"))
    except (InvalidBoardError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    try:
        if data.get("new_game", False):
            game_logger.start_new_game()

        agent = CubeAgent(
            ai_level=ai_level,
            player=player,
            rng=random.Random(seed) if seed is not None else None,
            time_limit=time_limit,
        )
        logger.info(
            f"Received request: level {agent.ai_level}, player {player}, "
            f"{len(legal_moves(board))} empty cells"
        )

        threats_before = immediate_winning_threats(board, opponent_of(player))
        start_time = time.time()
        move = agent.find_best_move(board)
        thinking_time = time.time() - start_time

        if move is None:
            return jsonify({"move": None, "message": "Board is full"})

        logger.info(f"Move found: {move} in {thinking_time:.3f}s")
        return jsonify(
            {
                "move": list(move),
                "blocked_line": _lines_to_json(threats_before.get(key_of(*move))),
                "thinking_time": thinking_time,
            }
        )
    except Exception:
        logger.exception("An unhandled error occurred in the get_move endpoint.")
        return jsonify({"error": "An internal server error occurred."}), 500


@app.route("/threats", methods=["POST"])
def get_threats():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "board" not in data:
        return jsonify({"error": "Invalid input"}), 400
    try:
        board = board_from_list(data["board"])
        player = _parse_player(data.get("player"), default=PLAYER_A)
    except (InvalidBoardError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    threats = immediate_winning_threats(board, player)
    return jsonify({"threats": {key: _lines_to_json(line) for key, line in threats.items()}})


@app.route("/check_win", methods=["POST"])
def post_check_win():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "board" not in data:
        return jsonify({"error": "Invalid input"}), 400
    try:
        board = board_from_list(data["board"])
        player = _parse_player(data.get("player"), default=PLAYER_A)
        move = data.get("move")
        if move is not None:
            x, y, z = (int(c) for c in move)
            line = get_winning_line_from(board, x, y, z, player)
        else:
            line = check_win(board, player)
    except (InvalidBoardError, OutOfBoundsError, ValueError, TypeError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"winning_line": _lines_to_json(line), "full": is_full(board)})


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="HTTP move service for the 4x4x4 cube AI.")
    parser.add_argument("-p", "--port", type=int, default=5003, help="Port to listen on (default: 5003)")
    parser.add_argument("--logs-dir", type=str, default="./logs", help="Directory for per-game logs")
    args = parser.parse_args()

    game_logger.logs_dir = args.logs_dir
    game_logger.start_new_game()
    app.run(port=args.port, debug=False)
