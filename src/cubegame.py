# -*- coding: utf-8 -*-

import logging
import random
from dataclasses import dataclass
from typing import Optional

from cubeagent import MAX_LEVEL, MIN_LEVEL, choose_ai_move, immediate_winning_threats
from cubestate import (
    AI_PLAYER,
    EMPTY,
    PLAYER_A,
    PLAYER_B,
    Coord,
    check_coord,
    clamp_int,
    is_full,
    key_of,
    make_empty_board,
    opponent_of,
)
from cuberules import WinLine, get_winning_line_from

logger = logging.getLogger("cube.game")

FIRST_MOVE_POLICIES = ("alternate", "winner", "random", "red", "blue")
# Wins needed to take the match; None means the match never ends
MATCH_TARGET_WINS = {"bo3": 2, "bo5": 3, "endless": None}
DEMO_PLAYER_NAMES = {PLAYER_A: "CPU 1", PLAYER_B: "CPU 2"}


class IllegalMoveError(ValueError):
    pass


@dataclass
class MoveOutcome:
    move: Coord
    player: int
    winning_line: Optional[WinLine] = None
    blocked_line: Optional[WinLine] = None
    draw: bool = False

    @property
    def game_over(self):
        return self.winning_line is not None or self.draw


@dataclass
class LastMove:
    move: Coord
    player: int
    won: bool = False


class GameSession:
    """
    One game table: the board, whose turn it is, and the running match score.
    Each session owns its board, so independent games never share state.
    """

    def __init__(
        self,
        players_count=1,
        ai_level=1,
        first_move_policy="alternate",
        match_style="bo3",
        player_names=("Player 1", "Player 2"),
        rng=None,
    ):
        if players_count not in (1, 2):
            raise ValueError(f"players_count must be 1 or 2, got {players_count}")
        if first_move_policy not in FIRST_MOVE_POLICIES:
            raise ValueError(f"Unknown first move policy: {first_move_policy}")
        if match_style not in MATCH_TARGET_WINS:
            raise ValueError(f"Unknown match style: {match_style}")

        self.players_count = players_count
        self.ai_level = clamp_int(ai_level, MIN_LEVEL, MAX_LEVEL)
        self.first_move_policy = first_move_policy
        self.match_style = match_style
        self.player_names = {PLAYER_A: player_names[0], PLAYER_B: player_names[1]}
        self.rng = rng or random.Random()

        self.wins = {PLAYER_A: 0, PLAYER_B: 0}
        self.last_winner = None
        self.last_starting_player = None
        self.demo_mode = False
        self._demo_snapshot = None

        self.board = make_empty_board()
        self.current_player = PLAYER_A
        self.game_over = False
        self.winner = None
        self.last_move: Optional[LastMove] = None
        self.reset_board()

    # --- Match flow ---
    def choose_starting_player(self):
        if self.first_move_policy == "red":
            return PLAYER_A
        if self.first_move_policy == "blue":
            return PLAYER_B
        if self.first_move_policy == "winner" and self.last_winner in (PLAYER_A, PLAYER_B):
            return self.last_winner
        if self.first_move_policy == "alternate" and self.last_starting_player in (PLAYER_A, PLAYER_B):
            return opponent_of(self.last_starting_player)
        return PLAYER_A if self.rng.random() < 0.5 else PLAYER_B

    def reset_board(self):
        self.board = make_empty_board()
        self.game_over = False
        self.winner = None
        self.last_move = None
        self.current_player = self.choose_starting_player()
        self.last_starting_player = self.current_player
        logger.info(f"New board. {self.player_names[self.current_player]} moves first.")

    def reset_match(self):
        self.wins = {PLAYER_A: 0, PLAYER_B: 0}
        self.last_winner = None
        self.reset_board()

    def match_target_wins(self):
        return MATCH_TARGET_WINS[self.match_style]

    def is_match_over(self):
        target = self.match_target_wins()
        if target is None:
            return False
        return self.wins[PLAYER_A] >= target or self.wins[PLAYER_B] >= target

    def score_line(self):
        return (
            f"Match score: {self.player_names[PLAYER_A]} {self.wins[PLAYER_A]} - "
            f"{self.wins[PLAYER_B]} {self.player_names[PLAYER_B]}"
        )

    def set_ai_level(self, level):
        self.ai_level = clamp_int(level, MIN_LEVEL, MAX_LEVEL)
        return self.ai_level

    def apply_difficulty_delta(self, delta):
        return self.set_ai_level(self.ai_level + delta)

    # --- Moves ---
    def is_ai_turn(self):
        if self.demo_mode:
            return True
        return self.players_count == 1 and self.current_player == AI_PLAYER

    def place(self, x, y, z) -> MoveOutcome:
        check_coord(x, y, z)
        if self.game_over:
            raise IllegalMoveError("The game is already over")
        if self.board[x, y, z] != EMPTY:
            raise IllegalMoveError(f"Cell {key_of(x, y, z)} is already taken")

        player = self.current_player
        opponent = opponent_of(player)
        threats_before = immediate_winning_threats(self.board, opponent)

        self.board[x, y, z] = player
        outcome = MoveOutcome(
            move=(x, y, z), player=player, blocked_line=threats_before.get(key_of(x, y, z))
        )
        if outcome.blocked_line:
            logger.info(f"{self.player_names[player]} blocked a threat at {outcome.move}.")

        winning_line = get_winning_line_from(self.board, x, y, z, player)
        self.last_move = LastMove(move=(x, y, z), player=player, won=winning_line is not None)
        if winning_line:
            outcome.winning_line = winning_line
            self._finish_win(player)
        elif is_full(self.board):
            outcome.draw = True
            self.game_over = True
            logger.info("Board is full. Draw.")
        else:
            self.current_player = opponent
        return outcome

    def _finish_win(self, player):
        self.game_over = True
        self.winner = player
        self.wins[player] += 1
        self.last_winner = player
        logger.info(f"{self.player_names[player]} wins. {self.score_line()}")

    def ai_move(self, agent=None) -> Optional[MoveOutcome]:
        """
        Lets the AI (or `agent`, anything with `find_best_move(board)`) move for the
        current player. Returns None when there is nothing to play.
        """
        if self.game_over:
            return None
        if agent is not None:
            move = agent.find_best_move(self.board)
        else:
            move = choose_ai_move(self.board, self.ai_level, player=self.current_player, rng=self.rng)
        if move is None:
            return None
        return self.place(*move)

    def undo(self):
        """Takes back the last move. Only offered in two-player games, and only one move deep."""
        if self.players_count != 2 or self.last_move is None:
            return False

        last = self.last_move
        self.last_move = None
        x, y, z = last.move
        self.board[x, y, z] = EMPTY
        # Unlike a plain take-back, undoing the winning move also takes the win off the scoreboard
        if last.won:
            self.wins[last.player] -= 1
            self.last_winner = None
        self.game_over = False
        self.winner = None
        self.current_player = last.player
        return True

    # --- Demo mode ---
    def start_demo(self):
        if self.demo_mode:
            return
        self._demo_snapshot = {
            "players_count": self.players_count,
            "ai_level": self.ai_level,
            "player_names": dict(self.player_names),
            "wins": dict(self.wins),
            "last_winner": self.last_winner,
            "last_starting_player": self.last_starting_player,
        }
        self.demo_mode = True
        self.players_count = 2
        self.player_names = dict(DEMO_PLAYER_NAMES)
        self.wins = {PLAYER_A: 0, PLAYER_B: 0}
        self.last_winner = None
        self.last_starting_player = None
        self.reset_board()

    def exit_demo(self):
        if not self.demo_mode:
            return
        self.demo_mode = False
        snapshot = self._demo_snapshot or {}
        self._demo_snapshot = None
        self.players_count = snapshot.get("players_count", self.players_count)
        self.ai_level = snapshot.get("ai_level", self.ai_level)
        self.player_names = snapshot.get("player_names", self.player_names)
        self.wins = snapshot.get("wins", {PLAYER_A: 0, PLAYER_B: 0})
        self.last_winner = snapshot.get("last_winner")
        self.last_starting_player = snapshot.get("last_starting_player")
        self.reset_board()
