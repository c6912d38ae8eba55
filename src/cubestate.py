# -*- coding: utf-8 -*-

from contextlib import contextmanager
from typing import List, Tuple

import numpy as np


# --- Configuration ---
SIZE = 4
EMPTY = 0
PLAYER_A = 1
PLAYER_B = 2
AI_PLAYER = PLAYER_B  # the AI always plays the second colour in one-player mode
CELL_COUNT = SIZE * SIZE * SIZE
CENTER_COORD = (SIZE - 1) / 2  # 1.5 on every axis

Coord = Tuple[int, int, int]


class OutOfBoundsError(IndexError):
    pass


class InvalidBoardError(ValueError):
    pass


def make_empty_board():
    return np.zeros((SIZE, SIZE, SIZE), dtype=np.int8)


def board_from_list(cells):
    """Builds a board from nested lists, rejecting anything that is not a 4x4x4 grid of 0/1/2."""
    try:
        board = np.array(cells, dtype=np.int8)
    except (TypeError, ValueError) as e:
        raise InvalidBoardError(f"Board is not a numeric grid: {e}")
    if board.shape != (SIZE, SIZE, SIZE):
        raise InvalidBoardError(f"Board must be {SIZE}x{SIZE}x{SIZE}, got {board.shape}")
    if not np.isin(board, (EMPTY, PLAYER_A, PLAYER_B)).all():
        raise InvalidBoardError("Board contains invalid cell values")
    return board


def board_to_list(board):
    return board.tolist()


def key_of(x, y, z) -> str:
    return f"{x},{y},{z}"


def in_bounds(x, y, z) -> bool:
    return 0 <= x < SIZE and 0 <= y < SIZE and 0 <= z < SIZE


def check_coord(x, y, z):
    # numpy would happily wrap negative indices, so bounds are checked by hand
    if not in_bounds(x, y, z):
        raise OutOfBoundsError(f"Cell {(x, y, z)} is outside the {SIZE}x{SIZE}x{SIZE} cube")


def opponent_of(player: int) -> int:
    return PLAYER_B if player == PLAYER_A else PLAYER_A


def legal_moves(board) -> List[Coord]:
    """All empty cells in lexicographic (x, y, z) order."""
    return [(int(x), int(y), int(z)) for x, y, z in np.argwhere(board == EMPTY)]


def is_full(board) -> bool:
    return not np.any(board == EMPTY)


def filled_count(board) -> int:
    return int(np.count_nonzero(board))


def clamp_int(n, lo, hi) -> int:
    try:
        n = int(n)
    except (TypeError, ValueError, OverflowError):
        return lo
    return max(lo, min(hi, n))


@contextmanager
def tentative_move(board, coord, player):
    """Places `player` at `coord` for the duration of the block and always clears it afterwards."""
    x, y, z = coord
    check_coord(x, y, z)
    board[x, y, z] = player
    try:
        yield board
    finally:
        board[x, y, z] = EMPTY
