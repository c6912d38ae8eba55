# -*- coding: utf-8 -*-

from typing import List, Optional, Tuple

import numpy as np

from cubestate import SIZE, Coord, check_coord, in_bounds

WinLine = Tuple[Coord, Coord, Coord, Coord]

# 13 directions, one of each +/- pair: 3 axes, 6 face diagonals, 4 space diagonals
DIRECTIONS = [
    (1, 0, 0), (0, 1, 0), (0, 0, 1),
    (1, 1, 0), (1, -1, 0),
    (1, 0, 1), (1, 0, -1),
    (0, 1, 1), (0, 1, -1),
    (1, 1, 1), (1, 1, -1),
    (1, -1, 1), (1, -1, -1),
]
LINE_LENGTH = 4


def _build_win_lines():
    lines = []
    seen = set()
    for x in range(SIZE):
        for y in range(SIZE):
            for z in range(SIZE):
                for dx, dy, dz in DIRECTIONS:
                    line = []
                    for i in range(LINE_LENGTH):
                        cell = (x + dx * i, y + dy * i, z + dz * i)
                        if not in_bounds(*cell):
                            break
                        line.append(cell)
                    if len(line) != LINE_LENGTH:
                        continue
                    key = tuple(sorted(line))
                    if key not in seen:
                        seen.add(key)
                        lines.append(tuple(line))
    return tuple(lines)


WIN_LINES = _build_win_lines()

# Flat board indices of every line, shape (len(WIN_LINES), 4), for vectorised scans
WIN_LINE_INDEX = np.array(
    [[np.ravel_multi_index(cell, (SIZE, SIZE, SIZE)) for cell in line] for line in WIN_LINES],
    dtype=np.intp,
)
WIN_LINE_INDEX.setflags(write=False)


def line_values(board):
    """Cell values of every catalogued line, one row per line."""
    return board.reshape(-1)[WIN_LINE_INDEX]


def check_win(board, player) -> Optional[WinLine]:
    """Returns the first catalogued line fully owned by `player`, or None."""
    complete = np.all(line_values(board) == player, axis=1)
    if not complete.any():
        return None
    return WIN_LINES[int(np.argmax(complete))]


def get_winning_line_from(board, x, y, z, player) -> Optional[WinLine]:
    """
    Checks only the lines through (x, y, z), assuming `player` has just moved there.
    Walks each direction back to the start of the contiguous run, then forward along it.
    """
    check_coord(x, y, z)
    for dx, dy, dz in DIRECTIONS:
        sx, sy, sz = x, y, z
        while True:
            nx, ny, nz = sx - dx, sy - dy, sz - dz
            if not in_bounds(nx, ny, nz) or board[nx, ny, nz] != player:
                break
            sx, sy, sz = nx, ny, nz

        run = []
        cx, cy, cz = sx, sy, sz
        while in_bounds(cx, cy, cz) and board[cx, cy, cz] == player:
            run.append((cx, cy, cz))
            cx, cy, cz = cx + dx, cy + dy, cz + dz

        if len(run) >= LINE_LENGTH:
            return tuple(run[:LINE_LENGTH])
    return None


# Catalog rows through each flat cell index, in catalog order
_LINES_BY_CELL = tuple(
    np.flatnonzero((WIN_LINE_INDEX == cell).any(axis=1)) for cell in range(SIZE * SIZE * SIZE)
)


def complete_lines_through(board, x, y, z, player) -> List[WinLine]:
    """Every catalogued line through (x, y, z) fully owned by `player`, in catalog order."""
    check_coord(x, y, z)
    rows = _LINES_BY_CELL[int(np.ravel_multi_index((x, y, z), (SIZE, SIZE, SIZE)))]
    owned = np.all(line_values(board)[rows] == player, axis=1)
    return [WIN_LINES[int(row)] for row in rows[owned]]
