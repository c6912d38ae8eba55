# -*- coding: utf-8 -*-

import numpy as np

from cubestate import CENTER_COORD, SIZE, opponent_of
from cuberules import line_values

MAX_PREFERENCE = 4.5

# Bonus for a live line by how many marks one side has in it (4 means the game is over)
LINE_WEIGHTS = np.array([0, 1, 6, 28, 0], dtype=np.float64)

"""
Blend between surface preference (t=0) and center preference (t=1).
Stronger levels lean on the center, and weigh the opponent's positions more
heavily relative to their own.
"""
CENTER_BLEND_BY_LEVEL = {1: 0.00, 2: 0.25, 3: 0.50, 4: 0.75, 5: 0.90}
SELF_SCALE_BY_LEVEL = {1: 0.55, 2: 0.45, 3: 0.30, 4: 0.35, 5: 0.40}
OPP_SCALE_BY_LEVEL = {1: 0.05, 2: 0.10, 3: 0.18, 4: 0.22, 5: 0.25}
DEFAULT_CENTER_BLEND = 0.25
DEFAULT_SELF_SCALE = 0.40
DEFAULT_OPP_SCALE = 0.18


def positional_preference(level, x, y, z) -> float:
    center_dist = abs(x - CENTER_COORD) + abs(y - CENTER_COORD) + abs(z - CENTER_COORD)
    surface_dist = min(x, SIZE - 1 - x) + min(y, SIZE - 1 - y) + min(z, SIZE - 1 - z)
    center_val = MAX_PREFERENCE - center_dist
    surface_val = MAX_PREFERENCE - surface_dist

    t = CENTER_BLEND_BY_LEVEL.get(level, DEFAULT_CENTER_BLEND)
    return (1 - t) * surface_val + t * center_val


def _preference_table(level):
    table = np.empty((SIZE, SIZE, SIZE), dtype=np.float64)
    for x in range(SIZE):
        for y in range(SIZE):
            for z in range(SIZE):
                table[x, y, z] = positional_preference(level, x, y, z)
    table.setflags(write=False)
    return table


_PREFERENCE_TABLES = {level: _preference_table(level) for level in CENTER_BLEND_BY_LEVEL}
_DEFAULT_PREFERENCE_TABLE = _preference_table(None)


def preference_table(level):
    return _PREFERENCE_TABLES.get(level, _DEFAULT_PREFERENCE_TABLE)


def positional_term(board, for_player, ai_level) -> float:
    opp = opponent_of(for_player)
    table = preference_table(ai_level)
    self_scale = SELF_SCALE_BY_LEVEL.get(ai_level, DEFAULT_SELF_SCALE)
    opp_scale = OPP_SCALE_BY_LEVEL.get(ai_level, DEFAULT_OPP_SCALE)
    own = table[board == for_player].sum()
    theirs = table[board == opp].sum()
    return float(own * self_scale - theirs * opp_scale)


def line_potential_term(board, for_player) -> float:
    """Sum of weights of live lines held by `for_player` minus those held by the opponent."""
    values = line_values(board)
    mine = np.count_nonzero(values == for_player, axis=1)
    theirs = np.count_nonzero(values == opponent_of(for_player), axis=1)
    score = LINE_WEIGHTS[mine[theirs == 0]].sum()
    score -= LINE_WEIGHTS[theirs[mine == 0]].sum()
    return float(score)


def heuristic_score(board, for_player, ai_level) -> float:
    """Higher is better for `for_player`."""
    return positional_term(board, for_player, ai_level) + line_potential_term(board, for_player)
