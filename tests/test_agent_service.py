"""
HTTP tests for the agent service endpoints:
- /get_move on normal, full and malformed boards
- /threats and /check_win queries
"""

import os

import pytest

import cubeagent
from conftest import place_all
from cubestate import PLAYER_A, PLAYER_B, board_to_list, make_empty_board


def _payload(board, **extra):
    data = {"board": board_to_list(board)}
    data.update(extra)
    return data


def test_get_move_on_empty_board(client):
    response = client.post("/get_move", json=_payload(make_empty_board(), ai_level=3, seed=11))
    assert response.status_code == 200
    data = response.get_json()
    assert len(data["move"]) == 3
    assert all(0 <= c < 4 for c in data["move"])
    assert data["blocked_line"] is None
    assert data["thinking_time"] >= 0


def test_get_move_is_reproducible_with_seed(client):
    board = make_empty_board()
    place_all(board, [(1, 1, 1), (2, 2, 2)], PLAYER_A)
    board[0, 0, 0] = PLAYER_B
    first = client.post("/get_move", json=_payload(board, ai_level=4, seed=5)).get_json()
    second = client.post("/get_move", json=_payload(board, ai_level=4, seed=5)).get_json()
    assert first["move"] == second["move"]


def test_get_move_reports_blocked_line(client):
    board = make_empty_board()
    place_all(board, [(0, 0, 0), (1, 0, 0), (2, 0, 0)], PLAYER_A)
    board[3, 3, 3] = PLAYER_B
    # seeds vary the awareness roll; whenever the AI blocks, the line must be reported
    for seed in range(20):
        data = client.post("/get_move", json=_payload(board, ai_level=5, seed=seed)).get_json()
        if data["move"] == [3, 0, 0]:
            assert data["blocked_line"] == [[0, 0, 0], [1, 0, 0], [2, 0, 0], [3, 0, 0]]
            break
    else:
        raise AssertionError("level 5 never blocked in 20 seeds")


def test_get_move_on_full_board(client):
    board = make_empty_board()
    board[:] = PLAYER_A
    board[::2] = PLAYER_B
    data = client.post("/get_move", json=_payload(board)).get_json()
    assert data["move"] is None
    assert data["message"] == "Board is full"


def test_get_move_rejects_bad_input(client):
    assert client.post("/get_move", json={}).status_code == 400
    assert client.post("/get_move", data="nope", content_type="text/plain").status_code == 400
    assert client.post("/get_move", json={"board": [[0, 0], [0, 0]]}).status_code == 400
    bad_player = _payload(make_empty_board(), player=7)
    assert client.post("/get_move", json=bad_player).status_code == 400
    assert client.post("/get_move", json=[1, 2, 3]).status_code == 400


@pytest.mark.parametrize(
    "field, value",
    [
        ("time_limit", "1"),
        ("time_limit", -0.5),
        ("ai_level", "5"),
        ("ai_level", 0),
        ("ai_level", 6),
        ("ai_level", 2.5),
        ("ai_level", True),
        ("seed", "abc"),
        ("player", True),
    ],
)
def test_get_move_rejects_bad_fields(client, field, value):
    response = client.post("/get_move", json=_payload(make_empty_board(), **{field: value}))
    assert response.status_code == 400
    assert field in response.get_json()["error"]


def test_get_move_passes_level_and_time_limit_through(client, monkeypatch):
    seen = {}

    def fake_choose(board, ai_level, player, rng, time_limit):
        seen.update(ai_level=ai_level, player=player, time_limit=time_limit)
        return (1, 2, 3)

    monkeypatch.setattr(cubeagent, "choose_ai_move", fake_choose)
    payload = _payload(make_empty_board(), ai_level=5, time_limit=2, player=1)
    data = client.post("/get_move", json=payload).get_json()
    assert data["move"] == [1, 2, 3]
    assert seen == {"ai_level": 5, "player": 1, "time_limit": 2.0}


def test_new_game_starts_a_log_file(client, tmp_path):
    response = client.post("/get_move", json=_payload(make_empty_board(), new_game=True, seed=1))
    assert response.status_code == 200
    logs = os.listdir(tmp_path / "logs")
    assert len(logs) == 1
    assert logs[0].startswith("gamelog_")


def test_threats_endpoint(client):
    board = make_empty_board()
    place_all(board, [(0, 0, 0), (0, 1, 1), (0, 2, 2)], PLAYER_B)
    data = client.post("/threats", json=_payload(board, player=PLAYER_B)).get_json()
    assert data["threats"] == {"0,3,3": [[0, 0, 0], [0, 1, 1], [0, 2, 2], [0, 3, 3]]}

    data = client.post("/threats", json=_payload(board, player=PLAYER_A)).get_json()
    assert data["threats"] == {}


def test_check_win_endpoint(client):
    board = make_empty_board()
    place_all(board, [(3, 0, 0), (2, 1, 1), (1, 2, 2), (0, 3, 3)], PLAYER_A)

    data = client.post("/check_win", json=_payload(board, player=PLAYER_A)).get_json()
    assert data["winning_line"] is not None
    assert sorted(map(tuple, data["winning_line"])) == [(0, 3, 3), (1, 2, 2), (2, 1, 1), (3, 0, 0)]
    assert data["full"] is False

    anchored = client.post("/check_win", json=_payload(board, player=PLAYER_A, move=[1, 2, 2])).get_json()
    assert sorted(map(tuple, anchored["winning_line"])) == sorted(map(tuple, data["winning_line"]))

    data = client.post("/check_win", json=_payload(board, player=PLAYER_B)).get_json()
    assert data["winning_line"] is None


def test_check_win_rejects_out_of_bounds_move(client):
    response = client.post("/check_win", json=_payload(make_empty_board(), move=[0, 4, 0]))
    assert response.status_code == 400
    response = client.post("/check_win", json=_payload(make_empty_board(), move=[-1, 0, 0]))
    assert response.status_code == 400
