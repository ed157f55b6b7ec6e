import random

import pytest

from candy_board import Board
from candy_engine import (
    CandyEngine,
    EngineNotReadyError,
    GenerationStallError,
    InvalidMoveError,
    ReentrancyError,
)
from candy_session import LevelSession


def test_initialize_returns_a_settled_snapshot():
    engine = CandyEngine()
    snapshot = engine.initialize(8, 6, seed=1)
    assert len(snapshot) == 8 and all(len(row) == 8 for row in snapshot)
    assert all(label != "empty" for row in snapshot for label in row)
    assert engine.is_settled()
    assert engine.score == 0
    assert engine.state == "idle" and not engine.busy


def test_same_seed_same_board():
    assert CandyEngine().initialize(seed=9) == CandyEngine().initialize(seed=9)


def test_operations_before_initialize_fail():
    engine = CandyEngine()
    with pytest.raises(EngineNotReadyError):
        engine.propose_swap(0, 0, 0, 1)
    with pytest.raises(EngineNotReadyError):
        engine.get_snapshot()


def test_generation_stall_is_fatal_to_initialize():
    engine = CandyEngine()
    engine.initialize(seed=1)
    before = engine.get_snapshot()
    with pytest.raises(GenerationStallError):
        engine.initialize(8, 1, seed=1)
    assert engine.get_snapshot() == before
    assert not engine.busy


def test_matching_swap_is_accepted(swap_board):
    session = LevelSession(level=1)
    engine = CandyEngine(rng=random.Random(1), budget=session)
    engine.load_board(swap_board)
    moves_before = session.moves_left

    result = engine.propose_swap(1, 0, 1, 1)

    assert result["accepted"]
    assert result["matched_count"] >= 3
    assert result["total_score_delta"] >= 300
    assert result["cascade_rounds"] >= 1
    assert result["move_consumed"]
    assert session.moves_left == moves_before - 1
    assert engine.score == result["total_score_delta"]
    assert engine.is_settled()


def test_non_matching_swap_leaves_everything_alone(bomb_board):
    session = LevelSession(level=1)
    engine = CandyEngine(rng=random.Random(1), budget=session)
    before = engine.load_board(bomb_board)

    result = engine.propose_swap(7, 0, 7, 1)

    assert not result["accepted"]
    assert result["reason"] == "no_match"
    assert not result["move_consumed"]
    assert engine.get_snapshot() == before
    assert session.moves_left == 15
    assert engine.score == 0


@pytest.mark.parametrize("move", [(0, 0, 1, 1), (0, 0, 0, 8), (-1, 0, 0, 0)])
def test_invalid_swaps_are_reported_not_raised(bomb_board, move):
    engine = CandyEngine(rng=random.Random(1))
    before = engine.load_board(bomb_board)
    result = engine.propose_swap(*move)
    assert not result["accepted"]
    assert result["reason"] == "invalid"
    assert engine.get_snapshot() == before


def test_no_moves_left_rejects_without_touching_the_board(swap_board):
    session = LevelSession(level=1, moves=1)
    engine = CandyEngine(rng=random.Random(1), budget=session)
    engine.load_board(swap_board)
    assert engine.propose_swap(1, 0, 1, 1)["accepted"]
    assert session.is_over

    before = engine.get_snapshot()
    move = engine.hint()
    if move is not None:
        (r1, c1), (r2, c2) = move
        result = engine.propose_swap(r1, c1, r2, c2)
        assert not result["accepted"]
        assert result["reason"] == "no_moves_left"
    assert engine.get_snapshot() == before
    assert session.moves_left == 0


def test_reentrant_swap_from_a_cue_is_refused(swap_board):
    refused = []

    def cue(event, payload):
        if event == "explode" and not refused:
            with pytest.raises(ReentrancyError):
                engine.propose_swap(0, 0, 0, 1)
            with pytest.raises(ReentrancyError):
                engine.trigger_color_bomb()
            refused.append(engine.state)

    engine = CandyEngine(rng=random.Random(1), cue=cue)
    engine.load_board(swap_board)
    result = engine.propose_swap(1, 0, 1, 1)

    assert result["accepted"]
    assert refused == ["resolving"]
    assert not engine.busy
    assert engine.state == "idle"


def test_failure_mid_cascade_rolls_back(swap_board):
    def cue(event, payload):
        if event == "clear":
            raise RuntimeError("renderer crashed")

    engine = CandyEngine(rng=random.Random(1), cue=cue)
    before = engine.load_board(swap_board)
    with pytest.raises(RuntimeError):
        engine.propose_swap(1, 0, 1, 1)
    assert engine.get_snapshot() == before
    assert engine.score == 0
    assert not engine.busy


def test_colour_bomb_through_the_engine(bomb_board):
    session = LevelSession(level=1)
    engine = CandyEngine(rng=random.Random(6), budget=session)
    engine.load_board(bomb_board)
    result = engine.trigger_color_bomb()
    assert result["cleared_count"] == 14
    assert result["bonus_score"] == 2600
    assert engine.score == 2600 + result["cascade_score"]
    assert session.moves_left == 15
    assert engine.is_settled()


def test_trigger_effect_dispatches_requests(bomb_board):
    engine = CandyEngine(rng=random.Random(6))
    engine.load_board(bomb_board)
    result = engine.trigger_effect({"type": "color_bomb", "target_color": "yellow"})
    assert result["target_color"] == "yellow"
    assert result["cleared_count"] == 11
    with pytest.raises(ValueError):
        engine.trigger_effect({"type": "rainbow"})


def test_automatic_moves_do_not_spend_the_budget():
    session = LevelSession(level=3)
    engine = CandyEngine(rng=random.Random(3), budget=session)
    engine.initialize(8, 4)
    result = engine.run_automatic_moves(3)
    assert result["executed"] == 3
    assert session.moves_left == 16
    assert engine.score == result["total_score_delta"]
    assert engine.is_settled()


def test_automatic_move_count_must_be_a_whole_number():
    engine = CandyEngine()
    engine.initialize(seed=1)
    with pytest.raises(ValueError):
        engine.run_automatic_moves(-1)
    assert engine.run_automatic_moves(0)["executed"] == 0


def test_free_switch_spends_no_move(bomb_board):
    session = LevelSession(level=1)
    engine = CandyEngine(rng=random.Random(0), budget=session)
    engine.load_board(bomb_board)
    result = engine.free_switch(7, 0, 7, 7)
    assert result["accepted"]
    assert not result["move_consumed"]
    assert engine.get_snapshot()[7][0] == "yellow"
    assert session.moves_left == 15
    assert not engine.free_switch(7, 0, 9, 9)["accepted"]


def test_lollipop_hammer_through_trigger_effect(bomb_board):
    engine = CandyEngine(rng=random.Random(0))
    engine.load_board(bomb_board)
    result = engine.trigger_effect({"type": "lollipop_hammer", "cells": [(3, 3), (4, 4)]})
    assert result["bonus_score"] == 300
    assert engine.is_settled()


def test_two_swaps_score_one_hundred_per_cleared_candy(swap_board):
    rounds = []

    def cue(event, payload):
        if event == "explode":
            rounds.append(payload["points"])

    engine = CandyEngine(rng=random.Random(21), cue=cue)
    engine.load_board(swap_board)
    first = engine.propose_swap(1, 0, 1, 1)
    assert first["accepted"]

    move = engine.hint()
    if move is None:
        assert engine.reshuffle()
        move = engine.hint()
    (r1, c1), (r2, c2) = move
    second = engine.propose_swap(r1, c1, r2, c2)
    assert second["accepted"]

    assert len(rounds) == first["cascade_rounds"] + second["cascade_rounds"]
    assert engine.score == sum(rounds) == (first["matched_count"] + second["matched_count"]) * 100
    assert engine.is_settled()


def test_score_never_goes_down_across_a_session():
    engine = CandyEngine(rng=random.Random(17))
    engine.initialize(8, 6)
    scores = [engine.score]
    for turn in range(12):
        move = engine.hint()
        if move is None:
            engine.reshuffle()
        else:
            (r1, c1), (r2, c2) = move
            engine.propose_swap(r1, c1, r2, c2)
        engine.propose_swap(0, 0, 0, 1)
        if turn % 4 == 0:
            engine.trigger_color_bomb()
        if turn % 5 == 0:
            engine.run_automatic_moves(1)
        scores.append(engine.score)
        assert engine.is_settled()
    assert scores == sorted(scores)
    assert scores[-1] > 0


def test_reshuffle_keeps_a_settled_board():
    engine = CandyEngine(rng=random.Random(2))
    engine.initialize(seed=2)
    counts = engine.board.count_types()
    assert engine.reshuffle()
    assert engine.board.count_types() == counts
    assert engine.is_settled()
    assert engine.has_moves()


def test_load_board_rejects_unsettled_positions():
    engine = CandyEngine()
    with pytest.raises(ValueError):
        engine.load_board(Board.from_rows(["rrr", "gbg", "bgb"]))


def test_load_board_uses_the_configured_palette():
    engine = CandyEngine(config={"board": {"palette_size": 4}}, rng=random.Random(9))
    engine.load_board(["rogy", "ygro", "rogy", "ygro"])
    assert engine.board.palette_size == 4
    assert engine.palette() == ["red", "orange", "yellow", "green"]

    engine.lollipop_hammer([(0, 0)])
    assert {label for row in engine.get_snapshot() for label in row} <= {"red", "orange", "yellow", "green"}


def test_load_board_rejects_a_board_with_another_palette(bomb_board):
    engine = CandyEngine(config={"board": {"palette_size": 4}})
    with pytest.raises(ValueError):
        engine.load_board(bomb_board)
    assert engine.board is None


@pytest.mark.parametrize("request_", [
    {"type": "free_switch"},
    {"type": "free_switch", "cells": [(0, 0)]},
    {"type": "free_switch", "cells": 7},
    {"type": "lollipop_hammer", "cells": [(0.5, 1)]},
    {"type": "lollipop_hammer", "cells": [(True, 1)]},
    {"type": "lollipop_hammer", "cells": [3]},
])
def test_malformed_effect_requests_are_invalid_moves(bomb_board, request_):
    engine = CandyEngine(rng=random.Random(0))
    before = engine.load_board(bomb_board)
    with pytest.raises(InvalidMoveError):
        engine.trigger_effect(request_)
    assert engine.get_snapshot() == before
    assert engine.score == 0
    assert not engine.busy
