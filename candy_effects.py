# candy_effects.py
#
# Boosters and scripted play. Every effect funnels back into the same
# clear / gravity / cascade machinery a normal swap uses.

import logging

from candy_board import EMPTY, InvalidMoveError, candy_label, candy_value
from candy_config import DEFAULT
from candy_moves import candidate_swaps, find_possible_moves, propose_swap, validate_cell
from candy_simulation import emit, settle_board

logger = logging.getLogger(__name__)

COLOUR_BOMB = "colour_bomb"
SWEET_TEETH = "sweet_teeth"
LOLLIPOP_HAMMER = "lollipop_hammer"
FREE_SWITCH = "free_switch"

EFFECT_ALIASES = {
    "colour_bomb": COLOUR_BOMB,
    "color_bomb": COLOUR_BOMB,
    "color-bomb": COLOUR_BOMB,
    "colour-bomb": COLOUR_BOMB,
    "sweet_teeth": SWEET_TEETH,
    "lollipop_hammer": LOLLIPOP_HAMMER,
    "free_switch": FREE_SWITCH,
}


def normalize_effect_type(effect_type):
    try:
        return EFFECT_ALIASES[str(effect_type).lower()]
    except KeyError:
        raise ValueError(f"Unknown special effect {effect_type!r}") from None


def most_common_type(grid):
    """
    Most frequent candy type on the grid. Ties go to the type met first
    reading row by row. None for a grid without candies.
    """
    candy_count = {}
    for value in grid.flat:
        if value != EMPTY:
            candy_count[int(value)] = candy_count.get(int(value), 0) + 1
    if not candy_count:
        return None
    return max(candy_count, key=candy_count.get)


def colour_bomb(board, rng, scorer, target=None, config=None, cue=None):
    """
    Wipes every candy of one type (the requested colour, or the most common
    one) regardless of runs, scores count * 150 + 500 and cascades the rest.
    """
    cfg = config or DEFAULT
    scoring = cfg["scoring"]
    candy = candy_value(target) if target is not None else most_common_type(board.grid)
    if candy == EMPTY:
        raise ValueError("A colour bomb needs a candy colour, not an empty cell")
    result = {"cleared_count": 0, "bonus_score": 0, "cascade_score": 0,
              "cascade_rounds": 0, "target_color": candy_label(candy) if candy else None}

    cells = board.cells_of_type(candy) if candy is not None else []
    emit(cue, "effect_start", effect=COLOUR_BOMB, target=result["target_color"])
    if not cells:
        logger.info("Colour bomb found no %s candies to clear", result["target_color"])
        emit(cue, "effect_end", effect=COLOUR_BOMB)
        return result

    bonus = scorer.add(len(cells) * scoring["bomb_points_per_candy"] + scoring["bomb_bonus"], COLOUR_BOMB)
    emit(cue, "explode", cells=cells, points=bonus, round=0)
    board.clear(cells)
    emit(cue, "clear", cells=cells, round=0)

    totals = settle_board(board, rng, scorer, config=cfg, cue=cue)
    result.update(cleared_count=len(cells), bonus_score=bonus,
                  cascade_score=totals["score_delta"], cascade_rounds=totals["cascade_rounds"])
    logger.info("Colour bomb cleared %d %s candies for %d points", len(cells), result["target_color"], bonus)
    emit(cue, "effect_end", effect=COLOUR_BOMB)
    return result


def sweet_teeth(board, rng, scorer, config=None, cue=None, chunk_size=3):
    """Gobbles the whole board row by row, a few candies at a time."""
    cfg = config or DEFAULT
    scoring = cfg["scoring"]
    emit(cue, "effect_start", effect=SWEET_TEETH)
    gobbled = []
    for r in range(board.size):
        row_cells = [(r, c) for c in range(board.size) if board.grid[r, c] != EMPTY]
        for i in range(0, len(row_cells), chunk_size):
            chunk = row_cells[i:i + chunk_size]
            emit(cue, "gobble", cells=chunk)
            board.clear(chunk)
            gobbled.extend(chunk)

    result = {"cleared_count": len(gobbled), "bonus_score": 0, "cascade_score": 0, "cascade_rounds": 0}
    if gobbled:
        if len(gobbled) > scoring["sweet_teeth_big_threshold"]:
            bonus = scoring["sweet_teeth_big_bonus"]
        else:
            bonus = scoring["sweet_teeth_small_bonus"]
        result["bonus_score"] = scorer.add(
            len(gobbled) * scoring["sweet_teeth_points_per_candy"] + bonus, SWEET_TEETH
        )
        totals = settle_board(board, rng, scorer, config=cfg, cue=cue)
        result.update(cascade_score=totals["score_delta"], cascade_rounds=totals["cascade_rounds"])
    emit(cue, "effect_end", effect=SWEET_TEETH)
    return result


def validate_hammer_targets(board, cells, strikes):
    try:
        cells = [(r, c) for r, c in cells]
    except (TypeError, ValueError):
        raise InvalidMoveError(f"Hammer targets must be (row, col) pairs, got {cells!r}") from None
    if not 1 <= len(cells) <= strikes:
        raise InvalidMoveError(f"The lollipop hammer takes 1 to {strikes} cells, got {len(cells)}")
    for r, c in cells:
        validate_cell(board, r, c)
    if len(set(cells)) != len(cells):
        raise InvalidMoveError("The lollipop hammer cannot hit the same cell twice")
    for r, c in cells:
        if board.grid[r, c] == EMPTY:
            raise InvalidMoveError(f"({r}, {c}) holds no candy")
    return cells


def lollipop_hammer(board, rng, scorer, cells, config=None, cue=None):
    """Smashes up to hammer_strikes chosen candies, hammer_points each, then cascades."""
    cfg = config or DEFAULT
    cells = validate_hammer_targets(board, cells, cfg["engine"]["hammer_strikes"])
    emit(cue, "effect_start", effect=LOLLIPOP_HAMMER)
    bonus = 0
    for r, c in cells:
        emit(cue, "hammer", cells=[(r, c)])
        board.clear([(r, c)])
        bonus += scorer.add(cfg["scoring"]["hammer_points"], LOLLIPOP_HAMMER)
    totals = settle_board(board, rng, scorer, config=cfg, cue=cue)
    emit(cue, "effect_end", effect=LOLLIPOP_HAMMER)
    return {"cleared_count": len(cells), "bonus_score": bonus,
            "cascade_score": totals["score_delta"], "cascade_rounds": totals["cascade_rounds"]}


def free_switch(board, rng, scorer, r1, c1, r2, c2, config=None, cue=None):
    """Swaps any two cells. The swap stays even when it lines nothing up."""
    emit(cue, "effect_start", effect=FREE_SWITCH)
    result = propose_swap(board, rng, scorer, r1, c1, r2, c2, config=config, cue=cue, allow_no_match=True)
    emit(cue, "effect_end", effect=FREE_SWITCH)
    return result


def run_automatic_moves(board, rng, scorer, count, config=None, cue=None):
    """
    Plays count matching swaps picked uniformly from every adjacent pair.
    Picks that line nothing up are reverted and do not count.

    Best-effort: stops early once the board has no matching swap left, or
    after max_attempts_per_move * count picks.
    """
    cfg = config or DEFAULT
    max_attempts = count * cfg["automatic"]["max_attempts_per_move"]
    candidates = candidate_swaps(board.size)
    executed = 0
    attempts = 0
    total_score = 0
    while executed < count:
        if attempts >= max_attempts:
            logger.warning("Automatic moves gave up after %d attempts (%d of %d executed)",
                           attempts, executed, count)
            break
        if not find_possible_moves(board):
            logger.warning("No matching swap left on the board (%d of %d automatic moves executed)",
                           executed, count)
            break
        (r1, c1), (r2, c2) = candidates[rng.randrange(len(candidates))]
        attempts += 1
        result = propose_swap(board, rng, scorer, r1, c1, r2, c2, config=cfg, cue=cue)
        if not result["accepted"]:
            continue
        executed += 1
        total_score += result["total_score_delta"]
        emit(cue, "auto_move", index=executed, cells=[(r1, c1), (r2, c2)],
             score=result["total_score_delta"])
    return {"requested": count, "executed": executed, "attempts": attempts,
            "total_score_delta": total_score}
