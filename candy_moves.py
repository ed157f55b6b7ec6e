# candy_moves.py
import logging

import numpy as np

from candy_board import InvalidMoveError, candy_label
from candy_simulation import emit, find_all_matches, has_match_at, resolve_cascade

logger = logging.getLogger(__name__)


def is_adjacent(r1, c1, r2, c2):
    return abs(r1 - r2) + abs(c1 - c2) == 1


def validate_cell(board, r, c):
    """Raises InvalidMoveError unless (r, c) is a pair of integers on the board."""
    if isinstance(r, bool) or isinstance(c, bool) or not isinstance(r, (int, np.integer)) \
            or not isinstance(c, (int, np.integer)):
        raise InvalidMoveError(f"Coordinates must be integers, got ({r!r}, {c!r})")
    if not board.in_bounds(r, c):
        raise InvalidMoveError(f"({r}, {c}) is outside the {board.size}x{board.size} board")


def validate_move(board, r1, c1, r2, c2, require_adjacent=True):
    """Raises InvalidMoveError unless both cells are on the board (and touching, by default)."""
    validate_cell(board, r1, c1)
    validate_cell(board, r2, c2)
    if require_adjacent and not is_adjacent(r1, c1, r2, c2):
        raise InvalidMoveError(f"({r1}, {c1}) and ({r2}, {c2}) are not adjacent")
    if (r1, c1) == (r2, c2):
        raise InvalidMoveError(f"Cannot swap ({r1}, {c1}) with itself")


def swap_result(accepted, matched_count=0, score_delta=0, cascade_rounds=0, reason=None):
    return {
        "accepted": accepted,
        "matched_count": matched_count,
        "total_score_delta": score_delta,
        "cascade_rounds": cascade_rounds,
        "reason": reason,
    }


def propose_swap(board, rng, scorer, r1, c1, r2, c2, config=None, cue=None, allow_no_match=False):
    """
    Swaps two cells and resolves the board. A swap that lines nothing up is
    swapped straight back, leaving the board exactly as it was, unless
    allow_no_match is set (free switches keep their swap either way).

    Returns the swap_result dict; matched_count covers every cascade round,
    not just the first.
    """
    validate_move(board, r1, c1, r2, c2, require_adjacent=not allow_no_match)

    board.swap(r1, c1, r2, c2)
    emit(cue, "swap", cells=[(r1, c1), (r2, c2)])

    if not find_all_matches(board.grid):
        if allow_no_match:
            return swap_result(True)
        board.swap(r1, c1, r2, c2)
        emit(cue, "revert", cells=[(r1, c1), (r2, c2)])
        logger.debug("Swap (%d, %d) <-> (%d, %d) made no match, reverted", r1, c1, r2, c2)
        return swap_result(False, reason="no_match")

    totals = resolve_cascade(board, rng, scorer, config=config, cue=cue)
    logger.debug("Swap (%d, %d) <-> (%d, %d) cleared %d candies over %d rounds",
                 r1, c1, r2, c2, totals["matched_count"], totals["cascade_rounds"])
    return swap_result(True, totals["matched_count"], totals["score_delta"], totals["cascade_rounds"])


def candidate_swaps(size):
    """Every cell paired with its right and bottom neighbour: 2 * size * (size - 1) swaps."""
    moves = []
    for r in range(size):
        for c in range(size):
            if c < size - 1:
                moves.append(((r, c), (r, c + 1)))
            if r < size - 1:
                moves.append(((r, c), (r + 1, c)))
    return moves


def find_possible_moves(board):
    """
    Lists the adjacent swaps that would line up at least one run, as
    ((r1, c1), (r2, c2), label1, label2) tuples in row-major order.
    """
    grid = board.grid.copy()
    moves = []
    for (r1, c1), (r2, c2) in candidate_swaps(board.size):
        if grid[r1, c1] == grid[r2, c2]:
            continue
        grid[r1, c1], grid[r2, c2] = board.grid[r2, c2], board.grid[r1, c1]
        if has_match_at(grid, r1, c1) or has_match_at(grid, r2, c2):
            moves.append(((r1, c1), (r2, c2), candy_label(board.grid[r1, c1]), candy_label(board.grid[r2, c2])))
        grid[r1, c1], grid[r2, c2] = board.grid[r1, c1], board.grid[r2, c2]
    return moves


def suggest_move(board):
    """
    Hint for the player: the possible move clearing the most candies on its
    first pass. Earlier moves in row-major order win ties. None when the
    board has no move at all.
    """
    best_move = None
    best_count = 0
    for (r1, c1), (r2, c2), _, _ in find_possible_moves(board):
        trial = board.copy()
        trial.swap(r1, c1, r2, c2)
        count = len(find_all_matches(trial.grid))
        if count > best_count:
            best_move = ((r1, c1), (r2, c2))
            best_count = count
    return best_move
