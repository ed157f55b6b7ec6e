# candy_simulation.py
import logging

from candy_board import EMPTY, CandyError
from candy_config import DEFAULT

logger = logging.getLogger(__name__)


class CascadeLimitError(CandyError):
    pass


class ScoreTracker:
    """
    Running score with per-source totals. Only the totals are kept, so the
    tracker stays the same size however long a session runs; per-round
    points reach the host through the "explode" cue.
    """

    def __init__(self):
        self.total = 0
        self.events = 0
        self.by_source = {}

    def add(self, points, source="match"):
        """Adds points to the running total. Scores only ever go up."""
        if points < 0:
            raise ValueError(f"Score deltas cannot be negative, got {points}")
        self.total += points
        self.events += 1
        self.by_source[source] = self.by_source.get(source, 0) + points
        return points

    def checkpoint(self):
        return self.total, self.events, dict(self.by_source)

    def restore(self, checkpoint):
        self.total, self.events, by_source = checkpoint
        self.by_source = dict(by_source)

    def get_summary(self):
        return {"total": self.total, "events": self.events, "by_source": dict(self.by_source)}


def emit(cue, event, **payload):
    if cue is not None:
        cue(event, payload)


def find_all_matches(grid):
    """
    Finds all horizontal and vertical runs of 3 or more equal candies.
    Returns a set of (r, c) positions; cells shared by a row run and a
    column run (L and T shapes) appear once.
    """
    rows, cols = grid.shape
    matched = set()

    # Horizontal matches
    for r in range(rows):
        c = 0
        while c < cols - 2:
            label = grid[r, c]
            if label == EMPTY:
                c += 1
                continue
            count = 1
            while c + count < cols and grid[r, c + count] == label:
                count += 1
            if count >= 3:
                for i in range(count):
                    matched.add((r, c + i))
            c += count

    # Vertical matches
    for c in range(cols):
        r = 0
        while r < rows - 2:
            label = grid[r, c]
            if label == EMPTY:
                r += 1
                continue
            count = 1
            while r + count < rows and grid[r + count, c] == label:
                count += 1
            if count >= 3:
                for i in range(count):
                    matched.add((r + i, c))
            r += count

    return matched


def has_match_at(grid, r, c):
    """
    Checks whether the candy at (r, c) sits in a run of three or more,
    looking at most two cells either way along each axis.
    """
    rows, cols = grid.shape
    target = grid[r, c]
    if target == EMPTY:
        return False

    for dr, dc in ((0, 1), (1, 0)):
        count = 1
        for step in (1, 2):
            nr, nc = r - dr * step, c - dc * step
            if 0 <= nr < rows and 0 <= nc < cols and grid[nr, nc] == target:
                count += 1
            else:
                break
        for step in (1, 2):
            nr, nc = r + dr * step, c + dc * step
            if 0 <= nr < rows and 0 <= nc < cols and grid[nr, nc] == target:
                count += 1
            else:
                break
        if count >= 3:
            return True
    return False


def detect_and_resolve_once(board, rng, scorer, config=None, cue=None, round_number=1):
    """
    One resolution pass: score every matched cell, clear them, let the
    columns fall and refill. Returns None when the board is already settled,
    otherwise {"cleared": n, "points": p} for the round.
    """
    cfg = config or DEFAULT
    matches = find_all_matches(board.grid)
    if not matches:
        return None
    cells = sorted(matches)
    points = scorer.add(len(cells) * cfg["scoring"]["points_per_candy"], "match")
    emit(cue, "explode", cells=cells, points=points, round=round_number)

    cleared = board.clear(cells)
    emit(cue, "clear", cells=cells, round=round_number)

    board.apply_gravity_and_refill(rng)
    emit(cue, "drop", snapshot=board.snapshot(), round=round_number)
    logger.debug("Cascade round %d cleared %d candies for %d points", round_number, cleared, points)
    return {"cleared": cleared, "points": points}


def resolve_cascade(board, rng, scorer, config=None, cue=None):
    """
    Repeats detect_and_resolve_once until the board is settled. Refills may
    line up new runs by chance, so one swap can chain through many rounds.
    """
    cfg = config or DEFAULT
    max_rounds = cfg["engine"]["max_cascade_rounds"]
    totals = {"matched_count": 0, "score_delta": 0, "cascade_rounds": 0}
    while True:
        if totals["cascade_rounds"] >= max_rounds:
            raise CascadeLimitError(f"Board did not settle within {max_rounds} cascade rounds")
        result = detect_and_resolve_once(
            board, rng, scorer, config=cfg, cue=cue, round_number=totals["cascade_rounds"] + 1
        )
        if result is None:
            break
        totals["matched_count"] += result["cleared"]
        totals["score_delta"] += result["points"]
        totals["cascade_rounds"] += 1
    return totals


def settle_board(board, rng, scorer, config=None, cue=None):
    """Drops and refills after a non-match clear, then cascades whatever lines up."""
    board.apply_gravity_and_refill(rng)
    emit(cue, "drop", snapshot=board.snapshot(), round=0)
    return resolve_cascade(board, rng, scorer, config=config, cue=cue)


def is_settled(grid):
    return not find_all_matches(grid)
