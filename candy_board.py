# candy_board.py
import logging

import numpy as np

logger = logging.getLogger(__name__)

EMPTY = 0
CANDY_TYPES = ["red", "orange", "yellow", "green", "blue", "purple"]
CANDY_CODES = "roygbp"
EMPTY_CODE = "."


class CandyError(Exception):
    """Base class for everything the candy engine raises."""


class InvalidMoveError(CandyError):
    pass


class GenerationStallError(CandyError):
    pass


def candy_label(value):
    value = int(value)
    if value == EMPTY:
        return "empty"
    return CANDY_TYPES[value - 1]


def candy_value(label):
    """
    Converts a label ("red"), a one-letter code ("r") or an int into the
    integer stored in the grid. Empty accepts "empty", "" and ".".
    """
    if isinstance(label, (int, np.integer)):
        value = int(label)
        if not 0 <= value <= len(CANDY_TYPES):
            raise ValueError(f"Unknown candy value {value}")
        return value
    if label is None or label in ("", "empty", EMPTY_CODE):
        return EMPTY
    lowered = label.lower()
    if lowered in CANDY_TYPES:
        return CANDY_TYPES.index(lowered) + 1
    if len(lowered) == 1 and lowered in CANDY_CODES:
        return CANDY_CODES.index(lowered) + 1
    raise ValueError(f"Unknown candy label {label!r}")


def _fill_row(grid, r, palette_size, rng):
    size = grid.shape[1]
    for c in range(size):
        banned = set()
        if c >= 2 and grid[r, c - 1] == grid[r, c - 2]:
            banned.add(int(grid[r, c - 1]))
        if r >= 2 and grid[r - 1, c] == grid[r - 2, c]:
            banned.add(int(grid[r - 1, c]))
        choices = [t for t in range(1, palette_size + 1) if t not in banned]
        if not choices:
            return False
        grid[r, c] = choices[rng.randrange(len(choices))]
    return True


class Board:
    """
    Square grid of candies. Cells hold 0 for empty or 1..palette_size for a
    candy type. Rows are numbered top to bottom, so gravity pulls toward the
    last row.
    """

    def __init__(self, grid, palette_size=len(CANDY_TYPES)):
        grid = np.array(grid, dtype=np.int8)
        if grid.ndim != 2 or grid.shape[0] != grid.shape[1] or grid.shape[0] == 0:
            raise ValueError(f"Board must be a non-empty square grid, got shape {grid.shape}")
        if not 1 <= palette_size <= len(CANDY_TYPES):
            raise ValueError(f"Palette size must be between 1 and {len(CANDY_TYPES)}")
        if grid.min() < EMPTY or grid.max() > palette_size:
            raise ValueError("Grid holds candy types outside the palette")
        self.grid = grid
        self.size = grid.shape[0]
        self.palette_size = palette_size

    @classmethod
    def generate(cls, size, palette_size, rng, max_row_attempts=50):
        """
        Fills a fresh board row by row, never placing a candy that would
        complete a run of three with the two cells before it in its row or
        the two above it in its column. A row with no legal candy left for
        some cell is regenerated from scratch; after max_row_attempts failed
        rows the palette is considered unusable.
        """
        if size < 1:
            raise ValueError(f"Board size must be positive, got {size}")
        if not 1 <= palette_size <= len(CANDY_TYPES):
            raise ValueError(f"Palette size must be between 1 and {len(CANDY_TYPES)}")
        grid = np.zeros((size, size), dtype=np.int8)
        for r in range(size):
            for attempt in range(max_row_attempts):
                if _fill_row(grid, r, palette_size, rng):
                    break
                logger.debug("Row %d stalled on attempt %d, regenerating", r, attempt + 1)
            else:
                raise GenerationStallError(
                    f"Could not fill row {r} of a {size}x{size} board with {palette_size} "
                    f"candy types after {max_row_attempts} attempts"
                )
        return cls(grid, palette_size)

    @classmethod
    def from_rows(cls, rows, palette_size=len(CANDY_TYPES)):
        """Builds a board from strings of codes ("roygbp", "." for empty) or label lists."""
        grid = []
        for row in rows:
            if isinstance(row, str):
                grid.append([candy_value(ch) for ch in row])
            else:
                grid.append([candy_value(cell) for cell in row])
        return cls(grid, palette_size)

    def copy(self):
        return Board(self.grid.copy(), self.palette_size)

    def in_bounds(self, r, c):
        return 0 <= r < self.size and 0 <= c < self.size

    def get(self, r, c):
        return int(self.grid[r, c])

    def label_at(self, r, c):
        return candy_label(self.grid[r, c])

    def swap(self, r1, c1, r2, c2):
        """Exchanges two cells and returns the grid as it was before."""
        previous = self.grid.copy()
        self.grid[r1, c1], self.grid[r2, c2] = previous[r2, c2], previous[r1, c1]
        return previous

    def clear(self, coords):
        """Empties the listed cells. Returns how many candies were removed."""
        removed = 0
        for r, c in coords:
            if self.grid[r, c] != EMPTY:
                removed += 1
            self.grid[r, c] = EMPTY
        return removed

    def apply_gravity_and_refill(self, rng):
        """
        Drops every candy as far down its column as it can go, keeping the
        column order, and tops the column up with random candies. Fresh
        candies are not screened for matches; they are allowed to start a
        cascade.
        """
        changed = False
        for c in range(self.size):
            column = self.grid[:, c]
            remaining = column[column != EMPTY]
            missing = self.size - len(remaining)
            if missing == 0:
                continue
            fresh = np.array(
                [rng.randrange(self.palette_size) + 1 for _ in range(missing)],
                dtype=np.int8,
            )
            self.grid[:, c] = np.concatenate((fresh, remaining))
            changed = True
        return changed

    def reshuffle(self, rng):
        """Permutes the candies already on the board, leaving empty cells where they are."""
        positions = [(r, c) for r in range(self.size) for c in range(self.size)
                     if self.grid[r, c] != EMPTY]
        values = [int(self.grid[r, c]) for r, c in positions]
        rng.shuffle(values)
        for (r, c), value in zip(positions, values):
            self.grid[r, c] = value
        return self

    def cells_of_type(self, candy):
        return [(int(r), int(c)) for r, c in zip(*np.nonzero(self.grid == candy))]

    def count_types(self):
        values, counts = np.unique(self.grid[self.grid != EMPTY], return_counts=True)
        return {int(v): int(n) for v, n in zip(values, counts)}

    def equals(self, other):
        if isinstance(other, Board):
            other = other.grid
        return np.array_equal(self.grid, other)

    def snapshot(self):
        return tuple(tuple(candy_label(v) for v in row) for row in self.grid)

    def pretty(self):
        lines = []
        for row in self.grid:
            lines.append(" ".join(EMPTY_CODE if v == EMPTY else CANDY_CODES[v - 1] for v in row))
        return "\n".join(lines)
