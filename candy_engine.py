# candy_engine.py
import logging
import random
from contextlib import contextmanager

from candy_board import (
    CANDY_TYPES,
    Board,
    CandyError,
    GenerationStallError,
    InvalidMoveError,
)
from candy_config import build_config
from candy_effects import (
    COLOUR_BOMB,
    FREE_SWITCH,
    LOLLIPOP_HAMMER,
    SWEET_TEETH,
    colour_bomb,
    free_switch,
    lollipop_hammer,
    normalize_effect_type,
    run_automatic_moves,
    sweet_teeth,
)
from candy_moves import find_possible_moves, propose_swap, suggest_move, swap_result
from candy_simulation import CascadeLimitError, ScoreTracker, is_settled

logger = logging.getLogger(__name__)

__all__ = [
    "CandyEngine",
    "CandyError",
    "CascadeLimitError",
    "EngineNotReadyError",
    "GenerationStallError",
    "InvalidMoveError",
    "ReentrancyError",
]

IDLE = "idle"
INITIALIZING = "initializing"
VALIDATING = "validating"
RESOLVING = "resolving"
EFFECT = "effect"


class ReentrancyError(CandyError):
    pass


class EngineNotReadyError(CandyError):
    pass


def _cell_pair(cells):
    try:
        (r1, c1), (r2, c2) = cells
        return (r1, c1), (r2, c2)
    except (TypeError, ValueError):
        raise InvalidMoveError(f"A free switch needs two cells, got {cells!r}") from None


class CandyEngine:
    """
    Owns one board, its score and the busy flag that keeps moves and effects
    from overlapping. Every call runs to a settled board before returning;
    presentation cues are delivered synchronously through `cue` while the
    engine is still busy.

    `budget` is the hosting session: anything with a `moves_left` attribute
    and a `consume_move()` method (see candy_session.LevelSession).
    """

    def __init__(self, config=None, rng=None, budget=None, cue=None):
        self.config = build_config(config)
        self.rng = rng if rng is not None else random.Random(self.config["engine"]["seed"])
        self.budget = budget
        self.cue = cue
        self.board = None
        self.scorer = ScoreTracker()
        self.state = IDLE
        self.cascade_round = 0
        self._busy = False

    @property
    def score(self):
        return self.scorer.total

    @property
    def busy(self):
        return self._busy

    def _cue(self, event, payload):
        if event == "explode" and payload.get("round"):
            self.cascade_round = payload["round"]
            if self.state == VALIDATING:
                self.state = RESOLVING
        if self.cue is not None:
            self.cue(event, payload)

    @contextmanager
    def _guard(self, state):
        if self._busy:
            logger.warning("Rejected %s request while the engine is %s", state, self.state)
            raise ReentrancyError(f"Engine is busy ({self.state}); try again once the board settles")
        self._busy = True
        self.state = state
        backup = self.board.copy() if self.board is not None else None
        checkpoint = self.scorer.checkpoint()
        try:
            yield
        except BaseException:
            # Never leave a half-resolved board behind.
            self.board = backup
            self.scorer.restore(checkpoint)
            raise
        finally:
            self._busy = False
            self.state = IDLE
            self.cascade_round = 0

    def _require_board(self):
        if self.board is None:
            raise EngineNotReadyError("Call initialize() before playing")

    def initialize(self, size=None, palette_size=None, seed=None):
        """
        Deals a new settled board and resets the score. Raises
        GenerationStallError when the palette is too small to avoid runs;
        the previous board, if any, is kept in that case.
        """
        size = size if size is not None else self.config["board"]["size"]
        palette_size = palette_size if palette_size is not None else self.config["board"]["palette_size"]
        with self._guard(INITIALIZING):
            if seed is not None:
                self.rng.seed(seed)
            board = Board.generate(size, palette_size, self.rng,
                                   max_row_attempts=self.config["board"]["max_row_attempts"])
            self.board = board
            self.scorer = ScoreTracker()
        logger.info("Initialized %dx%d board with %d candy types", size, size, palette_size)
        return self.get_snapshot()

    def load_board(self, board):
        """
        Replaces the board with a settled position, e.g. one restored by the
        host. Rows are read with the configured palette; a Board must already
        use it.
        """
        palette_size = self.config["board"]["palette_size"]
        if isinstance(board, (list, tuple)):
            board = Board.from_rows(board, palette_size)
        elif board.palette_size != palette_size:
            raise ValueError(f"Board uses {board.palette_size} candy types, the engine is "
                             f"configured for {palette_size}")
        if not is_settled(board.grid):
            raise ValueError("Loaded boards must be settled")
        with self._guard(INITIALIZING):
            self.board = board.copy()
            self.scorer = ScoreTracker()
        return self.get_snapshot()

    def get_snapshot(self):
        self._require_board()
        return self.board.snapshot()

    def is_settled(self):
        self._require_board()
        return is_settled(self.board.grid)

    def propose_swap(self, r1, c1, r2, c2):
        """
        Player swap. Rejected swaps (off-board, not adjacent, no match, no
        moves left) come back with accepted=False and leave the board alone.
        An accepted swap costs exactly one move from the budget however long
        its cascade runs.
        """
        self._require_board()
        with self._guard(VALIDATING):
            if self.budget is not None and self.budget.moves_left <= 0:
                result = swap_result(False, reason="no_moves_left")
            else:
                try:
                    result = propose_swap(self.board, self.rng, self.scorer, r1, c1, r2, c2,
                                          config=self.config, cue=self._cue)
                except InvalidMoveError as e:
                    logger.info("Rejected swap: %s", e)
                    result = swap_result(False, reason="invalid")
            result["move_consumed"] = False
            if result["accepted"] and self.budget is not None:
                self.budget.consume_move()
                result["move_consumed"] = True
        if result["accepted"]:
            logger.info("Swap (%d, %d) <-> (%d, %d) cleared %d candies for %d points",
                        r1, c1, r2, c2, result["matched_count"], result["total_score_delta"])
        return result

    def trigger_color_bomb(self, target_color=None):
        self._require_board()
        with self._guard(EFFECT):
            return colour_bomb(self.board, self.rng, self.scorer, target=target_color,
                               config=self.config, cue=self._cue)

    def sweet_teeth(self):
        self._require_board()
        with self._guard(EFFECT):
            return sweet_teeth(self.board, self.rng, self.scorer, config=self.config, cue=self._cue)

    def lollipop_hammer(self, cells):
        self._require_board()
        with self._guard(EFFECT):
            return lollipop_hammer(self.board, self.rng, self.scorer, cells, config=self.config, cue=self._cue)

    def free_switch(self, r1, c1, r2, c2):
        """Swaps any two cells without spending a move; the swap stands even without a match."""
        self._require_board()
        with self._guard(EFFECT):
            try:
                result = free_switch(self.board, self.rng, self.scorer, r1, c1, r2, c2,
                                     config=self.config, cue=self._cue)
            except InvalidMoveError as e:
                logger.info("Rejected free switch: %s", e)
                result = swap_result(False, reason="invalid")
        result["move_consumed"] = False
        return result

    def trigger_effect(self, request):
        """Runs a one-shot special-effect request such as {"type": "colour_bomb"}."""
        effect = normalize_effect_type(request.get("type"))
        if effect == COLOUR_BOMB:
            return self.trigger_color_bomb(request.get("target_color"))
        if effect == SWEET_TEETH:
            return self.sweet_teeth()
        if effect == LOLLIPOP_HAMMER:
            return self.lollipop_hammer(request.get("cells", []))
        if effect == FREE_SWITCH:
            (r1, c1), (r2, c2) = _cell_pair(request.get("cells"))
            return self.free_switch(r1, c1, r2, c2)
        raise ValueError(f"Unhandled special effect {effect!r}")

    def run_automatic_moves(self, count):
        """Scripted swaps that never touch the move budget. See candy_effects.run_automatic_moves."""
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"Automatic move count must be a non-negative integer, got {count!r}")
        self._require_board()
        with self._guard(EFFECT):
            result = run_automatic_moves(self.board, self.rng, self.scorer, count,
                                         config=self.config, cue=self._cue)
        logger.info("Automatic moves executed %d of %d for %d points",
                    result["executed"], count, result["total_score_delta"])
        return result

    def hint(self):
        self._require_board()
        return suggest_move(self.board)

    def has_moves(self):
        self._require_board()
        return bool(find_possible_moves(self.board))

    def reshuffle(self):
        """
        Shuffles the candies until the board is settled and has a move.
        Returns False, with the board untouched, if no such shuffle turns up.
        """
        self._require_board()
        with self._guard(EFFECT):
            original = self.board.copy()
            for _ in range(self.config["board"]["max_reshuffles"]):
                self.board.reshuffle(self.rng)
                if is_settled(self.board.grid) and find_possible_moves(self.board):
                    self._cue("reshuffle", {"snapshot": self.board.snapshot()})
                    return True
            self.board = original
        logger.warning("Reshuffle found no playable arrangement")
        return False

    def palette(self):
        self._require_board()
        return CANDY_TYPES[:self.board.palette_size]
