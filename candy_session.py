# candy_session.py
import logging

logger = logging.getLogger(__name__)

BASE_MOVES = 15
TARGET_POINTS_PER_LEVEL = 1000


class LevelSession:
    """
    Hosting session for one level: owns the move budget and the target
    score. The engine only spends moves; deciding that the level is over is
    left to the session.
    """

    def __init__(self, level=1, moves=None, target_score=None):
        if level < 1:
            raise ValueError(f"Levels start at 1, got {level}")
        self.level = level
        self.moves_left = moves if moves is not None else BASE_MOVES + level // 2
        self.target_score = target_score if target_score is not None else TARGET_POINTS_PER_LEVEL * level
        self.moves_used = 0

    def consume_move(self):
        if self.moves_left > 0:
            self.moves_left -= 1
            self.moves_used += 1
            if self.moves_left == 0:
                logger.info("Level %d is out of moves", self.level)
        return self.moves_left

    @property
    def is_over(self):
        return self.moves_left <= 0

    def is_completed(self, score):
        return score >= self.target_score

    def stars(self, score):
        if score >= self.target_score * 1.5:
            return 3
        if score >= self.target_score:
            return 2
        if score >= self.target_score * 0.5:
            return 1
        return 0

    def get_summary(self, score):
        return {
            "level": self.level,
            "score": score,
            "target_score": self.target_score,
            "moves_left": self.moves_left,
            "moves_used": self.moves_used,
            "completed": self.is_completed(score),
            "stars": self.stars(score),
            "over": self.is_over,
        }
