# candy_config.py
#
# Engine settings: board shape, scoring constants and safety bounds.
# Validated with Cerberus against CONFIG_SCHEMA; anything not supplied falls
# back to DEFAULT.

import copy
import json
import logging
import os

from cerberus import Validator

from candy_board import CANDY_TYPES

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CANDY_CONFIG"

BOARD_SCHEMA = {
    "size": {"type": "integer", "min": 3, "max": 32, "required": True},
    "palette_size": {"type": "integer", "min": 1, "max": len(CANDY_TYPES), "required": True},
    "max_row_attempts": {"type": "integer", "min": 1, "required": True},
    "max_reshuffles": {"type": "integer", "min": 1, "required": True},
}
SCORING_SCHEMA = {
    "points_per_candy": {"type": "integer", "min": 0, "required": True},
    "bomb_points_per_candy": {"type": "integer", "min": 0, "required": True},
    "bomb_bonus": {"type": "integer", "min": 0, "required": True},
    "hammer_points": {"type": "integer", "min": 0, "required": True},
    "sweet_teeth_points_per_candy": {"type": "integer", "min": 0, "required": True},
    "sweet_teeth_big_bonus": {"type": "integer", "min": 0, "required": True},
    "sweet_teeth_small_bonus": {"type": "integer", "min": 0, "required": True},
    "sweet_teeth_big_threshold": {"type": "integer", "min": 0, "required": True},
}
AUTOMATIC_SCHEMA = {
    "max_attempts_per_move": {"type": "integer", "min": 1, "required": True},
}
ENGINE_SCHEMA = {
    "max_cascade_rounds": {"type": "integer", "min": 1, "required": True},
    "hammer_strikes": {"type": "integer", "min": 1, "required": True},
    "seed": {"type": "integer", "nullable": True, "required": True},
}

CONFIG_SCHEMA = {
    "board": {"type": "dict", "schema": BOARD_SCHEMA, "required": True},
    "scoring": {"type": "dict", "schema": SCORING_SCHEMA, "required": True},
    "automatic": {"type": "dict", "schema": AUTOMATIC_SCHEMA, "required": True},
    "engine": {"type": "dict", "schema": ENGINE_SCHEMA, "required": True},
}

DEFAULT = {
    "board": {"size": 8, "palette_size": 6, "max_row_attempts": 50, "max_reshuffles": 500},
    "scoring": {
        "points_per_candy": 100,
        "bomb_points_per_candy": 150,
        "bomb_bonus": 500,
        "hammer_points": 150,
        "sweet_teeth_points_per_candy": 20,
        "sweet_teeth_big_bonus": 500,
        "sweet_teeth_small_bonus": 200,
        "sweet_teeth_big_threshold": 20,
    },
    "automatic": {"max_attempts_per_move": 200},
    "engine": {"max_cascade_rounds": 1000, "hammer_strikes": 2, "seed": None},
}


class ConfigError(ValueError):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}


def _deep_merge(base, updates):
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def build_config(overrides=None):
    """
    Merges overrides onto the defaults and validates the result.
    Raises ConfigError listing every invalid field.
    """
    cfg = copy.deepcopy(DEFAULT)
    if overrides:
        if not isinstance(overrides, dict):
            raise ConfigError(f"Configuration overrides must be a mapping, got {type(overrides).__name__}")
        _deep_merge(cfg, copy.deepcopy(overrides))
    validator = Validator(CONFIG_SCHEMA)
    if not validator.validate(cfg):
        for field, errors in validator.errors.items():
            logger.error("Config field '%s': %s", field, errors)
        raise ConfigError(f"Invalid candy configuration: {validator.errors}", validator.errors)
    return validator.document


def load_config(path=None, overrides=None):
    """
    Reads a JSON config file (path argument, then $CANDY_CONFIG) and
    validates it. A missing file falls back to the defaults; a file that is
    not valid JSON is an error.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    data = {}
    if path:
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Error decoding config file at {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config file at {path} must hold a JSON object")
            logger.info("Loaded candy configuration from %s", path)
        else:
            logger.warning("Configuration file %s not found. Using defaults.", path)
    if overrides:
        data = _deep_merge(data, copy.deepcopy(overrides))
    return build_config(data)
