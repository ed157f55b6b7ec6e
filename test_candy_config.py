import json

import pytest

from candy_config import DEFAULT, ConfigError, build_config, load_config
from candy_engine import CandyEngine


def test_defaults_are_valid():
    cfg = build_config()
    assert cfg == DEFAULT
    assert cfg is not DEFAULT


def test_overrides_merge_into_the_defaults():
    cfg = build_config({"scoring": {"points_per_candy": 50}})
    assert cfg["scoring"]["points_per_candy"] == 50
    assert cfg["scoring"]["bomb_bonus"] == 500
    assert cfg["board"]["size"] == 8


@pytest.mark.parametrize("overrides", [
    {"board": {"size": 2}},
    {"board": {"palette_size": 7}},
    {"scoring": {"points_per_candy": -1}},
    {"automatic": {"max_attempts_per_move": 0}},
    {"engine": {"seed": "abc"}},
    {"board": {"colour": "red"}},
    {"graphics": {}},
])
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ConfigError) as excinfo:
        build_config(overrides)
    assert excinfo.value.errors


def test_load_config_reads_json(tmp_path):
    path = tmp_path / "candy.json"
    path.write_text(json.dumps({"board": {"size": 6}, "engine": {"seed": 4}}), encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg["board"]["size"] == 6
    assert cfg["engine"]["seed"] == 4


def test_load_config_uses_the_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    path.write_text(json.dumps({"board": {"palette_size": 4}}), encoding="utf-8")
    monkeypatch.setenv("CANDY_CONFIG", str(path))
    assert load_config()["board"]["palette_size"] == 4


def test_missing_file_falls_back_to_defaults(tmp_path):
    assert load_config(str(tmp_path / "nope.json")) == DEFAULT


def test_broken_json_is_an_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_engine_uses_configured_scoring(swap_board):
    engine = CandyEngine(config={"scoring": {"points_per_candy": 10}, "engine": {"seed": 5}})
    engine.load_board(swap_board)
    result = engine.propose_swap(1, 0, 1, 1)
    assert result["accepted"]
    assert result["total_score_delta"] == result["matched_count"] * 10


def test_engine_uses_configured_board_shape():
    engine = CandyEngine(config={"board": {"size": 5, "palette_size": 4}, "engine": {"seed": 1}})
    snapshot = engine.initialize()
    assert len(snapshot) == 5
    assert {label for row in snapshot for label in row} <= {"red", "orange", "yellow", "green"}
