"""Tests for configuration, settings and game initialisation."""

import json

import pytest

from conftest import line_board
from models import AggressionMode, Owner
from state import (
    DEFAULT_CONFIG,
    DIFFICULTY_PRESETS,
    GameSettings,
    SettingsError,
    get_player_view,
    initialize_game,
    load_config,
)


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "absent.json")) == DEFAULT_CONFIG

    def test_invalid_json_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops")
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_values_override_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"travel_time": 0.1, "player_start_strength": 30}))
        config = load_config(str(path))
        assert config["travel_time"] == 0.1
        assert config["player_start_strength"] == 30
        assert config["settle_delay"] == DEFAULT_CONFIG["settle_delay"]

    def test_repository_config(self):
        config = load_config()
        assert config["save_key"] == "konquest_save_data"
        assert config["ai_thinking_delay"] == 0.5


class TestGameSettings:
    def test_defaults(self):
        settings = GameSettings()
        assert settings.difficulty == 1.0
        assert settings.aggression == AggressionMode.BALANCED
        assert settings.fog_enabled
        assert settings.fog_radius == 1

    def test_aggression_from_string(self):
        assert GameSettings(aggression="cautious").aggression == AggressionMode.CAUTIOUS

    @pytest.mark.parametrize("kwargs", [
        {"difficulty": 0.4},
        {"difficulty": 2.5},
        {"difficulty": "hard"},
        {"fog_radius": 0},
        {"fog_radius": 1.5},
        {"aggression": "reckless"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(SettingsError):
            GameSettings(**kwargs)

    @pytest.mark.parametrize("name", sorted(DIFFICULTY_PRESETS))
    def test_presets(self, name):
        assert GameSettings.from_preset(name).difficulty == DIFFICULTY_PRESETS[name]

    def test_unknown_preset(self):
        with pytest.raises(SettingsError):
            GameSettings.from_preset("nightmare")


class TestInitializeGame:
    def test_opening_state(self, rng, config):
        state = initialize_game(level=2, difficulty=1.5, rng=rng, config=config)
        assert state.turn == 1
        assert state.is_player_turn
        assert not state.is_game_over
        assert state.logs == ["Level 2 started. Good luck!"]
        ai_capital = next(n for n in state.nodes if n.owner == Owner.AI)
        assert ai_capital.strength == 31

    def test_config_strengths(self, rng, config):
        config["player_start_strength"] = 33
        state = initialize_game(rng=rng, config=config)
        assert next(n for n in state.nodes if n.owner == Owner.PLAYER).strength == 33


class TestPlayerView:
    def test_hidden_nodes_withhold_owner_and_strength(self):
        state = line_board()
        view = get_player_view(state, {"pc", "p1", "m"})
        by_id = {n["id"]: n for n in view["nodes"]}
        assert by_id["m"]["strength"] == 3
        assert by_id["a1"]["owner"] is None
        assert by_id["a1"]["strength"] is None
        assert by_id["a1"]["visible"] is False
        assert "position" in by_id["ac"]

    def test_enemy_totals_count_visible_only(self):
        state = line_board()
        view = get_player_view(state, {"pc", "p1", "m", "a1"})
        assert view["enemy"] == {"nodes": 1, "strength": 6}
        assert view["player"] == {"nodes": 2, "strength": 18}
