"""Tests for terminal_escape.state – game state records and their dict form."""

from __future__ import annotations

import json

import pytest

import terminal_escape.levels  # noqa: F401  registers the level state kinds
from terminal_escape.levels.filesystem import FileSystemMaze, FilesystemState
from terminal_escape.levels.network import NetworkState
from terminal_escape.levels.processes import ProcessState
from terminal_escape.levels.terminal import TerminalState
from terminal_escape.state import GameState, LevelState, LevelStats


# ===========================================================================
# LevelState – tagged union
# ===========================================================================

class TestLevelState:
    def test_to_dict_carries_kind(self):
        assert TerminalState(attempts=2).to_dict()["kind"] == "terminal"

    def test_from_dict_picks_type(self):
        state = LevelState.from_dict({"kind": "filesystem", "current_dir": "/home/user/Pictures",
                                      "visited": ["/home/user"], "found_key": False, "explored": False})
        assert isinstance(state, FilesystemState)
        assert state.current_dir == "/home/user/Pictures"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            LevelState.from_dict({"kind": "nope"})

    def test_missing_kind(self):
        with pytest.raises(ValueError):
            LevelState.from_dict({"attempts": 1})

    def test_nested_records_rebuilt(self):
        original = ProcessState()
        original.find(842).status = "stopped"
        restored = LevelState.from_dict(original.to_dict())
        assert restored == original
        assert restored.find(842).status == "stopped"

    def test_network_round_trip(self):
        original = NetworkState()
        original.interface("eth0").status = "UP"
        original.gateway = "10.0.0.254"
        assert LevelState.from_dict(original.to_dict()) == original

    def test_filesystem_outside_tree_resets_home(self):
        state = LevelState.from_dict({"kind": "filesystem", "current_dir": "/nowhere",
                                      "visited": ["/nowhere"], "found_key": False, "explored": False})
        assert state.current_dir == "/home/user"
        assert state.visited == ["/home/user"]

    def test_filesystem_outside_tree_still_playable(self):
        state = LevelState.from_dict({"kind": "filesystem", "current_dir": "/nowhere",
                                      "visited": [], "found_key": False, "explored": False})
        level = FileSystemMaze()
        assert level.render(state)
        assert "Documents" in level.handle_input(state, "ls").message

    def test_from_dict_does_not_mutate_input(self):
        data = TerminalState().to_dict()
        LevelState.from_dict(data)
        assert data["kind"] == "terminal"


# ===========================================================================
# LevelStats
# ===========================================================================

class TestLevelStats:
    def test_distinct_and_total(self):
        stats = LevelStats()
        for cmd in ["ls", "ls", "pwd", ""]:
            stats.record_command(cmd)
        assert stats.distinct_commands == 2
        assert stats.command_count == 4


# ===========================================================================
# GameState
# ===========================================================================

class TestGameState:
    def test_defaults(self, game):
        assert game.current_level == 1
        assert game.completed_levels == []
        assert game.inventory == []

    def test_stats_for_creates_once(self, game):
        assert game.stats_for(3) is game.stats_for(3)

    def test_round_trip_through_json(self, game):
        game.completed_levels = [1, 2]
        game.current_level = 3
        game.inventory = ["flashlight"]
        game.level_states[1] = TerminalState(attempts=3, found_clue1=True)
        game.level_states[3] = ProcessState()
        game.stats_for(3).record_command("ps")

        restored = GameState.from_dict(json.loads(json.dumps(game.to_dict())))
        assert restored == game

    def test_keys_are_strings_on_disk(self, game):
        game.level_states[2] = FilesystemState()
        assert list(game.to_dict()["level_states"]) == ["2"]

    def test_duplicate_completions_collapsed(self, game):
        data = game.to_dict()
        data["completed_levels"] = [1, 1, 2]
        assert GameState.from_dict(data).completed_levels == [1, 2]

    def test_level_floor(self, game):
        data = game.to_dict()
        data["current_level"] = 0
        assert GameState.from_dict(data).current_level == 1

    def test_empty_name_rejected(self, game):
        data = game.to_dict()
        data["player_name"] = "  "
        with pytest.raises(ValueError):
            GameState.from_dict(data)

    def test_missing_start_time_rejected(self, game):
        data = game.to_dict()
        del data["start_time"]
        with pytest.raises(KeyError):
            GameState.from_dict(data)

    @pytest.mark.parametrize("field", ["level_states", "level_stats"])
    def test_level_records_must_be_mappings(self, game, field):
        data = game.to_dict()
        data[field] = [1]
        with pytest.raises(ValueError):
            GameState.from_dict(data)

    def test_bad_level_state_dropped(self, game):
        data = game.to_dict()
        data["level_states"] = {"1": {"kind": "terminal", "attempts": 1, "bogus": True}}
        assert GameState.from_dict(data).level_states == {}
