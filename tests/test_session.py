"""Tests for terminal_escape.session – the game lifecycle end to end."""

from __future__ import annotations

import json

import pytest

from terminal_escape.errors import NoActiveGameError
from terminal_escape.levels import NextAction
from terminal_escape.session import GameSession


# ===========================================================================
# New game
# ===========================================================================

class TestNewGame:
    def test_starts_at_level_one(self, session):
        state = session.create_new_game("alice")
        assert state.current_level == 1
        assert state.completed_levels == []
        assert session.current_level.id == 1

    def test_name_is_stripped(self, session):
        assert session.create_new_game("  bob  ").player_name == "bob"

    def test_empty_name_rejected(self, session):
        with pytest.raises(ValueError):
            session.create_new_game("   ")
        assert session.state is None

    def test_autosaves_on_start(self, session):
        session.create_new_game("alice")
        assert session.save_path("alice").exists()

    def test_creates_profile(self, session):
        session.create_new_game("Alice")
        assert session.profiles.path_for("Alice").name == "alice_profile.json"
        assert session.profiles.path_for("Alice").exists()

    def test_level_state_initialized(self, session):
        state = session.create_new_game("alice")
        assert 1 in state.level_states


# ===========================================================================
# No active game
# ===========================================================================

class TestNoActiveGame:
    def test_submit_raises(self, session):
        with pytest.raises(NoActiveGameError):
            session.submit("look around")

    def test_view_raises(self, session):
        with pytest.raises(NoActiveGameError):
            session.current_view()

    def test_hint_raises(self, session):
        with pytest.raises(NoActiveGameError):
            session.request_hint()

    def test_save_fails_softly(self, session):
        result = session.save()
        assert not result.success
        assert "No active game" in result.message

    def test_error_names_action(self, session):
        with pytest.raises(NoActiveGameError, match="continue"):
            session.require_state()


# ===========================================================================
# Save / load
# ===========================================================================

class TestSaveLoad:
    def test_save_message(self, session):
        session.create_new_game("alice")
        result = session.save()
        assert result.success
        assert result.message == "Game saved as alice"

    def test_round_trip_preserves_state(self, session, tmp_path):
        session.create_new_game("alice")
        session.submit("check desk")
        session.submit("enter wrong")
        session.save()
        saved = session.state.to_dict()

        other = GameSession(tmp_path)
        assert other.load("alice").success
        assert other.state.to_dict() == saved

    def test_round_trip_mid_game(self, session, solve, tmp_path):
        session.create_new_game("alice")
        solve(session, 1)
        solve(session, 2)
        session.submit("kill 842")
        session.save()

        other = GameSession(tmp_path)
        other.load("alice")
        assert other.state.current_level == 3
        assert other.state.completed_levels == [1, 2]
        assert other.state.level_states[3].malware_killed
        # finishing the level still works after the reload
        other.submit("start 1024")
        assert other.state.current_level == 4

    def test_load_missing(self, session):
        session.create_new_game("alice")
        before = session.state
        result = session.load("nobody")
        assert not result.success
        assert session.state is before

    def test_load_corrupt_json(self, session):
        session.save_path("broken").write_text("{not json", encoding="utf-8")
        result = session.load("broken")
        assert not result.success
        assert session.state is None

    @pytest.mark.parametrize("field", ["level_states", "level_stats"])
    def test_load_malformed_level_records(self, session, tmp_path, field):
        session.create_new_game("alice")
        data = session.state.to_dict()
        data[field] = [1]
        session.save_path("alice").write_text(json.dumps(data), encoding="utf-8")

        other = GameSession(tmp_path)
        result = other.load("alice")
        assert not result.success
        assert other.state is None

    def test_load_filesystem_outside_tree(self, session, solve, tmp_path):
        session.create_new_game("alice")
        solve(session, 1)
        data = session.state.to_dict()
        data["level_states"]["2"]["current_dir"] = "/etc"
        session.save_path("alice").write_text(json.dumps(data), encoding="utf-8")

        other = GameSession(tmp_path)
        assert other.load("alice").success
        assert other.state.level_states[2].current_dir == "/home/user"
        assert other.current_view()
        assert other.submit("ls").message

    def test_load_malformed_record(self, session):
        session.save_path("broken").write_text(json.dumps({"player_name": ""}), encoding="utf-8")
        assert not session.load("broken").success

    def test_load_drops_unknown_level_state(self, session, tmp_path):
        session.create_new_game("alice")
        data = session.state.to_dict()
        data["level_states"]["1"]["kind"] = "bogus"
        session.save_path("alice").write_text(json.dumps(data), encoding="utf-8")

        other = GameSession(tmp_path)
        assert other.load("alice").success
        # re-created fresh on load
        assert other.state.level_states[1].attempts == 0

    def test_load_clamps_level(self, session, tmp_path):
        session.create_new_game("alice")
        data = session.state.to_dict()
        data["current_level"] = 99
        session.save_path("alice").write_text(json.dumps(data), encoding="utf-8")

        other = GameSession(tmp_path)
        other.load("alice")
        assert other.state.current_level == 6
        assert other.is_finished

    def test_list_saves_excludes_profiles(self, session):
        session.create_new_game("alice")
        session.create_new_game("bob")
        assert session.list_saves() == ["alice", "bob"]

    def test_unsafe_name_stays_in_saves_dir(self, session):
        session.create_new_game("../evil")
        path = session.save_path("../evil")
        assert path.parent == session.saves_dir
        assert path.exists()


# ===========================================================================
# Level progression
# ===========================================================================

class TestProgression:
    def test_solving_level_advances(self, session, solve):
        session.create_new_game("alice")
        result = solve(session, 1)
        assert result.completed
        assert result.next_action is NextAction.NEXT_LEVEL
        assert session.state.current_level == 2
        assert session.state.completed_levels == [1]

    def test_completion_is_idempotent(self, session):
        state = session.create_new_game("alice")
        assert state.mark_completed(1)
        assert not state.mark_completed(1)
        assert state.completed_levels == [1]

    def test_cannot_go_back(self, session, solve):
        session.create_new_game("alice")
        solve(session, 1)
        assert not session.start_level(1)
        assert session.state.current_level == 2

    def test_unknown_level_refused(self, session):
        session.create_new_game("alice")
        assert not session.start_level(42)
        assert session.state.current_level == 1

    def test_view_is_list_of_lines(self, session):
        session.create_new_game("alice")
        view = session.current_view()
        assert isinstance(view, list)
        assert any("SYSTEM LOCKED" in line for line in view)

    def test_view_recreates_missing_state(self, session):
        session.create_new_game("alice")
        del session.state.level_states[1]
        session.current_view()
        assert 1 in session.state.level_states

    def test_full_game(self, session, solve):
        session.create_new_game("alice")
        for level_id in range(1, 6):
            result = solve(session, level_id)
            assert result.completed
        assert result.next_action is NextAction.MAIN_MENU
        assert session.is_finished
        assert session.state.completed_levels == [1, 2, 3, 4, 5]
        assert session.current_level is None

    def test_full_game_records_leaderboard_once(self, session, solve):
        session.create_new_game("alice")
        for level_id in range(1, 6):
            solve(session, level_id)
        session.complete_current_level()
        entries = session.leaderboard.entries()
        assert len(entries) == 1
        assert entries[0].player_name == "alice"

    def test_submit_after_finish(self, session, solve):
        session.create_new_game("alice")
        for level_id in range(1, 6):
            solve(session, level_id)
        result = session.submit("ls")
        assert not result.completed
        assert result.next_action is NextAction.MAIN_MENU

    def test_full_game_with_malformed_leaderboard(self, session, solve):
        session.leaderboard.path.write_text(json.dumps({"players": None}), encoding="utf-8")
        session.create_new_game("alice")
        for level_id in range(1, 6):
            assert solve(session, level_id).completed
        assert session.is_finished
        assert [e.player_name for e in session.leaderboard.entries()] == ["alice"]

    def test_new_game_starts_with_empty_history(self, session):
        session.create_new_game("alice")
        session.submit("look around")
        session.create_new_game("alice")
        assert session.history.get("alice") == []

    def test_history_recorded(self, session):
        session.create_new_game("alice")
        session.submit("look around")
        session.submit("check desk")
        assert session.history.get("alice") == ["check desk", "look around"]


# ===========================================================================
# Hints
# ===========================================================================

class TestHints:
    def test_hints_in_order_then_none(self, session, registry):
        session.create_new_game("alice")
        hints = registry.get(1).hints
        assert [session.request_hint() for _ in hints] == list(hints)
        assert session.request_hint() is None

    def test_hint_marks_stats(self, session):
        session.create_new_game("alice")
        session.request_hint()
        stats = session.state.level_stats[1]
        assert stats.used_hint
        assert stats.hint_index == 1

    def test_hints_reset_per_level(self, session, solve, registry):
        session.create_new_game("alice")
        session.request_hint()
        solve(session, 1)
        assert session.request_hint() == registry.get(2).hints[0]


# ===========================================================================
# Achievements through play
# ===========================================================================

class TestAchievementsInPlay:
    def unlocked(self, session):
        return {a.id for a in session.tracker.unlocked()}

    def test_first_level_unlocks(self, session, solve):
        session.create_new_game("alice")
        solve(session, 1)
        assert {"first_steps", "speed_demon", "no_hints"} <= self.unlocked(session)

    def test_hint_blocks_no_hints(self, session, solve):
        session.create_new_game("alice")
        session.request_hint()
        solve(session, 1)
        assert "no_hints" not in self.unlocked(session)

    def test_slow_level_misses_speed_demon(self, session, solve):
        session.create_new_game("alice")
        session.state.stats_for(1).started_at -= 120_000
        solve(session, 1)
        assert "speed_demon" not in self.unlocked(session)

    def test_command_master(self, session, solve):
        session.create_new_game("alice")
        solve(session, 1)
        for i in range(10):
            session.submit(f"find x{i}")
        assert "command_master" in self.unlocked(session)

    def test_repeated_command_is_not_master(self, session):
        session.create_new_game("alice")
        for _ in range(12):
            session.submit("look around")
        assert "command_master" not in self.unlocked(session)

    def test_unknown_commands_count_toward_persistence_only(self, session):
        session.create_new_game("alice")
        for i in range(20):
            session.submit(f"bogus{i}")
        unlocked = self.unlocked(session)
        assert "persistence" in unlocked
        assert "command_master" not in unlocked

    def test_explorer(self, session, solve):
        session.create_new_game("alice")
        solve(session, 1)
        for line in ["cd Documents", "cd ..", "cd Pictures", "cd ..", "cd .hidden"]:
            session.submit(line)
        assert "explorer" in self.unlocked(session)

    def test_easter_egg(self, session, solve):
        session.create_new_game("alice")
        solve(session, 1)
        session.submit("cd .hidden")
        session.submit("cat readme.md")
        assert "easter_egg_hunter" in self.unlocked(session)

    def test_master_hacker_only_at_end(self, session, solve):
        session.create_new_game("alice")
        for level_id in range(1, 5):
            solve(session, level_id)
        assert "master_hacker" not in self.unlocked(session)
        solve(session, 5)
        assert "master_hacker" in self.unlocked(session)

    def test_unlock_callback(self, tmp_path, solve):
        seen = []
        session = GameSession(tmp_path, on_unlock=lambda a: seen.append(a.id))
        session.create_new_game("alice")
        solve(session, 1)
        assert "first_steps" in seen
        assert len(seen) == len(set(seen))

    def test_unlocks_persist_in_profile(self, session, solve, tmp_path):
        session.create_new_game("alice")
        solve(session, 1)

        other = GameSession(tmp_path)
        other.create_new_game("alice")
        assert "first_steps" in {a.id for a in other.tracker.unlocked()}
