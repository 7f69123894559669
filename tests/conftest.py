"""Shared fixtures for the terminal_escape tests."""

from __future__ import annotations

import pytest

from terminal_escape.levels import build_registry
from terminal_escape.session import GameSession
from terminal_escape.state import GameState

# Shortest known command sequence that clears each level.
SOLUTIONS = {
    1: ["enter tux"],
    2: ["cd .hidden", "cat system.key"],
    3: ["kill 842", "start 1024"],
    4: ["chmod +x change_permissions.sh", "sh change_permissions.sh", "sudo cat secret_data.db"],
    5: [
        "ifup eth0",
        "ifconfig eth0 10.0.0.2 255.255.255.0",
        "route add default 10.0.0.254",
        "echo nameserver 10.0.0.254 > /etc/resolv.conf",
        "firewall-cmd --allow 8080",
        "connect escape.portal 8080",
    ],
}


def play_level(session: GameSession, level_id: int):
    result = None
    for line in SOLUTIONS[level_id]:
        result = session.submit(line)
    return result


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def session(tmp_path):
    s = GameSession(tmp_path)
    s.initialize_storage()
    return s


@pytest.fixture
def game():
    return GameState(player_name="alice")


@pytest.fixture
def level_state(registry, game):
    """Fresh state for a level id, created the way the session does it."""

    def _make(level_id: int):
        return registry.get(level_id).initialize(game)

    return _make


@pytest.fixture
def solve():
    """``solve(session, level_id)`` plays the known solution and returns the last result."""
    return play_level


@pytest.fixture
def solutions():
    return SOLUTIONS
