from terminal_escape.levels.base import Level, LevelRegistry, LevelResult, NextAction
from terminal_escape.levels.filesystem import FileSystemMaze
from terminal_escape.levels.network import NetworkEscape
from terminal_escape.levels.permissions import PermissionsPuzzle
from terminal_escape.levels.processes import ProcessControl
from terminal_escape.levels.terminal import LockedTerminal

ALL_LEVELS = (LockedTerminal, FileSystemMaze, ProcessControl, PermissionsPuzzle, NetworkEscape)


def build_registry() -> LevelRegistry:
    registry = LevelRegistry()
    for level_cls in ALL_LEVELS:
        registry.register(level_cls())
    return registry


__all__ = ["Level", "LevelRegistry", "LevelResult", "NextAction", "build_registry", "ALL_LEVELS"]
