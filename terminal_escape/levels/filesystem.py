import posixpath
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from terminal_escape.achievements import ALL_DIRECTORIES_VISITED, EASTER_EGG_FOUND
from terminal_escape.levels.base import Level, LevelResult, reply, solved
from terminal_escape.state import LevelState

HOME = "/home/user"
KEY_FILE = "/home/user/.hidden/system.key"
EGG_FILE = "/home/user/.hidden/readme.md"

# path -> list of children for directories, file text for files
TREE: Dict[str, object] = {
    "/home/user": ["Documents", "Pictures", ".hidden"],
    "/home/user/Documents": ["notes.txt", "todo.txt"],
    "/home/user/Documents/notes.txt": "The system key is not kept with the documents. "
                                      "Admins like to hide things where plain 'ls' won't look...",
    "/home/user/Documents/todo.txt": "1. Rotate the system key\n2. Feed the penguin\n3. Remove .hidden before audit",
    "/home/user/Pictures": ["vacation.jpg"],
    "/home/user/Pictures/vacation.jpg": "Just a nice beach photo.",
    "/home/user/.hidden": ["readme.md", "system.key"],
    "/home/user/.hidden/readme.md": "Nothing to see here... except a tiny ASCII penguin waving at you. <(o )___",
    "/home/user/.hidden/system.key": "XK42-9Y7Z",
}

DIRECTORIES = sorted(p for p, node in TREE.items() if isinstance(node, list))


def is_dir(path: str) -> bool:
    return isinstance(TREE.get(path), list)


def is_file(path: str) -> bool:
    return isinstance(TREE.get(path), str)


def resolve(cwd: str, target: str) -> Optional[str]:
    """Absolute path for *target* seen from *cwd*, or None if it climbs above home."""
    joined = target if target.startswith("/") else posixpath.join(cwd, target)
    path = posixpath.normpath(joined)
    if path != HOME and not path.startswith(HOME + "/"):
        return None
    return path


@dataclass
class FilesystemState(LevelState):
    kind = "filesystem"

    current_dir: str = HOME
    visited: List[str] = field(default_factory=lambda: [HOME])
    found_key: bool = False
    explored: bool = False

    @classmethod
    def decode(cls, payload: Dict[str, Any]) -> "FilesystemState":
        state = cls(**payload)
        if not is_dir(state.current_dir):
            state.current_dir = HOME
        state.visited = [path for path in state.visited if is_dir(path)] or [HOME]
        return state


class FileSystemMaze(Level):
    id = 2
    name = "File System Maze"
    description = "Navigate through a virtual file system to find the key."
    state_type = FilesystemState
    hints = (
        "Try using basic Linux commands like 'ls', 'cd', and 'cat'.",
        "Remember that hidden files and directories start with a dot (.) - try 'ls -a'.",
        "'find key' searches every path for a name.",
    )

    def __init__(self):
        super().__init__()
        self.cmds = {
            "ls": self.ls,
            "pwd": self.pwd,
            "cd": self.cd,
            "cat": self.cat,
            "find": self.find,
        }

    def render(self, state: FilesystemState) -> List[str]:
        lines = [
            "You're in a virtual file system and need to find the system key.",
            "",
            f"Current directory: [path]{state.current_dir}[/]",
            "",
            "Contents:",
        ]
        entries = [e for e in TREE[state.current_dir] if not e.startswith(".")]
        if not entries:
            lines.append("  [dim](empty directory)[/]")
        for entry in entries:
            kind = "Directory" if is_dir(f"{state.current_dir}/{entry}") else "File"
            lines.append(f"  {entry} [dim]({kind})[/]")
        lines += [
            "",
            f"Directories visited: {len(state.visited)}/{len(DIRECTORIES)}",
            "",
            "Commands: [command]ls[/], [command]cd <dir>[/], [command]cat <file>[/], "
            "[command]pwd[/], [command]find <name>[/]",
        ]
        return lines

    def ls(self, state: FilesystemState, args: List[str]) -> LevelResult:
        show_all = "-a" in args or "-la" in args or "-al" in args
        entries = [e for e in TREE[state.current_dir] if show_all or not e.startswith(".")]
        if show_all:
            entries = [".", ".."] + entries
        return reply("\n".join(entries) if entries else "(empty directory)")

    def pwd(self, state: FilesystemState, args: List[str]) -> LevelResult:
        return reply(state.current_dir)

    def cd(self, state: FilesystemState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: cd <dir>")
        target = args[0]
        if target == ".":
            return reply(f"Still in {state.current_dir}")

        path = resolve(state.current_dir, target)
        if path is None:
            return reply("Cannot go above the home directory.")
        if not is_dir(path):
            return reply(f"Cannot change to {target}: No such directory")

        state.current_dir = path
        if path not in state.visited:
            state.visited.append(path)

        events = ()
        if not state.explored and set(DIRECTORIES) <= set(state.visited):
            state.explored = True
            events = (ALL_DIRECTORIES_VISITED,)
        return reply(f"Changed directory to {path}", *events)

    def cat(self, state: FilesystemState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: cat <file>")
        target = args[0]
        path = resolve(state.current_dir, target)
        if path is None or not is_file(path):
            if path is not None and is_dir(path):
                return reply(f"cat: {target}: Is a directory")
            return reply(f"Cannot read {target}: No such file")

        content = TREE[path]
        if path == KEY_FILE:
            state.found_key = True
            return solved(f"You found the system key! The file contains: {content}")
        if path == EGG_FILE:
            return reply(f"File contents: {content}", EASTER_EGG_FOUND)
        return reply(f"File contents: {content}")

    def find(self, state: FilesystemState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: find <name>")
        needle = args[0]
        matches = [path for path in TREE if needle in path]
        if not matches:
            return reply(f'No matches found for "{needle}"')
        return reply("Found matches:\n" + "\n".join(sorted(matches)))
