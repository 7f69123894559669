import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from terminal_escape.levels.base import Level, LevelResult, reply, solved
from terminal_escape.state import LevelState

SECRET = "secret_data.db"
SCRIPT = "change_permissions.sh"
ACCESS_KEY = "access_key.bin"

CONTENTS = {
    "README.txt": (
        "Welcome to the permissions puzzle!\n\n"
        "You need to:\n"
        "1. Make the script executable\n"
        "2. Run the script to gain sudo access\n"
        "3. Access the protected data"
    ),
    SCRIPT: (
        "#!/bin/bash\n"
        "# This script grants sudo access\n"
        'echo "Granting temporary sudo access..."'
    ),
    ACCESS_KEY: "BINARY DATA: sudo_access_granted=true\n\nYou can now use sudo commands!",
    SECRET: (
        "CONGRATULATIONS!\n"
        "You've successfully navigated the permissions puzzle and accessed the protected data.\n\n"
        "Proceeding to next level..."
    ),
}

# index of the r/w/x character for each class in a 10-character mode string
OFFSETS = {"u": 1, "g": 4, "o": 7}
BITS = {"r": 0, "w": 1, "x": 2}
FULL_MODE = re.compile(r"^[-d]?[r-][w-][x-][r-][w-][x-][r-][w-][x-]$")
SYMBOLIC_MODE = re.compile(r"^([ugoa]*)([+-])([rwx]+)$")


def normalize_mode(mode: str) -> str:
    """Accept 9- or 10-character permission strings, always store 10."""
    return mode if len(mode) == 10 else "-" + mode


def apply_mode(current: str, mode: str) -> Optional[str]:
    """New permission string after ``chmod <mode>``, or None if the mode is not understood."""
    if FULL_MODE.match(mode):
        return normalize_mode(mode)
    m = SYMBOLIC_MODE.match(mode)
    if not m:
        return None
    who, op, perms = m.groups()
    classes = "ugo" if who in ("", "a") or "a" in who else who
    chars = list(current)
    for cls in classes:
        for perm in perms:
            chars[OFFSETS[cls] + BITS[perm]] = perm if op == "+" else "-"
    return "".join(chars)


@dataclass
class File:
    name: str
    permissions: str
    owner: str
    group: str

    def bit(self, cls: str, perm: str) -> bool:
        return self.permissions[OFFSETS[cls] + BITS[perm]] == perm


def _default_files() -> List[File]:
    return [
        File("README.txt", "-rw-r--r--", "user", "user"),
        File(SECRET, "----------", "root", "root"),
        File(SCRIPT, "-r--------", "user", "user"),
        File(ACCESS_KEY, "--w-------", "user", "user"),
    ]


@dataclass
class PermissionsState(LevelState):
    kind = "permissions"

    files: List[File] = field(default_factory=_default_files)
    current_user: str = "user"
    sudo_available: bool = False
    script_executable: bool = False
    access_key_readable: bool = False

    @classmethod
    def decode(cls, payload: Dict[str, Any]) -> "PermissionsState":
        payload = dict(payload)
        payload["files"] = [File(**f) for f in payload.get("files", [])]
        return cls(**payload)

    def file(self, name: str) -> Optional[File]:
        return next((f for f in self.files if f.name == name), None)

    @property
    def can_sudo(self) -> bool:
        return self.sudo_available or self.access_key_readable

    def can_read(self, f: File) -> bool:
        user = self.current_user
        if user == "root":
            return True
        if user == f.owner:
            return f.bit("u", "r")
        if user == f.group:
            return f.bit("g", "r")
        return f.bit("o", "r")

    def can_modify(self, f: File) -> bool:
        return self.current_user in (f.owner, "root")


class PermissionsPuzzle(Level):
    id = 4
    name = "Permissions Puzzle"
    description = "Fix file permissions to access a protected file."
    state_type = PermissionsState
    hints = (
        "First read the README.txt file to understand what you need to do.",
        "Make the script executable with 'chmod +x change_permissions.sh'.",
        "After making the script executable, run it with 'sh change_permissions.sh'.",
        "Once you have sudo access, read anything with 'sudo cat secret_data.db'.",
        "Alternatively, make access_key.bin readable with 'chmod u+r access_key.bin' and read it.",
    )

    def __init__(self):
        super().__init__()
        self.cmds = {
            "ls": self.ls,
            "cat": self.cat,
            "chmod": self.chmod,
            "sh": self.sh,
            "sudo": self.sudo,
            "whoami": self.whoami,
        }

    def _listing(self, state: PermissionsState) -> List[str]:
        return [f"{f.permissions}  {f.owner:<6}{f.group:<7}{f.name}" for f in state.files]

    def render(self, state: PermissionsState) -> List[str]:
        lines = [
            "You need to access the protected files to proceed.",
            f"Current user: [accent]{state.current_user}[/]"
            + ("  [success](sudo available)[/]" if state.can_sudo else ""),
            "",
            "[bold]PERMISSIONS  OWNER  GROUP  FILENAME[/]",
            "----------------------------------------",
        ]
        lines += self._listing(state)
        lines += [
            "",
            "Commands: [command]ls[/], [command]cat <file>[/], [command]chmod <mode> <file>[/], "
            "[command]sh <script>[/], [command]sudo <command>[/]",
        ]
        return lines

    def ls(self, state: PermissionsState, args: List[str]) -> LevelResult:
        return reply("\n".join(self._listing(state)))

    def whoami(self, state: PermissionsState, args: List[str]) -> LevelResult:
        return reply(state.current_user)

    def _read(self, state: PermissionsState, f: File, via_sudo: bool = False) -> LevelResult:
        if f.name == SECRET:
            return solved(f"File contents:\n\n{CONTENTS[SECRET]}")
        if f.name == ACCESS_KEY:
            state.access_key_readable = True
        prefix = "File contents (sudo)" if via_sudo else "File contents"
        return reply(f"{prefix}:\n\n{CONTENTS[f.name]}")

    def cat(self, state: PermissionsState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: cat <file>")
        f = state.file(args[0])
        if f is None:
            return reply(f"File {args[0]} not found.")
        if not state.can_read(f):
            return reply(f"Permission denied: Cannot read {f.name}")
        return self._read(state, f)

    def _chmod(self, state: PermissionsState, mode: str, name: str, via_sudo: bool) -> LevelResult:
        f = state.file(name)
        if f is None:
            return reply(f"File {name} not found.")
        if not via_sudo and not state.can_modify(f):
            return reply(f"Permission denied: Cannot modify permissions of {name}")
        updated = apply_mode(f.permissions, mode)
        if updated is None:
            return reply(f"chmod: invalid mode: '{mode}'")
        f.permissions = updated
        if f.name == SCRIPT:
            state.script_executable = f.bit("u", "x")
        suffix = " with sudo privileges" if via_sudo else ""
        return reply(f"Changed permissions of {name} to {f.permissions}{suffix}")

    def chmod(self, state: PermissionsState, args: List[str]) -> LevelResult:
        if len(args) < 2:
            return reply("Usage: chmod <mode> <file>")
        return self._chmod(state, args[0], args[1], via_sudo=False)

    def sh(self, state: PermissionsState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: sh <script>")
        f = state.file(args[0])
        if f is None:
            return reply(f"Script {args[0]} not found.")
        if not f.bit("u", "x"):
            return reply(f"Permission denied: Cannot execute {f.name}. Make it executable first.")
        if f.name == SCRIPT:
            state.sudo_available = True
            return reply(f"Executing {f.name}...\n\nGranting temporary sudo access...\nYou can now use sudo commands!")
        return reply(f"Executed {f.name}, but nothing happened.")

    def sudo(self, state: PermissionsState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: sudo <command> [args...]")
        if not state.can_sudo:
            return reply("sudo: permission denied. You need to gain sudo access first.")

        sub, rest = args[0].lower(), args[1:]
        if sub == "cat":
            if not rest:
                return reply("Usage: sudo cat <file>")
            f = state.file(rest[0])
            if f is None:
                return reply(f"File {rest[0]} not found.")
            return self._read(state, f, via_sudo=True)
        if sub == "chmod":
            if len(rest) < 2:
                return reply("Usage: sudo chmod <mode> <file>")
            return self._chmod(state, rest[0], rest[1], via_sudo=True)
        return reply(f"sudo: {sub}: command not supported here")
