from dataclasses import dataclass
from typing import List

from terminal_escape.levels.base import Level, LevelResult, reply, solved
from terminal_escape.state import LevelState

PASSWORD = "tux"
CLUE_DESK = "You found a sticky note that says: \"The password is the mascot's name\""
CLUE_DRAWER = "You found a book about Linux with a page bookmarked about Tux."


@dataclass
class TerminalState(LevelState):
    kind = "terminal"

    attempts: int = 0
    found_clue1: bool = False
    found_clue2: bool = False


class LockedTerminal(Level):
    id = 1
    name = "The Locked Terminal"
    description = "You find yourself in front of a locked terminal. Find the password to proceed."
    state_type = TerminalState
    hints = (
        "Try looking around the room for clues.",
        "The password is related to Linux.",
        "Tux is the Linux mascot - a penguin.",
    )

    def __init__(self):
        super().__init__()
        self.cmds = {"look": self.look, "check": self.check, "enter": self.enter}

    def render(self, state: TerminalState) -> List[str]:
        lines = [
            "You find yourself in a dimly lit room with a computer terminal.",
            "The screen shows a password prompt, and you need to get in.",
            "",
            "  ╔════════════════════════════════════╗",
            "  ║ [error]SYSTEM LOCKED[/]                      ║",
            "  ║                                    ║",
            "  ║ Enter password:                    ║",
            "  ║ Hint: The admin loves penguins     ║",
            "  ╚════════════════════════════════════╝",
            "",
        ]
        if state.found_clue1:
            lines.append(f"[info]{CLUE_DESK}[/]")
        if state.found_clue2:
            lines.append(f"[info]{CLUE_DRAWER}[/]")
        if state.attempts:
            lines.append(f"[warning]Failed attempts: {state.attempts}[/]")
        lines += ["", "Commands: [command]look around[/], [command]check desk[/], "
                      "[command]check drawer[/], [command]enter <password>[/]"]
        return lines

    def look(self, state: TerminalState, args: List[str]) -> LevelResult:
        if [a.lower() for a in args] != ["around"]:
            return reply("Look where? Try 'look around'.")
        return reply(
            "You see a desk with a computer on it. "
            "There's a drawer in the desk and some books on a shelf."
        )

    def check(self, state: TerminalState, args: List[str]) -> LevelResult:
        target = " ".join(args).lower()
        if target == "desk":
            state.found_clue1 = True
            return reply(CLUE_DESK)
        if target == "drawer":
            state.found_clue2 = True
            return reply(CLUE_DRAWER)
        return reply("Nothing interesting there. Try 'check desk' or 'check drawer'.")

    def enter(self, state: TerminalState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: enter <password>")
        state.attempts += 1
        if " ".join(args).strip().lower() == PASSWORD:
            return solved("Access granted! The terminal unlocks, revealing the next challenge.")
        return reply(f"Incorrect password. The system rejects your attempt. (Attempt {state.attempts})")
