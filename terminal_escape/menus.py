import logging
from typing import Optional, Tuple

from rich.console import Console
from rich.markup import escape

from terminal_escape import ui
from terminal_escape.achievements import Achievement
from terminal_escape.config import LEADERBOARD_SHOWN
from terminal_escape.effects import THEMES, SoundEngine, VisualFX, make_theme
from terminal_escape.errors import TerminalEscapeError
from terminal_escape.levels import NextAction
from terminal_escape.session import GameSession

logger = logging.getLogger(__name__)

ENTRY_OPTIONS = ("New Game", "Load Game", "Exit")
MAIN_OPTIONS = (
    "Continue",
    "New Game",
    "Load Game",
    "Leaderboard",
    "Achievements",
    "Progress Map",
    "Settings",
    "Exit",
)


class App:
    """Screens and the turn loop. Everything persistent goes through ``self.session``."""

    def __init__(self, console: Console, session: GameSession, theme: str):
        self.console = console
        self.session = session
        self.theme = theme
        self._theme_pushed = False
        self.session.on_unlock = self.show_achievement
        self.meta = {
            "/help": self.show_help,
            "/hint": self.show_hint,
            "/history": self.show_history,
            "/save": self.save_game,
        }

    # --- Input ---

    def ask(self, prompt: str = "> ") -> str:
        return self.console.input(f"\n[accent]{prompt}[/]").strip()

    def choose(self, title: str, options: Tuple[str, ...]) -> str:
        while True:
            self.console.print(ui.boxed(title, ui.menu_lines(options)))
            picked = ui.pick_option(self.ask("Choice: "), options)
            if picked:
                return picked
            ui.message(self.console, f"Please pick 1-{len(options)}.", style="warning")
            SoundEngine.error()

    def pause(self):
        self.console.input("\n[dim]Press Enter to continue...[/]")

    # --- Entry ---

    def run(self, skip_intro: bool = False) -> int:
        self.session.initialize_storage()
        if not skip_intro:
            VisualFX.boot(self.console)

        while True:
            self.console.clear()
            VisualFX.banner(self.console)
            choice = self.choose("START", ENTRY_OPTIONS)
            if choice == "Exit":
                return self.goodbye()
            if choice == "New Game" and self.new_game():
                break
            if choice == "Load Game" and self.load_game():
                break

        self.play()
        return self.main_menu()

    def goodbye(self) -> int:
        self.shutdown()
        ui.message(self.console, "Logging out. Goodbye.", style="accent")
        return 0

    def shutdown(self):
        if self.session.state is not None:
            self.session.save()

    def main_menu(self) -> int:
        actions = {
            "Continue": self.continue_game,
            "New Game": lambda: self.new_game() and self.play(),
            "Load Game": lambda: self.load_game() and self.play(),
            "Leaderboard": self.show_leaderboard,
            "Achievements": self.show_achievements,
            "Progress Map": self.show_progress,
            "Settings": self.settings,
        }
        while True:
            self.console.clear()
            VisualFX.banner(self.console)
            choice = self.choose("MAIN MENU", MAIN_OPTIONS)
            if choice == "Exit":
                return self.goodbye()
            try:
                actions[choice]()
            except TerminalEscapeError as e:
                logger.error("%s", e)
                ui.message(self.console, str(e), style="error")
                self.pause()

    # --- Game flow ---

    def new_game(self) -> bool:
        name = self.ask("Enter your hacker alias: ")
        if not name:
            ui.message(self.console, "A name is required.", style="warning")
            return False
        VisualFX.loading(self.console, "Creating new session")
        self.session.create_new_game(name)
        return True

    def load_game(self) -> bool:
        saves = self.session.list_saves()
        if not saves:
            ui.message(self.console, "No saved games found.", style="warning")
            self.pause()
            return False

        picked = ui.pick_option(self.ask_from("LOAD GAME", saves), tuple(saves))
        if picked is None:
            ui.message(self.console, "No such save.", style="warning")
            self.pause()
            return False

        VisualFX.loading(self.console, "Restoring session")
        result = self.session.load(picked)
        ui.message(self.console, result.message, style="success" if result.success else "error")
        if not result.success:
            self.pause()
        return result.success

    def ask_from(self, title: str, options) -> str:
        self.console.print(ui.boxed(title, ui.menu_lines(options)))
        return self.ask("Choice: ")

    def continue_game(self):
        self.session.require_state("continue")
        self.play()

    def play(self):
        """Turn loop for the active game. Returns when the player leaves or escapes."""
        session = self.session
        while True:
            if session.is_finished:
                self.victory()
                return

            state = session.require_state("play")
            self.console.clear()
            self.console.print(ui.header(state.player_name, session.current_level, len(session.registry)))
            level = session.current_level
            self.console.print(ui.boxed(f"Level {level.id}: {level.name}", session.current_view()))

            line = self.ask()
            command = line.lower()
            if command == "/menu":
                self.save_game()
                return
            if command in self.meta:
                self.meta[command]()
                self.pause()
                continue

            result = session.submit(line)
            if result.completed:
                SoundEngine.success()
                ui.message(self.console, result.message, style="success")
            else:
                ui.message(self.console, result.message)
            if result.completed or result.message:
                self.pause()
            if result.next_action is NextAction.MAIN_MENU and not session.is_finished:
                return

    def victory(self):
        self.console.clear()
        VisualFX.banner(self.console, "ESCAPED")
        state = self.session.state
        lines = [
            f"Congratulations, {escape(state.player_name)}! You escaped the terminal.",
            "",
            f"Levels completed: {len(state.completed_levels)}/{len(self.session.registry)}",
        ]
        self.console.print(ui.boxed("SYSTEM UNLOCKED", lines, border_style="success"))
        SoundEngine.success()
        self.pause()

    # --- Meta commands ---

    def show_help(self):
        self.console.print(ui.help_table(self.session.current_level))

    def show_hint(self):
        hint = self.session.request_hint()
        if hint is None:
            ui.message(self.console, "No more hints for this level.", style="warning")
            return
        self.console.print(ui.boxed("HINT", [escape(hint)], border_style="warning"))

    def show_history(self):
        state = self.session.require_state("show history")
        commands = self.session.history.get(state.player_name)
        if not commands:
            ui.message(self.console, "No commands yet.", style="dim")
            return
        self.console.print(ui.boxed("HISTORY", [escape(c) for c in commands]))

    def save_game(self):
        result = self.session.save()
        ui.message(self.console, result.message, style="success" if result.success else "error")

    def show_achievement(self, achievement: Achievement):
        SoundEngine.achievement()
        self.console.print(ui.achievement_panel(achievement))

    # --- Menu screens ---

    def show_leaderboard(self):
        entries = self.session.leaderboard.entries()
        if not entries:
            ui.message(self.console, "No one has escaped yet. Be the first!", style="dim")
        else:
            self.console.print(ui.leaderboard_table(entries, LEADERBOARD_SHOWN))
        self.pause()

    def show_achievements(self):
        tracker = self.session.tracker
        if tracker is None:
            ui.message(self.console, "Start or load a game to see achievements.", style="warning")
        else:
            table = ui.achievement_table(tracker.unlocked(), tracker.locked(), len(tracker.hidden()))
            self.console.print(table)
        self.pause()

    def show_progress(self):
        state = self.session.require_state("show progress")
        lines = ui.progress_lines(self.session.registry.all(), state.completed_levels, state.current_level)
        self.console.print(ui.boxed("PROGRESS MAP", lines))
        self.pause()

    def settings(self):
        options = ("Theme", "Sound", "Back")
        while True:
            sound = "on" if SoundEngine.enabled else "off"
            lines = [f"Theme: [accent]{self.theme}[/]", f"Sound: [accent]{sound}[/]"]
            self.console.print(ui.boxed("SETTINGS", lines))
            choice = self.choose("OPTIONS", options)
            if choice == "Back":
                return
            if choice == "Sound":
                SoundEngine.enabled = not SoundEngine.enabled
            elif choice == "Theme":
                self.set_theme(self.choose("THEME", tuple(THEMES)))

    def set_theme(self, name: Optional[str]):
        if name not in THEMES:
            return
        self.theme = name
        if self._theme_pushed:
            self.console.pop_theme()
        self.console.push_theme(make_theme(name))
        self._theme_pushed = True
        logger.debug("Theme set to %s", name)
