from typing import Iterable, List, Optional, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from terminal_escape.achievements import Achievement
from terminal_escape.leaderboard import LeaderboardEntry, format_time
from terminal_escape.levels import Level


def boxed(title: str, lines: Iterable[str], border_style: str = "border") -> Panel:
    """Lay pre-rendered markup lines out inside a titled panel."""
    return Panel("\n".join(lines), title=f"[accent]{title}[/]", border_style=border_style, box=box.ROUNDED)


def message(console: Console, text: Optional[str], style: str = "info"):
    """Print player-facing plain text. Brackets in it are never treated as markup."""
    if text:
        console.print(Text(text, style=style))


def menu_lines(options: Sequence[str]) -> List[str]:
    return [f"[command]{i}.[/] {label}" for i, label in enumerate(options, start=1)]


def header(player_name: str, level: Optional[Level], total: int) -> Panel:
    grid = Table.grid(expand=True)
    grid.add_column(ratio=1)
    grid.add_column(ratio=1, justify="right")
    where = f"Level {level.id}/{total}: {level.name}" if level else "Escaped"
    grid.add_row(f"[accent]Player:[/] {escape(player_name)}", f"[accent]{where}[/]")
    return Panel(grid, border_style="border", box=box.ROUNDED)


# --- Tables ---

def help_table(level: Optional[Level]) -> Table:
    t = Table(title="Commands", box=box.SIMPLE)
    t.add_column("Cmd", style="command")
    t.add_column("Desc")
    t.add_row("/help", "Show this list")
    t.add_row("/hint", "Get the next hint for this level")
    t.add_row("/history", "Show your recent commands")
    t.add_row("/save", "Save the game")
    t.add_row("/menu", "Save and return to the main menu")
    if level is not None:
        t.add_row("", "")
        for cmd in level.cmds:
            t.add_row(cmd, f"Level {level.id} command")
    return t


def leaderboard_table(entries: List[LeaderboardEntry], limit: int) -> Table:
    t = Table(title="Leaderboard", box=box.SIMPLE)
    t.add_column("#", justify="right")
    t.add_column("Player")
    t.add_column("Time", justify="right")
    t.add_column("Date")
    for rank, entry in enumerate(entries[:limit], start=1):
        t.add_row(str(rank), Text(entry.player_name), format_time(entry.completion_time),
                  entry.completion_date[:10])
    return t


def achievement_table(unlocked: List[Achievement], locked: List[Achievement], hidden: int) -> Table:
    t = Table(title="Achievements", box=box.SIMPLE)
    t.add_column("")
    t.add_column("Name")
    t.add_column("Description")
    for a in unlocked:
        t.add_row(a.icon, f"[success]{a.name}[/]", a.description)
    for a in locked:
        t.add_row("🔒", f"[dim]{a.name}[/]", f"[dim]{a.description}[/]")
    if hidden:
        t.add_row("❓", f"[dim]{hidden} secret achievement(s)[/]", "[dim]Keep exploring...[/]")
    return t


def progress_lines(levels: List[Level], completed: List[int], current: int) -> List[str]:
    lines = []
    for level in levels:
        if level.id in completed:
            mark = "[success][✓][/]"
        elif level.id == current:
            mark = "[warning][>][/]"
        else:
            mark = "[dim][ ][/]"
        lines.append(f"{mark} Level {level.id}: {level.name}")
        lines.append(f"    [dim]{level.description}[/]")
    return lines


def achievement_panel(achievement: Achievement) -> Panel:
    body = f"{achievement.icon}  [success]{achievement.name}[/]\n[dim]{achievement.description}[/]"
    return Panel(body, title="[accent]ACHIEVEMENT UNLOCKED[/]", border_style="success")


def pick_option(raw: str, options: Tuple[str, ...]) -> Optional[str]:
    """Map a typed menu choice (number or label) to its label."""
    raw = raw.strip().lower()
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return options[int(raw) - 1]
    for label in options:
        if label.lower() == raw:
            return label
    return None
