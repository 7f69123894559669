from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from terminal_escape.levels.base import Level, LevelResult, parse_int, reply, solved
from terminal_escape.state import LevelState

MALWARE = "malware.bin"
FIREWALL = "firewall"
SECURED = "System secured! Malware stopped and firewall running."


@dataclass
class Process:
    pid: int
    name: str
    cpu: float
    memory: float
    status: str = "running"


def _default_processes() -> List[Process]:
    return [
        Process(1, "systemd", 0.1, 4.2),
        Process(423, "sshd", 0.0, 1.1),
        Process(587, "nginx", 0.2, 2.3),
        Process(842, MALWARE, 99.7, 85.5),
        Process(967, "bash", 0.0, 0.5),
        Process(1024, FIREWALL, 0.1, 1.8, status="stopped"),
    ]


@dataclass
class ProcessState(LevelState):
    kind = "processes"

    processes: List[Process] = field(default_factory=_default_processes)
    malware_killed: bool = False
    firewall_started: bool = False

    @classmethod
    def decode(cls, payload: Dict[str, Any]) -> "ProcessState":
        payload = dict(payload)
        payload["processes"] = [Process(**p) for p in payload.get("processes", [])]
        return cls(**payload)

    def find(self, pid: int) -> Optional[Process]:
        return next((p for p in self.processes if p.pid == pid), None)

    @property
    def secure(self) -> bool:
        return self.malware_killed and self.firewall_started


class ProcessControl(Level):
    id = 3
    name = "Process Control"
    description = "Manage system processes to unlock the next level."
    state_type = ProcessState
    hints = (
        "Use 'ps' to list all processes and their PIDs.",
        "Look for processes with unusually high CPU or memory usage.",
        "Use 'kill <pid>' to stop a process and 'start <pid>' to start one.",
        "You need to both kill the malware and start the firewall to complete the level.",
    )

    def __init__(self):
        super().__init__()
        self.cmds = {"ps": self.ps, "kill": self.kill, "start": self.start, "info": self.info}

    def render(self, state: ProcessState) -> List[str]:
        lines = [
            "You've gained access to the system's process manager.",
            "Something seems to be consuming a lot of resources.",
            "You need to stop the malicious process and start the firewall.",
            "",
            "[bold]PID    NAME         CPU%    MEM%    STATUS[/]",
            "--------------------------------------------",
        ]
        for p in state.processes:
            style = "success" if p.status == "running" else "dim"
            lines.append(
                f"{str(p.pid):<7}{p.name:<13}{p.cpu:<8.1f}{p.memory:<8.1f}[{style}]{p.status}[/]"
            )
        status = "[success]SECURE[/]" if state.secure else "[error]VULNERABLE[/]"
        lines += [
            "",
            f"System status: {status}",
            "",
            "Commands: [command]ps[/], [command]kill <pid>[/], [command]start <pid>[/], [command]info <pid>[/]",
        ]
        return lines

    def _lookup(self, state: ProcessState, args: List[str], usage: str):
        if not args:
            return None, reply(f"Usage: {usage}")
        pid = parse_int(args[0])
        if pid is None:
            return None, reply(f"Invalid PID: {args[0]}")
        proc = state.find(pid)
        if proc is None:
            return None, reply(f"No process with PID {pid} found.")
        return proc, None

    def ps(self, state: ProcessState, args: List[str]) -> LevelResult:
        return reply("\n".join(f"{p.pid:>5} {p.name:<12} {p.status}" for p in state.processes))

    def kill(self, state: ProcessState, args: List[str]) -> LevelResult:
        proc, error = self._lookup(state, args, "kill <pid>")
        if error:
            return error
        if proc.status == "stopped":
            return reply(f"Process {proc.pid} ({proc.name}) is already stopped.")

        proc.status = "stopped"
        if proc.name == FIREWALL:
            state.firewall_started = False
            return reply(f"Process {proc.pid} ({proc.name}) stopped. The system is exposed again!")
        if proc.name != MALWARE:
            return reply(f"Process {proc.pid} ({proc.name}) stopped.")

        state.malware_killed = True
        if state.secure:
            return solved(SECURED)
        return reply(f"Killed malicious process {proc.pid} ({proc.name}). Now start the firewall!")

    def start(self, state: ProcessState, args: List[str]) -> LevelResult:
        proc, error = self._lookup(state, args, "start <pid>")
        if error:
            return error
        if proc.status == "running":
            return reply(f"Process {proc.pid} ({proc.name}) is already running.")

        proc.status = "running"
        if proc.name == MALWARE:
            state.malware_killed = False
            return reply(f"Process {proc.pid} ({proc.name}) started. That was a bad idea.")
        if proc.name != FIREWALL:
            return reply(f"Process {proc.pid} ({proc.name}) started.")

        state.firewall_started = True
        if state.secure:
            return solved(SECURED)
        return reply(f"Started firewall process {proc.pid}. Now kill the malware!")

    def info(self, state: ProcessState, args: List[str]) -> LevelResult:
        proc, error = self._lookup(state, args, "info <pid>")
        if error:
            return error
        info = [
            "Process Information:",
            f"PID: {proc.pid}",
            f"Name: {proc.name}",
            f"CPU Usage: {proc.cpu:.1f}%",
            f"Memory Usage: {proc.memory:.1f}%",
            f"Status: {proc.status}",
        ]
        if proc.name == MALWARE:
            info += ["", "WARNING: This process appears to be malicious!"]
        elif proc.name == FIREWALL:
            info += ["", "NOTE: This is the system's security service."]
        return reply("\n".join(info))
