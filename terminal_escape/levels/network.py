import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from terminal_escape.levels.base import Level, LevelResult, NextAction, parse_int, reply, solved
from terminal_escape.state import LevelState

PORTAL_HOST = "escape.portal"
PORTAL_IP = "10.0.0.1"
PORTAL_PORT = 8080
LOOPBACK = "127.0.0.1"
RESOLV_CONF = "/etc/resolv.conf"

IPV4 = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")


def valid_ip(text: str) -> bool:
    m = IPV4.match(text)
    return bool(m) and all(int(octet) <= 255 for octet in m.groups())


def parse_port(text: str) -> Optional[int]:
    port = parse_int(text)
    if port is None or not 1 <= port <= 65535:
        return None
    return port


@dataclass
class Interface:
    name: str
    status: str = "DOWN"
    ip: str = ""
    netmask: str = ""


@dataclass
class Rule:
    port: int
    protocol: str = "tcp"
    action: str = "DENY"


@dataclass
class Connection:
    protocol: str
    local_address: str
    local_port: int
    remote_address: str
    remote_port: int


def _default_interfaces() -> List[Interface]:
    return [
        Interface("lo", "UP", LOOPBACK, "255.0.0.0"),
        Interface("eth0"),
        Interface("wlan0"),
    ]


def _default_rules() -> List[Rule]:
    return [Rule(22), Rule(80), Rule(443), Rule(PORTAL_PORT)]


@dataclass
class NetworkState(LevelState):
    kind = "network"

    interfaces: List[Interface] = field(default_factory=_default_interfaces)
    firewall_enabled: bool = True
    rules: List[Rule] = field(default_factory=_default_rules)
    dns_server: str = ""
    gateway: str = ""
    connections: List[Connection] = field(default_factory=list)

    @classmethod
    def decode(cls, payload: Dict[str, Any]) -> "NetworkState":
        payload = dict(payload)
        payload["interfaces"] = [Interface(**i) for i in payload.get("interfaces", [])]
        payload["rules"] = [Rule(**r) for r in payload.get("rules", [])]
        payload["connections"] = [Connection(**c) for c in payload.get("connections", [])]
        return cls(**payload)

    def interface(self, name: str) -> Optional[Interface]:
        return next((i for i in self.interfaces if i.name == name), None)

    def uplink(self) -> Optional[Interface]:
        """First interface that can actually reach the outside."""
        return next(
            (i for i in self.interfaces if i.status == "UP" and i.ip and i.ip != LOOPBACK),
            None,
        )

    def blocks(self, port: int) -> bool:
        if not self.firewall_enabled:
            return False
        rule = next((r for r in self.rules if r.port == port), None)
        return rule is not None and rule.action == "DENY"

    def route_error(self) -> Optional[str]:
        if self.uplink() is None:
            return "Network is unreachable. Configure a network interface first."
        if not self.gateway:
            return "Network is unreachable. Configure a default gateway first."
        return None


class NetworkEscape(Level):
    id = 5
    name = "Network Escape"
    description = "Configure network settings to escape the isolated system."
    state_type = NetworkState
    hints = (
        "First bring up a network interface with 'ifup eth0'.",
        "Configure the interface with 'ifconfig eth0 10.0.0.2 255.255.255.0'.",
        "Set up a default gateway with 'route add default 10.0.0.254'.",
        "Configure DNS with 'echo nameserver 10.0.0.254 > /etc/resolv.conf'.",
        "Allow the escape portal port with 'firewall-cmd --allow 8080'.",
        "Connect to the escape portal with 'connect escape.portal 8080'.",
    )

    def __init__(self):
        super().__init__()
        self.cmds = {
            "ifconfig": self.ifconfig,
            "ifup": self.ifup,
            "firewall-cmd": self.firewall_cmd,
            "route": self.route,
            "echo": self.echo,
            "ping": self.ping,
            "nslookup": self.nslookup,
            "connect": self.connect,
        }

    def _interface_rows(self, state: NetworkState) -> List[str]:
        return [f"{i.name:<7}{i.status:<9}{i.ip:<14}{i.netmask}" for i in state.interfaces]

    def _rule_rows(self, state: NetworkState) -> List[str]:
        return [f"{r.action} {r.protocol.upper()} port {r.port}" for r in state.rules]

    def render(self, state: NetworkState) -> List[str]:
        lines = [
            "You're trapped in an isolated system. Configure the network to escape.",
            "",
            "[bold]NAME   STATUS   IP            NETMASK[/]",
            "----------------------------------------",
        ]
        lines += self._interface_rows(state)
        lines.append("")
        if state.firewall_enabled:
            lines.append("Firewall Status: [warning]ENABLED[/]")
            lines += [f"  {row}" for row in self._rule_rows(state)]
        else:
            lines.append("Firewall Status: [dim]DISABLED[/]")
        lines += [
            "",
            f"DNS Server: {state.dns_server or 'Not configured'}",
            f"Default Gateway: {state.gateway or 'Not configured'}",
            "",
            "Active Connections:",
        ]
        if not state.connections:
            lines.append("  None")
        for c in state.connections:
            lines.append(
                f"  {c.protocol.upper()} {c.local_address}:{c.local_port} -> {c.remote_address}:{c.remote_port}"
            )
        lines += [
            "",
            "Commands: [command]ifconfig[/], [command]ifup <iface>[/], [command]ifconfig <iface> <ip> <netmask>[/],",
            "          [command]firewall-cmd --list|--disable|--allow <port>[/], [command]route add default <gateway>[/],",
            f"          [command]echo nameserver <ip> > {RESOLV_CONF}[/], [command]ping <host>[/], "
            "[command]nslookup <host>[/], [command]connect <host> <port>[/]",
        ]
        return lines

    def ifconfig(self, state: NetworkState, args: List[str]) -> LevelResult:
        if not args:
            return reply("\n".join(self._interface_rows(state)))
        if len(args) < 3:
            return reply("Usage: ifconfig <interface> <ip> <netmask>")

        name, ip, netmask = args[:3]
        iface = state.interface(name)
        if iface is None:
            return reply(f"Interface {name} not found.")
        if iface.status == "DOWN":
            return reply(f'Interface {name} is down. Bring it up first with "ifup {name}".')
        if not valid_ip(ip):
            return reply(f"Invalid IP address format: {ip}")
        if not valid_ip(netmask):
            return reply(f"Invalid netmask format: {netmask}")

        iface.ip, iface.netmask = ip, netmask
        return reply(f"Configured {name} with IP {ip} and netmask {netmask}.")

    def ifup(self, state: NetworkState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: ifup <interface>")
        iface = state.interface(args[0])
        if iface is None:
            return reply(f"Interface {args[0]} not found.")
        if iface.status == "UP":
            return reply(f"Interface {iface.name} is already up.")
        iface.status = "UP"
        return reply(f"Interface {iface.name} is now UP.")

    def firewall_cmd(self, state: NetworkState, args: List[str]) -> LevelResult:
        sub = args[0] if args else ""
        if sub == "--list":
            status = "enabled" if state.firewall_enabled else "disabled"
            return reply(f"Firewall {status}. Rules:\n" + "\n".join(self._rule_rows(state)))
        if sub == "--disable":
            state.firewall_enabled = False
            return reply("Firewall disabled.")
        if sub == "--allow":
            if len(args) < 2:
                return reply("Usage: firewall-cmd --allow <port>")
            port = parse_port(args[1])
            if port is None:
                return reply(f"Invalid port number: {args[1]}")
            rule = next((r for r in state.rules if r.port == port), None)
            if rule is None:
                state.rules.append(Rule(port, action="ALLOW"))
            else:
                rule.action = "ALLOW"
            return reply(f"Allowed TCP port {port} through firewall.")
        return reply("Usage: firewall-cmd --list | --disable | --allow <port>")

    def route(self, state: NetworkState, args: List[str]) -> LevelResult:
        if len(args) < 3 or args[0] != "add" or args[1] != "default":
            return reply("Usage: route add default <gateway>")
        gateway = args[2]
        if not valid_ip(gateway):
            return reply(f"Invalid gateway address format: {gateway}")
        state.gateway = gateway
        return reply(f"Default gateway set to {gateway}.")

    def echo(self, state: NetworkState, args: List[str]) -> LevelResult:
        if len(args) != 4 or args[0] != "nameserver" or args[2] != ">" or args[3] != RESOLV_CONF:
            return reply(" ".join(args))
        server = args[1]
        if not valid_ip(server):
            return reply(f"Invalid DNS server address format: {server}")
        state.dns_server = server
        return reply(f"DNS server set to {server}.")

    def ping(self, state: NetworkState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: ping <host>")
        host = args[0]
        error = state.route_error()
        if error:
            return reply(error)

        if host == PORTAL_HOST:
            if not state.dns_server:
                return reply(f"ping: unknown host {host}. Configure DNS first.")
            return reply(_ping_output(host, PORTAL_IP))
        if host == PORTAL_IP:
            return reply(_ping_output(host, host))
        return reply(f"ping: cannot resolve {host}: Unknown host")

    def nslookup(self, state: NetworkState, args: List[str]) -> LevelResult:
        if not args:
            return reply("Usage: nslookup <host>")
        host = args[0]
        if not state.dns_server:
            return reply(f"nslookup: can't resolve '{host}': No DNS servers configured")
        header = f"Server:\t{state.dns_server}\nAddress:\t{state.dns_server}#53\n\n"
        if host == PORTAL_HOST:
            return reply(header + f"Non-authoritative answer:\nName:\t{host}\nAddress: {PORTAL_IP}")
        return reply(header + f"** server can't find {host}: NXDOMAIN")

    def connect(self, state: NetworkState, args: List[str]) -> LevelResult:
        if len(args) < 2:
            return reply("Usage: connect <host> <port>")
        host = args[0]
        port = parse_port(args[1])
        if port is None:
            return reply(f"Invalid port number: {args[1]}")

        error = state.route_error()
        if error:
            return reply(error)

        address = host
        if host == PORTAL_HOST:
            if not state.dns_server:
                return reply(f"connect: could not resolve {host}: Name or service not known")
            address = PORTAL_IP

        if state.blocks(port):
            return reply("connect: Connection refused (blocked by firewall)")

        if address == PORTAL_IP and port == PORTAL_PORT:
            return solved(
                f"Connected to escape portal at {host}:{port}!\n\n"
                "Welcome to the escape portal. You have successfully configured the network "
                "and escaped the isolated system.\n\n"
                "Congratulations on completing all levels!",
                next_action=NextAction.MAIN_MENU,
            )

        state.connections.append(Connection(
            protocol="tcp",
            local_address=state.uplink().ip,
            local_port=12345 + len(state.connections),
            remote_address=address,
            remote_port=port,
        ))
        return reply(f"Connected to {host}:{port}, but nothing interesting happened.")


def _ping_output(host: str, ip: str) -> str:
    head = f"PING {host} ({ip}): 56 data bytes" if host != ip else f"PING {host}: 56 data bytes"
    return "\n".join([
        head,
        f"64 bytes from {ip}: icmp_seq=0 ttl=64 time=0.1 ms",
        f"64 bytes from {ip}: icmp_seq=1 ttl=64 time=0.1 ms",
        "",
        f"--- {host} ping statistics ---",
        "2 packets transmitted, 2 packets received, 0.0% packet loss",
        "round-trip min/avg/max/stddev = 0.1/0.1/0.1/0.0 ms",
    ])
