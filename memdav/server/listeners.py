# memdav/server/listeners.py
"""
Listener specifications and socket binding.

A ListenerSpec describes one transport: plaintext TCP, TLS over TCP or a
unix domain socket. Sockets are bound here and handed to uvicorn already
listening.
"""
import socket
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from memdav.config import Settings
from memdav.errors import ConfigurationError

# Pending connection queue length for bound sockets
BACKLOG = 2048


class Transport(str, Enum):
    HTTP = "http"
    HTTPS = "https"
    UNIX = "unix"

    @property
    def label(self) -> str:
        return {"http": "HTTP", "https": "HTTPS", "unix": "unix socket"}[self.value]


@dataclass(frozen=True)
class ListenerSpec:
    transport: Transport
    address: str
    cert_file: Optional[str] = None
    key_file: Optional[str] = None

    @property
    def is_tls(self) -> bool:
        return self.transport is Transport.HTTPS


def listeners_from_settings(settings: Settings) -> List[ListenerSpec]:
    """
    Build the listener specs from configuration, in http, https, unix order.

    Raises:
        ConfigurationError: If no listener is configured, or HTTPS is
            configured without both a certificate and a key
    """
    specs = []
    if settings.LISTEN_HTTP:
        specs.append(ListenerSpec(Transport.HTTP, settings.LISTEN_HTTP))
    if settings.LISTEN_HTTPS:
        if not settings.CERT_FILE or not settings.KEY_FILE:
            raise ConfigurationError("--listen-https requires --cert and --key")
        specs.append(ListenerSpec(Transport.HTTPS, settings.LISTEN_HTTPS,
                                  cert_file=settings.CERT_FILE, key_file=settings.KEY_FILE))
    if settings.LISTEN_UNIX:
        specs.append(ListenerSpec(Transport.UNIX, settings.LISTEN_UNIX))
    if not specs:
        raise ConfigurationError(
            "Must specify at least one of --listen-http, --listen-https or --listen-unix")
    return specs


def parse_tcp_address(address: str) -> Tuple[str, int]:
    """
    Split "host:port" into its parts. The host may be empty (all
    interfaces) or a bracketed IPv6 literal.

    Raises:
        ValueError: If the address has no valid port
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address!r}: missing port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"address {address!r}: invalid port {port!r}") from None
    if not 0 <= number <= 65535:
        raise ValueError(f"address {address!r}: port out of range")
    return host, number


def bind_socket(spec: ListenerSpec) -> socket.socket:
    """
    Create, bind and listen on the socket for a spec.

    Raises:
        OSError: If the address can't be bound
        ValueError: If a TCP address can't be parsed
    """
    if spec.transport is Transport.UNIX:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        bind_to = spec.address
    else:
        host, port = parse_tcp_address(spec.address)
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        bind_to = (host, port)
    try:
        sock.bind(bind_to)
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    sock.setblocking(False)
    return sock


def describe(sock: socket.socket) -> str:
    """Printable form of a bound socket's address."""
    name = sock.getsockname()
    if isinstance(name, tuple):
        host, port = name[0], name[1]
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{port}"
    return str(name)
