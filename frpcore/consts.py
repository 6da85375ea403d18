"""Shared names: proxy kinds, authentication methods, status strings and errors."""

from enum import Enum


class ProxyType(str, Enum):
    """Kinds of proxy a client can register with the server."""

    TCP = "tcp"
    UDP = "udp"
    TCPMUX = "tcpmux"
    HTTP = "http"
    HTTPS = "https"
    STCP = "stcp"
    XTCP = "xtcp"
    SUDP = "sudp"

    def __str__(self) -> str:
        return self.value


class AuthMethod(str, Enum):
    """Ways a client proves itself to the server."""

    TOKEN = "token"
    OIDC = "oidc"

    def __str__(self) -> str:
        return self.value


# Proxy status strings.
IDLE = "idle"
WORKING = "working"
CLOSED = "closed"
ONLINE = "online"
OFFLINE = "offline"

# The only TCP multiplexer supported.
HTTP_CONNECT_TCP_MULTIPLEXER = "httpconnect"


class MessageTypeError(Exception):
    """A message of an unknown or unexpected type was seen."""

    def __init__(self, message: str = "message type error") -> None:
        super().__init__(message)


class ControlClosedError(Exception):
    """The control connection has been closed."""

    def __init__(self, message: str = "control is closed") -> None:
        super().__init__(message)