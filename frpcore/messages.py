"""Control messages exchanged between client and server, with their JSON form.

Each message kind has a one-byte type tag.  The JSON body leaves out empty
fields, writes map keys in sorted order and escapes ``<``, ``>`` and ``&``.
"""

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Optional, get_args, get_origin

from .consts import MessageTypeError

UDPAddr = tuple[str, int]


def _check(value: Any, expected: type, key: str) -> Any:
    if expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ValueError(
            f"field {key!r}: expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def _to_json_value(message: Any) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for f in fields(message):
        value = getattr(message, f.name)
        if not f.metadata.get("keep") and _is_empty(value):
            continue
        result[f.metadata.get("json", f.name)] = _encode_value(value, f)
    return result


def _encode_value(value: Any, f: Any) -> Any:
    encoder = f.metadata.get("encode")
    if encoder is not None:
        return encoder(value)
    if is_dataclass(value):
        return _to_json_value(value)
    if isinstance(value, list):
        return [_to_json_value(item) if is_dataclass(item) else item for item in value]
    if isinstance(value, dict):
        return dict(sorted(value.items()))
    return value


def _decode_value(f: Any, key: str, raw: Any) -> Any:
    decoder = f.metadata.get("decode")
    if decoder is not None:
        return decoder(raw)
    origin = get_origin(f.type)
    if origin is list:
        (item_type,) = get_args(f.type)
        return [_check(item, item_type, key) for item in _check(raw, list, key)]
    if origin is dict:
        _, value_type = get_args(f.type)
        return {k: _check(v, value_type, key) for k, v in _check(raw, dict, key).items()}
    return _check(raw, f.type, key)


def _from_json_value(cls: type, data: Any) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"{cls.__name__} must be a JSON object")
    lowered = {key.lower(): value for key, value in data.items()}
    kwargs = {}
    for f in fields(cls):
        key = f.metadata.get("json", f.name)
        raw = data[key] if key in data else lowered.get(key.lower())
        if raw is None:
            continue
        kwargs[f.name] = _decode_value(f, key, raw)
    return cls(**kwargs)


def _encode_udp_addr(addr: UDPAddr) -> dict[str, Any]:
    host, port = addr
    return {"IP": host, "Port": port, "Zone": ""}


def _decode_udp_addr(raw: Any) -> UDPAddr:
    if not isinstance(raw, dict):
        raise ValueError("UDP address must be a JSON object")
    host = raw.get("IP") or ""
    port = raw.get("Port") or 0
    if not isinstance(host, str) or not isinstance(port, int) or isinstance(port, bool):
        raise ValueError("invalid UDP address")
    return host, port


def _udp_addr_field(json_name: str) -> Any:
    return field(
        default=None,
        metadata={"json": json_name, "encode": _encode_udp_addr, "decode": _decode_udp_addr},
    )


@dataclass
class Login:
    version: str = ""
    hostname: str = ""
    os: str = ""
    arch: str = ""
    user: str = ""
    privilege_key: str = ""
    timestamp: int = 0
    run_id: str = ""
    metas: dict[str, str] = field(default_factory=dict)
    pool_count: int = 0


@dataclass
class LoginResp:
    version: str = ""
    run_id: str = ""
    error: str = ""


@dataclass
class NewProxy:
    proxy_name: str = ""
    proxy_type: str = ""
    use_encryption: bool = False
    use_compression: bool = False
    bandwidth_limit: str = ""
    bandwidth_limit_mode: str = ""
    group: str = ""
    group_key: str = ""
    metas: dict[str, str] = field(default_factory=dict)
    remote_port: int = 0
    custom_domains: list[str] = field(default_factory=list)
    subdomain: str = ""
    locations: list[str] = field(default_factory=list)
    http_user: str = ""
    http_pwd: str = ""
    host_header_rewrite: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    route_by_http_user: str = ""
    sk: str = ""
    allow_users: list[str] = field(default_factory=list)
    multiplexer: str = ""


@dataclass
class NewProxyResp:
    proxy_name: str = ""
    remote_addr: str = ""
    error: str = ""


@dataclass
class CloseProxy:
    proxy_name: str = ""


@dataclass
class NewWorkConn:
    run_id: str = ""
    privilege_key: str = ""
    timestamp: int = 0


@dataclass
class ReqWorkConn:
    pass


@dataclass
class StartWorkConn:
    proxy_name: str = ""
    src_addr: str = ""
    dst_addr: str = ""
    src_port: int = 0
    dst_port: int = 0
    error: str = ""


@dataclass
class NewVisitorConn:
    run_id: str = ""
    proxy_name: str = ""
    sign_key: str = ""
    timestamp: int = 0
    use_encryption: bool = False
    use_compression: bool = False


@dataclass
class NewVisitorConnResp:
    proxy_name: str = ""
    error: str = ""


@dataclass
class Ping:
    privilege_key: str = ""
    timestamp: int = 0


@dataclass
class Pong:
    error: str = ""


@dataclass
class UDPPacket:
    content: str = field(default="", metadata={"json": "c"})
    local_addr: Optional[UDPAddr] = _udp_addr_field("l")
    remote_addr: Optional[UDPAddr] = _udp_addr_field("r")


@dataclass
class NatHoleVisitor:
    transaction_id: str = ""
    proxy_name: str = ""
    pre_check: bool = False
    protocol: str = ""
    sign_key: str = ""
    timestamp: int = 0
    mapped_addrs: list[str] = field(default_factory=list)
    assisted_addrs: list[str] = field(default_factory=list)


@dataclass
class NatHoleClient:
    transaction_id: str = ""
    proxy_name: str = ""
    sid: str = ""
    mapped_addrs: list[str] = field(default_factory=list)
    assisted_addrs: list[str] = field(default_factory=list)


@dataclass
class PortsRange:
    from_port: int = field(default=0, metadata={"json": "from"})
    to_port: int = field(default=0, metadata={"json": "to"})


def _decode_ports_ranges(raw: Any) -> list[PortsRange]:
    return [_from_json_value(PortsRange, item) for item in _check(raw, list, "candidate_ports")]


@dataclass
class NatHoleDetectBehavior:
    role: str = ""
    mode: int = 0
    ttl: int = 0
    send_delay_ms: int = 0
    read_timeout_ms: int = field(default=0, metadata={"json": "read_timeout"})
    candidate_ports: list[PortsRange] = field(
        default_factory=list, metadata={"decode": _decode_ports_ranges}
    )
    send_random_ports: int = 0
    listen_random_ports: int = 0


def _decode_detect_behavior(raw: Any) -> NatHoleDetectBehavior:
    return _from_json_value(NatHoleDetectBehavior, raw)


@dataclass
class NatHoleResp:
    transaction_id: str = ""
    sid: str = ""
    protocol: str = ""
    candidate_addrs: list[str] = field(default_factory=list)
    assisted_addrs: list[str] = field(default_factory=list)
    # A nested structure is always written, even when empty.
    detect_behavior: NatHoleDetectBehavior = field(
        default_factory=NatHoleDetectBehavior,
        metadata={"keep": True, "decode": _decode_detect_behavior},
    )
    error: str = ""


@dataclass
class NatHoleSid:
    transaction_id: str = ""
    sid: str = ""
    response: bool = False
    nonce: str = ""


@dataclass
class NatHoleReport:
    sid: str = ""
    success: bool = False


TYPE_LOGIN = b"o"
TYPE_LOGIN_RESP = b"1"
TYPE_NEW_PROXY = b"p"
TYPE_NEW_PROXY_RESP = b"2"
TYPE_CLOSE_PROXY = b"c"
TYPE_NEW_WORK_CONN = b"w"
TYPE_REQ_WORK_CONN = b"r"
TYPE_START_WORK_CONN = b"s"
TYPE_NEW_VISITOR_CONN = b"v"
TYPE_NEW_VISITOR_CONN_RESP = b"3"
TYPE_PING = b"h"
TYPE_PONG = b"4"
TYPE_UDP_PACKET = b"u"
TYPE_NAT_HOLE_VISITOR = b"i"
TYPE_NAT_HOLE_CLIENT = b"n"
TYPE_NAT_HOLE_RESP = b"m"
TYPE_NAT_HOLE_SID = b"5"
TYPE_NAT_HOLE_REPORT = b"6"

TYPE_NAME_NAT_HOLE_RESP = NatHoleResp.__name__

_TYPE_TO_CLASS: dict[bytes, type] = {
    TYPE_LOGIN: Login,
    TYPE_LOGIN_RESP: LoginResp,
    TYPE_NEW_PROXY: NewProxy,
    TYPE_NEW_PROXY_RESP: NewProxyResp,
    TYPE_CLOSE_PROXY: CloseProxy,
    TYPE_NEW_WORK_CONN: NewWorkConn,
    TYPE_REQ_WORK_CONN: ReqWorkConn,
    TYPE_START_WORK_CONN: StartWorkConn,
    TYPE_NEW_VISITOR_CONN: NewVisitorConn,
    TYPE_NEW_VISITOR_CONN_RESP: NewVisitorConnResp,
    TYPE_PING: Ping,
    TYPE_PONG: Pong,
    TYPE_UDP_PACKET: UDPPacket,
    TYPE_NAT_HOLE_VISITOR: NatHoleVisitor,
    TYPE_NAT_HOLE_CLIENT: NatHoleClient,
    TYPE_NAT_HOLE_RESP: NatHoleResp,
    TYPE_NAT_HOLE_SID: NatHoleSid,
    TYPE_NAT_HOLE_REPORT: NatHoleReport,
}
_CLASS_TO_TYPE: dict[type, bytes] = {cls: tag for tag, cls in _TYPE_TO_CLASS.items()}

_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def type_byte_of(message: Any) -> bytes:
    """The one-byte type tag of a message."""
    try:
        return _CLASS_TO_TYPE[type(message)]
    except KeyError:
        raise MessageTypeError(f"not a control message: {type(message).__name__}") from None


def encode_message(message: Any) -> bytes:
    """The JSON body of a message."""
    type_byte_of(message)
    text = json.dumps(_to_json_value(message), separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def _normalise_type(type_byte: "bytes | int | str") -> bytes:
    if isinstance(type_byte, int):
        return bytes([type_byte & 0xFF]) if 0 <= type_byte <= 0xFF else b""
    if isinstance(type_byte, str):
        return type_byte.encode("latin-1", errors="replace")
    return bytes(type_byte)


def decode_message(type_byte: "bytes | int | str", payload: "bytes | str") -> Any:
    """Build the message of the given type from its JSON body."""
    cls = _TYPE_TO_CLASS.get(_normalise_type(type_byte))
    if cls is None:
        raise MessageTypeError()
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8")
    return _from_json_value(cls, json.loads(payload))