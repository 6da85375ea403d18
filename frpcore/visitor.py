"""Visitor configurations: the client side that connects to secret proxies."""

from dataclasses import dataclass, field, fields
from typing import Any, Optional

from .consts import ProxyType
from .ini import IniSection, parse_bool

DEFAULT_BIND_ADDR = "127.0.0.1"


def _ini(key: str, default: Any) -> Any:
    return field(default=default, metadata={"ini": key})


def _parse_int(text: str) -> int:
    text = text.strip()
    try:
        return int(text, 0)
    except ValueError:
        return int(text, 10)


def _convert(current: Any, raw: str) -> Any:
    if isinstance(current, bool):
        return parse_bool(raw.strip())
    if isinstance(current, int):
        return _parse_int(raw)
    return raw


def _map_section(conf: Any, section: IniSection) -> None:
    """Copy section keys onto dataclass fields; unparsable values are left alone."""
    values = section.keys_hash()
    for f in fields(conf):
        key = f.metadata.get("ini", f.name)
        if key not in values:
            continue
        try:
            setattr(conf, f.name, _convert(getattr(conf, f.name), values[key]))
        except ValueError:
            continue


@dataclass
class BaseVisitorConf:
    """Settings common to every visitor."""

    proxy_name: str = _ini("name", "")
    proxy_type: str = _ini("type", "")
    use_encryption: bool = False
    use_compression: bool = False
    role: str = ""
    sk: str = ""
    # When empty, the server proxy is looked up under the visitor's own user.
    server_user: str = ""
    server_name: str = ""
    bind_addr: str = ""
    # A negative port means the visitor only takes connections handed over
    # by other visitors and does not listen itself.
    bind_port: int = 0

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        """Fill the configuration from an INI section."""
        _map_section(self, section)
        self.proxy_name = prefix + name
        if self.server_user:
            self.server_name = f"{self.server_user}.{self.server_name}"
        else:
            self.server_name = prefix + self.server_name
        if not self.bind_addr:
            self.bind_addr = DEFAULT_BIND_ADDR

    def validate(self) -> None:
        """Raise ValueError if the configuration cannot be used."""
        if self.role != "visitor":
            raise ValueError("invalid role")
        if not self.bind_addr:
            raise ValueError("bind_addr shouldn't be empty")
        if self.bind_port == 0:
            raise ValueError("bind_port is required")


@dataclass
class STCPVisitorConf(BaseVisitorConf):
    """Visitor of a secret TCP proxy."""


@dataclass
class SUDPVisitorConf(BaseVisitorConf):
    """Visitor of a secret UDP proxy."""


@dataclass
class XTCPVisitorConf(BaseVisitorConf):
    """Visitor of a peer-to-peer TCP proxy."""

    protocol: str = ""
    keep_tunnel_open: bool = False
    max_retries_an_hour: int = 0
    min_retry_interval: int = 0
    fallback_to: str = ""
    fallback_timeout_ms: int = 0

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        super().unmarshal_from_ini(prefix, name, section)
        if not self.protocol:
            self.protocol = "quic"
        if self.max_retries_an_hour <= 0:
            self.max_retries_an_hour = 8
        if self.min_retry_interval <= 0:
            self.min_retry_interval = 90
        if self.fallback_timeout_ms <= 0:
            self.fallback_timeout_ms = 1000

    def validate(self) -> None:
        super().validate()
        if self.protocol not in ("", "kcp", "quic"):
            raise ValueError("protocol should be 'kcp' or 'quic'")


_VISITOR_TYPES: dict[str, type[BaseVisitorConf]] = {
    ProxyType.STCP.value: STCPVisitorConf,
    ProxyType.XTCP.value: XTCPVisitorConf,
    ProxyType.SUDP.value: SUDPVisitorConf,
}


def default_visitor_conf(visitor_type: str) -> Optional[BaseVisitorConf]:
    """An empty visitor configuration of the given type, or None if unknown."""
    cls = _VISITOR_TYPES.get(str(visitor_type))
    return cls() if cls is not None else None


def new_visitor_conf_from_ini(prefix: str, name: str, section: IniSection) -> BaseVisitorConf:
    """Build and validate a visitor configuration from an INI section."""
    visitor_type = section.get("type")
    if not visitor_type:
        raise ValueError("type shouldn't be empty")
    conf = default_visitor_conf(visitor_type)
    if conf is None:
        raise ValueError(f"type [{visitor_type}] error")
    try:
        conf.unmarshal_from_ini(prefix, name, section)
    except ValueError as exc:
        raise ValueError(f"type [{visitor_type}] error") from exc
    conf.validate()
    return conf