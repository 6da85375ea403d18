"""Settings shared by every kind of proxy, and the pieces proxies combine.

A proxy configuration is filled from an INI section on the client side and
from a NewProxy message on the server side; both sides validate it.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Optional

from .bandwidth import (
    BANDWIDTH_LIMIT_MODE_CLIENT,
    BANDWIDTH_LIMIT_MODE_SERVER,
    BandwidthQuantity,
)
from .ini import IniSection, map_by_prefix, map_without_prefix, parse_bool
from .messages import NewProxy

DEFAULT_LOCAL_IP = "127.0.0.1"

_BANDWIDTH_MODES = (BANDWIDTH_LIMIT_MODE_CLIENT, BANDWIDTH_LIMIT_MODE_SERVER)
_PROXY_PROTOCOL_VERSIONS = ("v1", "v2")
_HEALTH_CHECK_TYPES = ("tcp", "http")


class ConfigError(ValueError):
    """A proxy configuration is malformed or not acceptable."""


def ini_field(key: str, **kwargs: Any) -> Any:
    """A dataclass field read from INI key ``key``; ``"-"`` means never read."""
    return field(metadata={"ini": key}, **kwargs)


def _parse_int(text: str) -> int:
    text = text.strip()
    try:
        return int(text, 0)
    except ValueError:
        return int(text, 10)


def map_ini_section(conf: Any, section: IniSection) -> None:
    """Copy INI keys onto the matching dataclass fields of ``conf``.

    Booleans, integers, strings and comma separated string lists are read;
    values that do not parse leave the field as it was.
    """
    values = section.keys_hash()
    for f in fields(conf):
        key = f.metadata.get("ini", f.name)
        if key == "-" or key not in values:
            continue
        current = getattr(conf, f.name)
        raw = values[key]
        try:
            if isinstance(current, bool):
                value: Any = parse_bool(raw.strip())
            elif isinstance(current, int):
                value = _parse_int(raw)
            elif isinstance(current, str):
                value = raw
            elif isinstance(current, list):
                if not raw:
                    continue
                value = [part.strip() for part in raw.split(",")]
            else:
                continue
        except ValueError:
            continue
        setattr(conf, f.name, value)


def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass
class LocalSvrConf:
    """Where the client forwards traffic to, or which plugin handles it."""

    local_ip: str = DEFAULT_LOCAL_IP
    local_port: int = 0
    # When a plugin is set, local_ip and local_port are ignored.
    plugin: str = ""
    plugin_params: Optional[dict[str, str]] = ini_field("-", default=None)

    def validate_for_client(self) -> None:
        """Raise ConfigError unless a local address or a plugin is given."""
        if not self.plugin:
            if not self.local_ip:
                raise ConfigError("local ip or plugin is required")
            if self.local_port <= 0:
                raise ConfigError("error local_port")


@dataclass
class HealthCheckConf:
    """How the client checks that the local service is alive."""

    # "tcp", "http" or "" for no health checking.
    health_check_type: str = ""
    health_check_timeout_s: int = 0
    health_check_max_failed: int = 0
    health_check_interval_s: int = 0
    health_check_url: str = ""
    health_check_addr: str = ini_field("-", default="")

    def validate_for_client(self) -> None:
        """Raise ConfigError for an unknown type or a missing HTTP URL."""
        if self.health_check_type and self.health_check_type not in _HEALTH_CHECK_TYPES:
            raise ConfigError("unsupport health check type")
        if self.health_check_type == "http" and not self.health_check_url:
            raise ConfigError("health_check_url is required for health check type 'http'")


@dataclass
class DomainConf:
    """Domains under which an HTTP-like proxy is reachable."""

    custom_domains: list[str] = field(default_factory=list)
    subdomain: str = ""

    def _check(self) -> None:
        if not self.custom_domains and not self.subdomain:
            raise ConfigError("custom_domains and subdomain should set at least one of them")

    def validate_for_client(self) -> None:
        """Raise ConfigError unless at least one domain is set."""
        self._check()

    def validate_for_server(self, server_conf: Any) -> None:
        """Check the domains against the server's ``sub_domain_host``."""
        self._check()
        host = getattr(server_conf, "sub_domain_host", "") or ""
        for domain in self.custom_domains:
            if host and len(host.split(".")) < len(domain.split(".")) and host in domain:
                raise ConfigError(
                    f"custom domain [{domain}] should not belong to subdomain_host [{host}]"
                )
        if self.subdomain:
            if not host:
                raise ConfigError(
                    "subdomain is not supported because this feature is not enabled "
                    "in remote frps"
                )
            if "." in self.subdomain or "*" in self.subdomain:
                raise ConfigError("'.' and '*' is not supported in subdomain")


@dataclass
class RoleServerCommonConf:
    """Settings of the serving side of a secret or peer-to-peer proxy."""

    role: str = "server"
    sk: str = ""
    allow_users: list[str] = field(default_factory=list)


@dataclass
class BaseProxyConf(HealthCheckConf, LocalSvrConf):
    """Settings common to every proxy type."""

    proxy_name: str = ini_field("name", default="")
    proxy_type: str = ini_field("type", default="")
    use_encryption: bool = False
    use_compression: bool = False
    # Proxies sharing a group and group key are load balanced by the server.
    group: str = ""
    group_key: str = ""
    # "v1", "v2" or "" to send no proxy protocol header.
    proxy_protocol_version: str = ""
    bandwidth_limit: BandwidthQuantity = ini_field("-", default_factory=BandwidthQuantity)
    bandwidth_limit_mode: str = BANDWIDTH_LIMIT_MODE_CLIENT
    metas: Optional[dict[str, str]] = ini_field("-", default=None)

    def decorate(self, prefix: str, name: str, section: IniSection) -> None:
        """Apply what plain key mapping cannot express after reading ``section``."""
        values = section.keys_hash()
        self.proxy_name = prefix + name
        self.metas = map_without_prefix(values, "meta_")
        if "bandwidth_limit" in section:
            try:
                self.bandwidth_limit = BandwidthQuantity.parse(section.get("bandwidth_limit"))
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
        self.plugin_params = map_by_prefix(values, "plugin_")

        if self.health_check_type == "tcp" and not self.plugin:
            self.health_check_addr = f"{self.local_ip}:{self.local_port}"
        if self.health_check_type == "http" and not self.plugin and self.health_check_url:
            url = "http://" + _join_host_port(self.local_ip, self.local_port)
            if not self.health_check_url.startswith("/"):
                url += "/"
            self.health_check_url = url + self.health_check_url

    def fill_msg(self, message: NewProxy) -> None:
        """Write the common settings into a NewProxy message."""
        message.proxy_name = self.proxy_name
        message.proxy_type = self.proxy_type
        message.use_encryption = self.use_encryption
        message.use_compression = self.use_compression
        message.bandwidth_limit = str(self.bandwidth_limit)
        # The default mode is left out to keep the message small.
        if self.bandwidth_limit_mode != BANDWIDTH_LIMIT_MODE_CLIENT:
            message.bandwidth_limit_mode = self.bandwidth_limit_mode
        message.group = self.group
        message.group_key = self.group_key
        message.metas = dict(self.metas) if self.metas else {}

    def load_msg(self, message: NewProxy) -> None:
        """Read the common settings from a NewProxy message."""
        self.proxy_name = message.proxy_name
        self.proxy_type = message.proxy_type
        self.use_encryption = message.use_encryption
        self.use_compression = message.use_compression
        if message.bandwidth_limit:
            try:
                self.bandwidth_limit = BandwidthQuantity.parse(message.bandwidth_limit)
            except ValueError:
                self.bandwidth_limit = BandwidthQuantity()
        if message.bandwidth_limit_mode:
            self.bandwidth_limit_mode = message.bandwidth_limit_mode
        self.group = message.group
        self.group_key = message.group_key
        self.metas = dict(message.metas) if message.metas else None

    def validate_for_client(self) -> None:
        """Raise ConfigError if the client cannot use these settings."""
        if self.proxy_protocol_version and (
            self.proxy_protocol_version not in _PROXY_PROTOCOL_VERSIONS
        ):
            raise ConfigError(
                f"no support proxy protocol version: {self.proxy_protocol_version}"
            )
        self._check_bandwidth_mode()
        LocalSvrConf.validate_for_client(self)
        HealthCheckConf.validate_for_client(self)

    def validate_for_server(self, server_conf: Any = None) -> None:
        """Raise ConfigError if the server cannot accept these settings."""
        self._check_bandwidth_mode()

    def _check_bandwidth_mode(self) -> None:
        if self.bandwidth_limit_mode not in _BANDWIDTH_MODES:
            raise ConfigError("bandwidth_limit_mode should be client or server")