"""Proxy configurations of every type, and loading them from INI or messages.

The client reads proxies from INI sections and sends them as NewProxy
messages; the server rebuilds them from those messages and checks them
against its own settings.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .consts import HTTP_CONNECT_TCP_MULTIPLEXER, ProxyType
from .ini import IniSection, map_without_prefix
from .messages import NewProxy
from .proxy_base import (
    BaseProxyConf,
    ConfigError,
    DomainConf,
    RoleServerCommonConf,
    ini_field,
    map_ini_section,
)


@dataclass
class ProxyConf(BaseProxyConf):
    """A proxy configuration; subclasses add the settings of one proxy type."""

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        """Fill the configuration from an INI section (client side)."""
        map_ini_section(self, section)
        self.decorate(prefix, name, section)

    def unmarshal_from_msg(self, message: NewProxy) -> None:
        """Fill the configuration from a NewProxy message (server side)."""
        self.load_msg(message)
        self._load_extra(message)

    def to_msg(self) -> NewProxy:
        """The NewProxy message that registers this proxy with the server."""
        message = NewProxy()
        self.fill_msg(message)
        self._fill_extra(message)
        return message

    def validate_for_client(self) -> None:
        """Raise ConfigError if the client cannot use this configuration."""
        BaseProxyConf.validate_for_client(self)

    def validate_for_server(self, server_conf: Any = None) -> None:
        """Raise ConfigError if the server cannot accept this configuration."""
        BaseProxyConf.validate_for_server(self, server_conf)

    def _load_extra(self, message: NewProxy) -> None:
        pass

    def _fill_extra(self, message: NewProxy) -> None:
        pass


def _server_setting(server_conf: Any, name: str) -> Any:
    return getattr(server_conf, name, 0) if server_conf is not None else 0


def _check_domains_for_server(conf: Any, server_conf: Any) -> None:
    try:
        DomainConf.validate_for_server(conf, server_conf)
    except ConfigError as exc:
        raise ConfigError(f"proxy [{conf.proxy_name}] domain conf check error: {exc}") from exc


@dataclass
class TCPProxyConf(ProxyConf):
    """A plain TCP port forwarded from the server."""

    remote_port: int = 0

    def _load_extra(self, message: NewProxy) -> None:
        self.remote_port = message.remote_port

    def _fill_extra(self, message: NewProxy) -> None:
        message.remote_port = self.remote_port


@dataclass
class UDPProxyConf(ProxyConf):
    """A plain UDP port forwarded from the server."""

    remote_port: int = 0

    def _load_extra(self, message: NewProxy) -> None:
        self.remote_port = message.remote_port

    def _fill_extra(self, message: NewProxy) -> None:
        message.remote_port = self.remote_port


@dataclass
class TCPMuxProxyConf(ProxyConf, DomainConf):
    """TCP streams multiplexed on one server port by HTTP CONNECT."""

    http_user: str = ""
    http_pwd: str = ""
    route_by_http_user: str = ""
    multiplexer: str = ""

    def _load_extra(self, message: NewProxy) -> None:
        self.custom_domains = list(message.custom_domains)
        self.subdomain = message.subdomain
        self.multiplexer = message.multiplexer
        self.http_user = message.http_user
        self.http_pwd = message.http_pwd
        self.route_by_http_user = message.route_by_http_user

    def _fill_extra(self, message: NewProxy) -> None:
        message.custom_domains = list(self.custom_domains)
        message.subdomain = self.subdomain
        message.multiplexer = self.multiplexer
        message.http_user = self.http_user
        message.http_pwd = self.http_pwd
        message.route_by_http_user = self.route_by_http_user

    def validate_for_client(self) -> None:
        BaseProxyConf.validate_for_client(self)
        DomainConf.validate_for_client(self)
        if self.multiplexer != HTTP_CONNECT_TCP_MULTIPLEXER:
            raise ConfigError(f"parse conf error: incorrect multiplexer [{self.multiplexer}]")

    def validate_for_server(self, server_conf: Any = None) -> None:
        BaseProxyConf.validate_for_server(self, server_conf)
        if self.multiplexer != HTTP_CONNECT_TCP_MULTIPLEXER:
            raise ConfigError(
                f"proxy [{self.proxy_name}] incorrect multiplexer [{self.multiplexer}]"
            )
        if not _server_setting(server_conf, "tcp_mux_http_connect_port"):
            raise ConfigError(
                f"proxy [{self.proxy_name}] type [tcpmux] with multiplexer [httpconnect] "
                "requires tcpmux_httpconnect_port configuration"
            )
        _check_domains_for_server(self, server_conf)


@dataclass
class HTTPProxyConf(ProxyConf, DomainConf):
    """An HTTP site served through the server's virtual host port."""

    locations: list[str] = field(default_factory=list)
    http_user: str = ""
    http_pwd: str = ""
    host_header_rewrite: str = ""
    headers: Optional[dict[str, str]] = ini_field("-", default=None)
    route_by_http_user: str = ""

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        super().unmarshal_from_ini(prefix, name, section)
        self.headers = map_without_prefix(section.keys_hash(), "header_")

    def _load_extra(self, message: NewProxy) -> None:
        self.custom_domains = list(message.custom_domains)
        self.subdomain = message.subdomain
        self.locations = list(message.locations)
        self.host_header_rewrite = message.host_header_rewrite
        self.http_user = message.http_user
        self.http_pwd = message.http_pwd
        self.headers = dict(message.headers) if message.headers else None
        self.route_by_http_user = message.route_by_http_user

    def _fill_extra(self, message: NewProxy) -> None:
        message.custom_domains = list(self.custom_domains)
        message.subdomain = self.subdomain
        message.locations = list(self.locations)
        message.host_header_rewrite = self.host_header_rewrite
        message.http_user = self.http_user
        message.http_pwd = self.http_pwd
        message.headers = dict(self.headers) if self.headers else {}
        message.route_by_http_user = self.route_by_http_user

    def validate_for_client(self) -> None:
        BaseProxyConf.validate_for_client(self)
        DomainConf.validate_for_client(self)

    def validate_for_server(self, server_conf: Any = None) -> None:
        BaseProxyConf.validate_for_server(self, server_conf)
        if not _server_setting(server_conf, "vhost_http_port"):
            raise ConfigError("type [http] not support when vhost_http_port is not set")
        _check_domains_for_server(self, server_conf)


@dataclass
class HTTPSProxyConf(ProxyConf, DomainConf):
    """An HTTPS site served through the server's virtual host port."""

    def _load_extra(self, message: NewProxy) -> None:
        self.custom_domains = list(message.custom_domains)
        self.subdomain = message.subdomain

    def _fill_extra(self, message: NewProxy) -> None:
        message.custom_domains = list(self.custom_domains)
        message.subdomain = self.subdomain

    def validate_for_client(self) -> None:
        BaseProxyConf.validate_for_client(self)
        DomainConf.validate_for_client(self)

    def validate_for_server(self, server_conf: Any = None) -> None:
        BaseProxyConf.validate_for_server(self, server_conf)
        if not _server_setting(server_conf, "vhost_https_port"):
            raise ConfigError("type [https] not support when vhost_https_port is not set")
        _check_domains_for_server(self, server_conf)


@dataclass
class _RoleProxyConf(ProxyConf, RoleServerCommonConf):
    """A proxy reached only by visitors that know its secret key."""

    def _load_extra(self, message: NewProxy) -> None:
        self.sk = message.sk
        self.allow_users = list(message.allow_users)

    def _fill_extra(self, message: NewProxy) -> None:
        message.sk = self.sk
        message.allow_users = list(self.allow_users)

    def validate_for_client(self) -> None:
        BaseProxyConf.validate_for_client(self)
        if self.role != "server":
            raise ConfigError("role should be 'server'")


@dataclass
class STCPProxyConf(_RoleProxyConf):
    """A secret TCP proxy."""

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        super().unmarshal_from_ini(prefix, name, section)
        if not self.role:
            self.role = "server"


@dataclass
class XTCPProxyConf(_RoleProxyConf):
    """A peer-to-peer TCP proxy."""

    def unmarshal_from_ini(self, prefix: str, name: str, section: IniSection) -> None:
        super().unmarshal_from_ini(prefix, name, section)
        if not self.role:
            self.role = "server"


@dataclass
class SUDPProxyConf(_RoleProxyConf):
    """A secret UDP proxy."""


_PROXY_TYPES: dict[str, type[ProxyConf]] = {
    ProxyType.TCP.value: TCPProxyConf,
    ProxyType.TCPMUX.value: TCPMuxProxyConf,
    ProxyType.UDP.value: UDPProxyConf,
    ProxyType.HTTP.value: HTTPProxyConf,
    ProxyType.HTTPS.value: HTTPSProxyConf,
    ProxyType.STCP.value: STCPProxyConf,
    ProxyType.XTCP.value: XTCPProxyConf,
    ProxyType.SUDP.value: SUDPProxyConf,
}


def new_conf_by_type(proxy_type: str) -> Optional[ProxyConf]:
    """A new configuration of the given proxy type, or None if the type is unknown."""
    cls = _PROXY_TYPES.get(str(proxy_type))
    return cls() if cls is not None else None


def default_proxy_conf(proxy_type: str) -> Optional[ProxyConf]:
    """A configuration of the given type holding the default values, or None."""
    return new_conf_by_type(proxy_type)


def new_proxy_conf_from_ini(prefix: str, name: str, section: IniSection) -> ProxyConf:
    """Build and validate a proxy configuration from an INI section."""
    proxy_type = section.get("type") or ProxyType.TCP.value
    conf = default_proxy_conf(proxy_type)
    if conf is None:
        raise ConfigError(f"invalid type [{proxy_type}]")
    conf.unmarshal_from_ini(prefix, name, section)
    conf.validate_for_client()
    return conf


def new_proxy_conf_from_msg(message: NewProxy, server_conf: Any) -> ProxyConf:
    """Build a proxy configuration from a NewProxy message and check it for the server."""
    if not message.proxy_type:
        message.proxy_type = ProxyType.TCP.value
    conf = default_proxy_conf(message.proxy_type)
    if conf is None:
        raise ConfigError(f"proxy [{message.proxy_name}] type [{message.proxy_type}] error")
    conf.unmarshal_from_msg(message)
    conf.validate_for_server(server_conf)
    return conf