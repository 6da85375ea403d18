"""Common settings of a client, read from the ``[common]`` section of its INI file."""

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .authconfig import AuthClientConfig
from .ini import IniError, IniFile, map_without_prefix
from .proxy_base import ConfigError, ini_field, map_ini_section

COMMON_SECTION = "common"
SUPPORTED_PROTOCOLS = ("tcp", "kcp", "quic", "websocket", "wss")


@dataclass
class ClientCommonConf(AuthClientConfig):
    """Client settings; every field not given in the INI file keeps its default."""

    server_addr: str = "0.0.0.0"
    server_port: int = 7000
    # STUN server that helps punching holes through NAT.
    nat_hole_stun_server: str = "stun.easyvoip.com:3478"
    dial_server_timeout: int = 10
    # Interval between keep-alive probes; negative disables them.
    dial_server_keepalive: int = 7200
    # Local address to bind when connecting (TCP and websocket only).
    connect_server_local_ip: str = ""
    http_proxy: str = field(default_factory=lambda: os.environ.get("http_proxy", ""))
    log_file: str = "console"
    log_way: str = "console"
    log_level: str = "info"
    log_max_days: int = 3
    disable_log_color: bool = False
    admin_addr: str = "127.0.0.1"
    # Zero means the admin server is not started.
    admin_port: int = 0
    admin_user: str = ""
    admin_pwd: str = ""
    assets_dir: str = ""
    pool_count: int = 1
    tcp_mux: bool = True
    tcp_mux_keepalive_interval: int = 60
    # When set, proxy names become "<user>.<name>".
    user: str = ""
    dns_server: str = ""
    login_fail_exit: bool = True
    # Names of the proxies to start; empty starts them all.
    start: list[str] = field(default_factory=list)
    protocol: str = "tcp"
    quic_keepalive_period: int = 10
    quic_max_idle_timeout: int = 30
    quic_max_incoming_streams: int = 100000
    tls_enable: bool = True
    tls_cert_file: str = ""
    tls_key_file: str = ""
    tls_trusted_ca_file: str = ""
    tls_server_name: str = ""
    disable_custom_tls_first_byte: bool = True
    # Seconds between heartbeats; negative disables them.
    heartbeat_interval: int = 30
    # Seconds without a heartbeat reply before giving up; negative disables it.
    heartbeat_timeout: int = 90
    metas: dict[str, str] = ini_field("-", default_factory=dict)
    udp_packet_size: int = 1500
    # Further files holding proxy sections.
    include_config_files: list[str] = ini_field("includes", default_factory=list)
    pprof_enable: bool = False

    def complete(self) -> None:
        """Derive settings that follow from others."""
        self.log_way = "console" if self.log_file == "console" else "file"

    def validate(self) -> None:
        """Raise ConfigError if the settings cannot be used; warn about ignored ones."""
        if self.heartbeat_timeout > 0 and self.heartbeat_interval > 0:
            if self.heartbeat_timeout < self.heartbeat_interval:
                raise ConfigError(
                    "invalid heartbeat_timeout, heartbeat_timeout is less than heartbeat_interval"
                )

        if not self.tls_enable:
            for key in ("tls_cert_file", "tls_key_file", "tls_trusted_ca_file"):
                if getattr(self, key):
                    warnings.warn(
                        f"{key} is invalid when tls_enable is false", UserWarning, stacklevel=2
                    )

        if self.protocol not in SUPPORTED_PROTOCOLS:
            raise ConfigError("invalid protocol")

        for include in self.include_config_files:
            directory = os.path.abspath(os.path.dirname(include) or ".")
            if not os.path.exists(directory):
                raise ConfigError(f"include: directory of {include} not exist")


def _read_source(source: Any) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8")
    if isinstance(source, (str, os.PathLike)):
        return Path(source).read_text(encoding="utf-8")
    if hasattr(source, "read"):
        data = source.read()
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    raise TypeError(f"unsupported configuration source: {type(source).__name__}")


def unmarshal_client_conf_from_ini(source: Any) -> ClientCommonConf:
    """Read the ``[common]`` section.

    ``source`` is INI content as bytes, a file path (str or path object),
    or a readable file object.
    """
    ini = IniFile.parse(_read_source(source))
    try:
        section = ini.section(COMMON_SECTION)
    except IniError:
        raise ConfigError("invalid configuration file, not found [common] section") from None

    common = ClientCommonConf()
    map_ini_section(common, section)
    values = section.keys_hash()
    common.metas = map_without_prefix(values, "meta_") or {}
    common.oidc_additional_endpoint_params = map_without_prefix(values, "oidc_additional_") or {}
    return common