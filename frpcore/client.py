"""Loading of a client's whole configuration: common settings, proxies and visitors."""

import fnmatch
import os
from typing import Any, Iterable, Optional

from .clientconf import ClientCommonConf, unmarshal_client_conf_from_ini
from .ini import DEFAULT_SECTION, IniError, IniFile, IniSection, parse_range_numbers
from .proxy import ProxyConf, new_proxy_conf_from_ini
from .proxy_base import ConfigError
from .values import TemplateError, rendered_conf_from_file
from .visitor import BaseVisitorConf, new_visitor_conf_from_ini

RANGE_PREFIX = "range:"
COMMON_SECTION = "common"


def _as_text(source: Any) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8")
    return str(source)


def render_range_proxy_templates(ini_file: IniFile, section: IniSection) -> None:
    """Expand a ``[range:<name>]`` section into ``<name>_0``, ``<name>_1``, ... sections.

    Every generated section copies all keys of ``section`` and gets one port
    of ``local_port`` and the matching port of ``remote_port``.
    """
    local_ports_text = section.get("local_port")
    remote_ports_text = section.get("remote_port")
    if not local_ports_text or not remote_ports_text:
        raise ConfigError("local_port or remote_port is empty")

    try:
        local_ports = parse_range_numbers(local_ports_text)
        remote_ports = parse_range_numbers(remote_ports_text)
    except IniError as exc:
        raise ConfigError(str(exc)) from exc

    if len(local_ports) != len(remote_ports):
        raise ConfigError("local ports number should be same with remote ports number")
    if not local_ports:
        raise ConfigError("local_port and remote_port is necessary")

    prefix = section.name[len(RANGE_PREFIX):] if section.name.startswith(RANGE_PREFIX) else section.name
    prefix = prefix.strip()
    template = section.keys_hash()

    for index, (local_port, remote_port) in enumerate(zip(local_ports, remote_ports)):
        try:
            target = ini_file.new_section(f"{prefix}_{index}")
        except IniError as exc:
            raise ConfigError(str(exc)) from exc
        for key, value in template.items():
            target.set(key, value)
        target.set("local_port", local_port)
        target.set("remote_port", remote_port)


def load_all_proxy_confs_from_ini(
    prefix: str,
    source: "str | bytes",
    start: Optional[Iterable[str]] = None,
) -> tuple[dict[str, ProxyConf], dict[str, BaseVisitorConf]]:
    """Read every proxy and visitor section of INI content.

    When ``start`` names any sections, only those are loaded; otherwise all
    are. Keys of the returned maps carry ``"<prefix>."`` when a prefix is given.
    """
    try:
        ini = IniFile.parse(_as_text(source))
    except IniError as exc:
        raise ConfigError(str(exc)) from exc

    if prefix:
        prefix += "."

    wanted = set(start or ())
    start_all = not wanted

    range_sections = [s for s in ini.sections() if s.name.startswith(RANGE_PREFIX)]
    for section in range_sections:
        try:
            render_range_proxy_templates(ini, section)
        except ConfigError as exc:
            raise ConfigError(
                f"failed to render template for proxy {section.name}: {exc}"
            ) from exc

    proxies: dict[str, ProxyConf] = {}
    visitors: dict[str, BaseVisitorConf] = {}

    for section in ini.sections():
        name = section.name
        if name in (DEFAULT_SECTION, COMMON_SECTION) or name.startswith(RANGE_PREFIX):
            continue
        if not start_all and name not in wanted:
            continue

        role = section.get("role") or "server"
        if role == "server":
            try:
                proxies[prefix + name] = new_proxy_conf_from_ini(prefix, name, section)
            except ValueError as exc:
                raise ConfigError(f"failed to parse proxy {name}, err: {exc}") from exc
        elif role == "visitor":
            try:
                visitors[prefix + name] = new_visitor_conf_from_ini(prefix, name, section)
            except ValueError as exc:
                raise ConfigError(f"failed to parse visitor {name}, err: {exc}") from exc
        else:
            raise ConfigError(f"proxy {name} role should be 'server' or 'visitor'")

    return proxies, visitors


def _include_contents(paths: Iterable[str]) -> str:
    """Rendered content of every file matched by the include patterns."""
    parts: list[str] = []
    for path in paths:
        directory = os.path.abspath(os.path.dirname(path) or ".")
        if not os.path.exists(directory):
            raise ConfigError(f"directory {directory} does not exist")
        pattern = os.path.basename(path)
        with os.scandir(directory) as entries:
            names = sorted(entry.name for entry in entries if not entry.is_dir())
        for file_name in names:
            if not fnmatch.fnmatchcase(file_name, pattern):
                continue
            full_path = os.path.join(directory, file_name)
            try:
                parts.append(rendered_conf_from_file(full_path))
            except (OSError, TemplateError, UnicodeDecodeError) as exc:
                raise ConfigError(f"render extra config {full_path} error: {exc}") from exc
            parts.append("\n")
    return "".join(parts)


def parse_client_config(
    content: "str | bytes",
) -> tuple[ClientCommonConf, dict[str, ProxyConf], dict[str, BaseVisitorConf]]:
    """Parse client INI content into common settings, proxies and visitors.

    Proxy sections from the files named by ``includes`` are read as well.
    """
    text = _as_text(content)

    cfg = unmarshal_client_conf_from_ini(text.encode("utf-8"))
    cfg.complete()
    try:
        cfg.validate()
    except ConfigError as exc:
        raise ConfigError(f"parse config error: {exc}") from exc

    try:
        extra = _include_contents(cfg.include_config_files)
    except ConfigError as exc:
        raise ConfigError(f"getIncludeContents error: {exc}") from exc

    proxies, visitors = load_all_proxy_confs_from_ini(cfg.user, text + "\n" + extra, cfg.start)
    return cfg, proxies, visitors