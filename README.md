# frpcore

`frpcore` is the configuration and protocol core of a fast reverse proxy:
a client behind NAT registers proxies with a public server, which then
forwards outside traffic back through the client.

The package covers the parts that do not need a running network stack:

- **Client configuration** (`frpcore.client`, `frpcore.clientconf`) –
  reading the INI-style client file with its `[common]` section, `range:`
  sections that expand into one proxy per port, and `includes` of extra files.
- **Environment templates** (`frpcore.values`) – `render_content` fills in
  `{{ .Envs.NAME }}` and `{{ index .Envs "NAME" }}`; included files are
  rendered this way before they are read.
- **Proxy and visitor configuration** (`frpcore.proxy`, `frpcore.proxy_base`,
  `frpcore.visitor`) – `tcp`, `udp`, `tcpmux`, `http`, `https`, `stcp`,
  `xtcp` and `sudp` proxies, and `stcp`, `xtcp` and `sudp` visitors, each
  with its defaults and its client-side and server-side validation.
- **Control messages** (`frpcore.messages`) – dataclasses for every control
  message (`Login`, `NewProxy`, `Ping`, `NatHoleResp`, …) with their one-byte
  type codes and JSON encoding.
- **Authentication settings** (`frpcore.authconfig`) – `AuthBaseConfig`,
  `TokenConfig`, `AuthClientConfig` and `AuthServerConfig`.
- **Bandwidth values** (`frpcore.bandwidth`) – `BandwidthQuantity` for values
  such as `19MB` or `512KB`.
- **Traffic accounting** (`frpcore.cumu`) – `CountingConn` wraps a
  connection and reports, through `in_count()` and `out_count()`, the bytes
  written and read since the last call.
- **Shared names** (`frpcore.consts`) – the `ProxyType` and `AuthMethod`
  enums and the `MessageTypeError` and `ControlClosedError` exceptions.
- **INI reading** (`frpcore.ini`) – `IniFile`, `IniSection` and helpers such
  as `parse_range_numbers("6010-6011,6019")`.

It has no third-party dependencies.

## Reading a client configuration

```python
from frpcore.client import parse_client_config

content = """
[common]
server_addr = 203.0.113.10
server_port = 7000
token = token

[ssh]
type = tcp
local_ip = 127.0.0.1
local_port = 22
remote_port = 6000

[range:game]
type = udp
local_ip = 127.0.0.1
local_port = 7000-7001
remote_port = 17000-17001
"""

common, proxies, visitors = parse_client_config(content)
```

`proxies` maps each proxy name (prefixed with `<user>.` when a `user` is set
in `[common]`) to its proxy configuration; the `range:game` section above
yields `game_0` and `game_1`. Sections with `role = visitor` end up in
`visitors`. Problems in the file raise a `ValueError`; configuration errors
are raised as `frpcore.proxy_base.ConfigError`, and for a bad proxy or
visitor section the message names the section. TLS file settings given while
`tls_enable` is false produce a `UserWarning`.

Lower-level entry points are available when only part of the work is needed:

- `frpcore.clientconf.unmarshal_client_conf_from_ini` reads only `[common]`.
- `frpcore.client.load_all_proxy_confs_from_ini` reads the proxy and visitor
  sections, optionally limited to the names listed in `start`.
- `frpcore.proxy.new_proxy_conf_from_ini` and
  `frpcore.visitor.new_visitor_conf_from_ini` read a single section.
- `frpcore.proxy.new_proxy_conf_from_msg` rebuilds and validates a proxy
  configuration from a `NewProxy` message on the server side; each proxy
  configuration's `to_msg()` builds that message.

## Messages

```python
from frpcore.messages import Ping, encode_message, decode_message, type_byte_of

ping = Ping(timestamp=1700000000)
payload = encode_message(ping)
assert decode_message(type_byte_of(ping), payload) == ping
```

An unknown type byte raises `frpcore.consts.MessageTypeError`.

## Bandwidth limits

```python
from frpcore.bandwidth import BandwidthQuantity

limit = BandwidthQuantity.parse("1KB")
assert limit.num_bytes == 1024
assert limit.to_json() == '"1KB"'
```

Only the `KB` and `MB` units are accepted; anything else raises `ValueError`.

## What the package does not do

- It opens no connections: there is no client or server to run and no
  command-line program.
- The authentication classes hold settings only; the package does not
  compute, send or verify tokens.
- Bandwidth limits are parsed and carried in configurations and messages,
  but the package does not throttle any traffic.

## Running the tests

Install the `test` extra and run pytest from the project directory.