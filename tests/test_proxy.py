from types import SimpleNamespace

import pytest

from frpcore.bandwidth import BandwidthQuantity
from frpcore.ini import IniFile
from frpcore.messages import NewProxy
from frpcore.proxy import (
    HTTPProxyConf,
    HTTPSProxyConf,
    STCPProxyConf,
    SUDPProxyConf,
    TCPMuxProxyConf,
    TCPProxyConf,
    UDPProxyConf,
    XTCPProxyConf,
    default_proxy_conf,
    new_conf_by_type,
    new_proxy_conf_from_ini,
    new_proxy_conf_from_msg,
)
from frpcore.proxy_base import ConfigError

PREFIX = "test."
http_pwd = "password"


def _load(name, source):
    ini = IniFile.parse(source)
    section = ini.section(name)
    proxy_type = section.get("type")
    assert proxy_type
    conf = default_proxy_conf(proxy_type)
    assert conf is not None
    conf.unmarshal_from_ini(PREFIX, name, section)
    return conf


CASES = [
    (
        "ssh",
        """
        [ssh]
        # tcp | udp | http | https | stcp | xtcp, default is tcp
        type = tcp
        local_ip = 127.0.0.9
        local_port = 29
        bandwidth_limit = 19MB
        bandwidth_limit_mode = server
        use_encryption
        use_compression
        remote_port = 6009
        group = test_group
        group_key = 123456
        health_check_type = tcp
        health_check_timeout_s = 3
        health_check_max_failed = 3
        health_check_interval_s = 19
        meta_var1 = 123
        meta_var2 = 234
        """,
        TCPProxyConf(
            proxy_name=PREFIX + "ssh",
            proxy_type="tcp",
            use_compression=True,
            use_encryption=True,
            group="test_group",
            group_key="123456",
            bandwidth_limit=BandwidthQuantity.parse("19MB"),
            bandwidth_limit_mode="server",
            metas={"var1": "123", "var2": "234"},
            local_ip="127.0.0.9",
            local_port=29,
            health_check_type="tcp",
            health_check_timeout_s=3,
            health_check_max_failed=3,
            health_check_interval_s=19,
            health_check_addr="127.0.0.9:29",
            remote_port=6009,
        ),
    ),
    (
        "ssh_random",
        """
        [ssh_random]
        type = tcp
        local_ip = 127.0.0.9
        local_port = 29
        remote_port = 9
        """,
        TCPProxyConf(
            proxy_name=PREFIX + "ssh_random",
            proxy_type="tcp",
            local_ip="127.0.0.9",
            local_port=29,
            bandwidth_limit_mode="client",
            remote_port=9,
        ),
    ),
    (
        "dns",
        """
        [dns]
        type = udp
        local_ip = 114.114.114.114
        local_port = 59
        remote_port = 6009
        use_encryption
        use_compression
        """,
        UDPProxyConf(
            proxy_name=PREFIX + "dns",
            proxy_type="udp",
            use_encryption=True,
            use_compression=True,
            local_ip="114.114.114.114",
            local_port=59,
            bandwidth_limit_mode="client",
            remote_port=6009,
        ),
    ),
    (
        "web01",
        """
        [web01]
        type = http
        local_ip = 127.0.0.9
        local_port = 89
        use_encryption
        use_compression
        http_user = admin
        http_pwd = password
        subdomain = web01
        custom_domains = web02.yourdomain.com
        locations = /,/pic
        host_header_rewrite = example.com
        header_X-From-Where = frp
        health_check_type = http
        health_check_url = /status
        health_check_interval_s = 19
        health_check_max_failed = 3
        health_check_timeout_s = 3
        """,
        HTTPProxyConf(
            proxy_name=PREFIX + "web01",
            proxy_type="http",
            use_compression=True,
            use_encryption=True,
            local_ip="127.0.0.9",
            local_port=89,
            health_check_type="http",
            health_check_timeout_s=3,
            health_check_max_failed=3,
            health_check_interval_s=19,
            health_check_url="http://127.0.0.9:89/status",
            bandwidth_limit_mode="client",
            custom_domains=["web02.yourdomain.com"],
            subdomain="web01",
            locations=["/", "/pic"],
            http_user="admin",
            http_pwd=http_pwd,
            host_header_rewrite="example.com",
            headers={"X-From-Where": "frp"},
        ),
    ),
    (
        "web02",
        """
        [web02]
        type = https
        local_ip = 127.0.0.9
        local_port = 8009
        use_encryption
        use_compression
        subdomain = web01
        custom_domains = web02.yourdomain.com
        proxy_protocol_version = v2
        """,
        HTTPSProxyConf(
            proxy_name=PREFIX + "web02",
            proxy_type="https",
            use_compression=True,
            use_encryption=True,
            local_ip="127.0.0.9",
            local_port=8009,
            proxy_protocol_version="v2",
            bandwidth_limit_mode="client",
            custom_domains=["web02.yourdomain.com"],
            subdomain="web01",
        ),
    ),
    (
        "secret_tcp",
        """
        [secret_tcp]
        type = stcp
        sk = secret
        local_ip = 127.0.0.1
        local_port = 22
        use_encryption = false
        use_compression = false
        """,
        STCPProxyConf(
            proxy_name=PREFIX + "secret_tcp",
            proxy_type="stcp",
            local_ip="127.0.0.1",
            local_port=22,
            bandwidth_limit_mode="client",
            role="server",
            sk="secret",
        ),
    ),
    (
        "p2p_tcp",
        """
        [p2p_tcp]
        type = xtcp
        sk = secret
        local_ip = 127.0.0.1
        local_port = 22
        use_encryption = false
        use_compression = false
        """,
        XTCPProxyConf(
            proxy_name=PREFIX + "p2p_tcp",
            proxy_type="xtcp",
            local_ip="127.0.0.1",
            local_port=22,
            bandwidth_limit_mode="client",
            role="server",
            sk="secret",
        ),
    ),
    (
        "tcpmuxhttpconnect",
        """
        [tcpmuxhttpconnect]
        type = tcpmux
        multiplexer = httpconnect
        local_ip = 127.0.0.1
        local_port = 10701
        custom_domains = tunnel1
        """,
        TCPMuxProxyConf(
            proxy_name=PREFIX + "tcpmuxhttpconnect",
            proxy_type="tcpmux",
            local_ip="127.0.0.1",
            local_port=10701,
            bandwidth_limit_mode="client",
            custom_domains=["tunnel1"],
            subdomain="",
            multiplexer="httpconnect",
        ),
    ),
]


@pytest.mark.parametrize("name, source, expected", CASES, ids=[c[0] for c in CASES])
def test_unmarshal_from_ini(name, source, expected):
    assert _load(name, source) == expected


@pytest.mark.parametrize(
    "proxy_type, cls",
    [
        ("tcp", TCPProxyConf),
        ("udp", UDPProxyConf),
        ("tcpmux", TCPMuxProxyConf),
        ("http", HTTPProxyConf),
        ("https", HTTPSProxyConf),
        ("stcp", STCPProxyConf),
        ("xtcp", XTCPProxyConf),
        ("sudp", SUDPProxyConf),
    ],
)
def test_new_conf_by_type(proxy_type, cls):
    assert type(new_conf_by_type(proxy_type)) is cls


def test_unknown_type_gives_none():
    assert new_conf_by_type("ftp") is None
    assert default_proxy_conf("ftp") is None


def test_default_values():
    conf = default_proxy_conf("stcp")
    assert conf.local_ip == "127.0.0.1"
    assert conf.bandwidth_limit_mode == "client"
    assert conf.role == "server"


def test_new_proxy_conf_from_ini_defaults_to_tcp():
    ini = IniFile.parse("[x]\nlocal_port = 22\nremote_port = 6000\n")
    conf = new_proxy_conf_from_ini("", "x", ini.section("x"))
    assert isinstance(conf, TCPProxyConf)
    assert conf.remote_port == 6000
    assert conf.proxy_name == "x"


def test_new_proxy_conf_from_ini_invalid_type():
    ini = IniFile.parse("[x]\ntype = ftp\n")
    with pytest.raises(ConfigError, match=r"invalid type \[ftp\]"):
        new_proxy_conf_from_ini("", "x", ini.section("x"))


def test_new_proxy_conf_from_ini_validates():
    ini = IniFile.parse("[x]\ntype = tcp\nlocal_port = 0\n")
    with pytest.raises(ConfigError, match="error local_port"):
        new_proxy_conf_from_ini("", "x", ini.section("x"))


def test_http_requires_domain():
    ini = IniFile.parse("[w]\ntype = http\nlocal_port = 80\n")
    with pytest.raises(ConfigError, match="custom_domains and subdomain"):
        new_proxy_conf_from_ini("", "w", ini.section("w"))


def test_tcpmux_bad_multiplexer():
    ini = IniFile.parse("[m]\ntype = tcpmux\nlocal_port = 80\ncustom_domains = a\n")
    with pytest.raises(ConfigError, match="incorrect multiplexer"):
        new_proxy_conf_from_ini("", "m", ini.section("m"))


def test_stcp_role_must_be_server():
    ini = IniFile.parse("[s]\ntype = stcp\nrole = visitor\nlocal_port = 22\n")
    with pytest.raises(ConfigError, match="role should be 'server'"):
        new_proxy_conf_from_ini("", "s", ini.section("s"))


def test_tcp_round_trip_through_message():
    conf = TCPProxyConf(proxy_name="ssh", proxy_type="tcp", remote_port=6000,
                        use_encryption=True, bandwidth_limit=BandwidthQuantity.parse("2KB"))
    message = conf.to_msg()
    assert message.remote_port == 6000
    assert message.bandwidth_limit == "2KB"
    assert message.bandwidth_limit_mode == ""
    rebuilt = new_proxy_conf_from_msg(message, SimpleNamespace())
    assert isinstance(rebuilt, TCPProxyConf)
    assert rebuilt.proxy_name == "ssh"
    assert rebuilt.remote_port == 6000
    assert rebuilt.use_encryption is True
    assert rebuilt.bandwidth_limit.num_bytes == 2048


def test_stcp_message_carries_secret():
    conf = STCPProxyConf(proxy_name="s", proxy_type="stcp", sk="secret", allow_users=["a"])
    message = conf.to_msg()
    assert message.sk == "secret"
    assert message.allow_users == ["a"]
    rebuilt = STCPProxyConf()
    rebuilt.unmarshal_from_msg(message)
    assert rebuilt.sk == "secret"
    assert rebuilt.allow_users == ["a"]


def test_msg_without_type_becomes_tcp():
    message = NewProxy(proxy_name="p", remote_port=7)
    conf = new_proxy_conf_from_msg(message, SimpleNamespace())
    assert message.proxy_type == "tcp"
    assert isinstance(conf, TCPProxyConf)


def test_msg_with_unknown_type():
    with pytest.raises(ConfigError, match=r"proxy \[p\] type \[ftp\] error"):
        new_proxy_conf_from_msg(NewProxy(proxy_name="p", proxy_type="ftp"), SimpleNamespace())


def test_http_server_needs_vhost_port():
    message = NewProxy(proxy_name="w", proxy_type="http", custom_domains=["a.example.com"])
    server = SimpleNamespace(vhost_http_port=0, sub_domain_host="")
    with pytest.raises(ConfigError, match="vhost_http_port is not set"):
        new_proxy_conf_from_msg(message, server)


def test_https_server_needs_vhost_port():
    message = NewProxy(proxy_name="w", proxy_type="https", custom_domains=["a.example.com"])
    with pytest.raises(ConfigError, match="vhost_https_port is not set"):
        new_proxy_conf_from_msg(message, SimpleNamespace(vhost_https_port=0))


def test_http_server_accepts_and_copies_fields():
    message = NewProxy(proxy_name="w", proxy_type="http", subdomain="web",
                       locations=["/"], headers={"X": "1"})
    server = SimpleNamespace(vhost_http_port=80, sub_domain_host="example.com")
    conf = new_proxy_conf_from_msg(message, server)
    assert conf.subdomain == "web"
    assert conf.locations == ["/"]
    assert conf.headers == {"X": "1"}


def test_http_server_domain_error_is_wrapped():
    message = NewProxy(proxy_name="w", proxy_type="http", subdomain="a.b")
    server = SimpleNamespace(vhost_http_port=80, sub_domain_host="example.com")
    with pytest.raises(ConfigError, match=r"proxy \[w\] domain conf check error"):
        new_proxy_conf_from_msg(message, server)


def test_tcpmux_server_needs_connect_port():
    message = NewProxy(proxy_name="m", proxy_type="tcpmux", multiplexer="httpconnect",
                       custom_domains=["a"])
    with pytest.raises(ConfigError, match="requires tcpmux_httpconnect_port"):
        new_proxy_conf_from_msg(message, SimpleNamespace(tcp_mux_http_connect_port=0))


def test_server_rejects_bad_bandwidth_mode():
    message = NewProxy(proxy_name="p", proxy_type="udp", bandwidth_limit_mode="both")
    with pytest.raises(ConfigError, match="bandwidth_limit_mode"):
        new_proxy_conf_from_msg(message, SimpleNamespace())