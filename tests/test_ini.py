import pytest

from frpcore.ini import (
    DEFAULT_SECTION,
    IniError,
    IniFile,
    map_by_prefix,
    map_without_prefix,
    parse_bool,
    parse_range_numbers,
)

SAMPLE = """
top_level = first
# a comment
; another comment
[common]
server_addr = 127.0.0.1
server_port: 7000
use_encryption
note = value # not a comment
quoted = "hello world"
Name = Upper

[range:tcp_port]
local_port = 6010-6011,6019
"""


@pytest.fixture
def ini():
    return IniFile.parse(SAMPLE)


def test_plain_values(ini):
    common = ini.section("common")
    assert common.get("server_addr") == "127.0.0.1"
    assert common.get("server_port") == "7000"


def test_boolean_key(ini):
    assert ini.section("common").get("use_encryption") == "true"


def test_inline_comment_is_part_of_value(ini):
    assert ini.section("common").get("note") == "value # not a comment"


def test_quotes_are_removed(ini):
    assert ini.section("common").get("quoted") == "hello world"


def test_keys_are_case_sensitive(ini):
    common = ini.section("common")
    assert common.get("Name") == "Upper"
    assert "name" not in common


def test_missing_key_uses_default(ini):
    assert ini.section("common").get("absent", "fallback") == "fallback"
    assert ini.section("common").get("absent") == ""


def test_keys_before_first_section_go_to_default(ini):
    assert ini.section(DEFAULT_SECTION).get("top_level") == "first"


def test_section_order(ini):
    assert [s.name for s in ini.sections()] == [DEFAULT_SECTION, "common", "range:tcp_port"]


def test_missing_section_raises(ini):
    with pytest.raises(IniError):
        ini.section("nope")


def test_new_section_returns_existing(ini):
    assert ini.new_section("common") is ini.section("common")


def test_new_section_rejects_empty_name(ini):
    with pytest.raises(IniError):
        ini.new_section("")


def test_delete_section(ini):
    ini.delete_section("common")
    assert "common" not in ini
    assert [s.name for s in ini.sections()] == [DEFAULT_SECTION, "range:tcp_port"]


def test_set_overrides_and_keys_hash_is_copy(ini):
    section = ini.new_section("extra")
    section.set("local_port", 6010)
    section.set("local_port", 6011)
    snapshot = section.keys_hash()
    snapshot["local_port"] = "changed"
    assert section.get("local_port") == "6011"


def test_repeated_section_is_merged():
    ini = IniFile.parse("[a]\nx = 1\n[b]\n[a]\ny = 2\nx = 3\n")
    assert ini.section("a").keys_hash() == {"x": "3", "y": "2"}


def test_bytes_input():
    ini = IniFile.parse(b"[s]\nk = v\n")
    assert ini.section("s").get("k") == "v"


def test_unclosed_section_raises():
    with pytest.raises(IniError):
        IniFile.parse("[broken\nk = v\n")


def test_empty_key_raises():
    with pytest.raises(IniError):
        IniFile.parse("[s]\n= v\n")


def test_parse_range_numbers_from_source():
    assert parse_range_numbers("6010-6011,6019") == [6010, 6011, 6019]
    assert parse_range_numbers("6000,6010-6011") == [6000, 6010, 6011]


@pytest.mark.parametrize("text", ["6011-6010", "1-2-3", "abc", "", "5,-"])
def test_parse_range_numbers_errors(text):
    with pytest.raises(IniError):
        parse_range_numbers(text)


@pytest.mark.parametrize("text", ["true", "1", "yes", "on", "T"])
def test_parse_bool_true(text):
    assert parse_bool(text) is True


@pytest.mark.parametrize("text", ["false", "0", "no", "off", "F"])
def test_parse_bool_false(text):
    assert parse_bool(text) is False


def test_parse_bool_invalid():
    with pytest.raises(IniError):
        parse_bool("maybe")


def test_map_without_prefix():
    values = {"meta_var1": "123", "meta_var2": "234", "other": "1"}
    assert map_without_prefix(values, "meta_") == {"var1": "123", "var2": "234"}
    assert map_without_prefix(values, "header_") is None


def test_map_by_prefix():
    values = {"plugin_a": "1", "b": "2"}
    assert map_by_prefix(values, "plugin_") == {"plugin_a": "1"}
    assert map_by_prefix(values, "meta_") is None