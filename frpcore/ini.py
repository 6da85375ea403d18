"""A small INI reader with the options the configuration loader relies on.

Keys and section names are case sensitive, inline comments are not
recognised, and a key without a value is read as ``true``.
"""

import re

DEFAULT_SECTION = "DEFAULT"

_QUOTES = "\"'`"
_DIGITS = re.compile(r"[0-9]+")

_TRUE_WORDS = frozenset(
    {"1", "t", "T", "TRUE", "true", "True", "YES", "yes", "Yes", "y", "ON", "on", "On"}
)
_FALSE_WORDS = frozenset(
    {"0", "f", "F", "FALSE", "false", "False", "NO", "no", "No", "n", "OFF", "off", "Off"}
)


class IniError(ValueError):
    """The INI text or a value in it is malformed."""


class IniSection:
    """A named, ordered set of string keys."""

    def __init__(self, name: str, values: "dict[str, str] | None" = None) -> None:
        self.name = name
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str, default: str = "") -> str:
        """Value of ``key``, or ``default`` when the key is absent."""
        return self._values.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Add or replace a key."""
        if not key:
            raise IniError("empty key name")
        self._values[key] = str(value)

    def keys_hash(self) -> dict[str, str]:
        """A copy of all keys and values."""
        return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"IniSection({self.name!r}, {self._values!r})"


def _unquote(value: str) -> str:
    if len(value) >= 6 and value.startswith('"""') and value.endswith('"""'):
        return value[3:-3]
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value


def _split_key_value(line: str, lineno: int) -> tuple[str, str]:
    positions = [pos for pos in (line.find("="), line.find(":")) if pos >= 0]
    if not positions:
        return line, "true"
    idx = min(positions)
    key = line[:idx].strip()
    if not key:
        raise IniError(f"line {lineno}: empty key name")
    return key, _unquote(line[idx + 1 :].strip())


class IniFile:
    """Sections of an INI document, in the order they first appeared."""

    def __init__(self) -> None:
        self._sections: dict[str, IniSection] = {
            DEFAULT_SECTION: IniSection(DEFAULT_SECTION)
        }

    @classmethod
    def parse(cls, text: "str | bytes") -> "IniFile":
        """Read INI text; repeated sections are merged, later keys win."""
        if isinstance(text, (bytes, bytearray)):
            text = bytes(text).decode("utf-8")
        ini = cls()
        current = ini._sections[DEFAULT_SECTION]
        for lineno, raw in enumerate(text.lstrip("\ufeff").splitlines(), 1):
            line = raw.strip()
            if not line or line[0] in "#;":
                continue
            if line.startswith("["):
                end = line.rfind("]")
                if end < 0:
                    raise IniError(f"line {lineno}: unclosed section: {line}")
                current = ini.new_section(line[1:end].strip())
                continue
            key, value = _split_key_value(line, lineno)
            current.set(key, value)
        return ini

    def section(self, name: str) -> IniSection:
        """The section called ``name``; raises IniError if there is none."""
        try:
            return self._sections[name]
        except KeyError:
            raise IniError(f"section {name!r} does not exist") from None

    def new_section(self, name: str) -> IniSection:
        """Create a section, or return the existing one of that name."""
        if not name:
            raise IniError("empty section name")
        existing = self._sections.get(name)
        if existing is not None:
            return existing
        created = IniSection(name)
        self._sections[name] = created
        return created

    def delete_section(self, name: str) -> None:
        """Remove a section if it exists."""
        self._sections.pop(name, None)

    def sections(self) -> list[IniSection]:
        """All sections in order, the default section included."""
        return list(self._sections.values())

    def __contains__(self, name: object) -> bool:
        return name in self._sections


def map_without_prefix(values: dict[str, str], prefix: str) -> "dict[str, str] | None":
    """Entries whose key starts with ``prefix``, with the prefix removed; None if none match."""
    result = {
        key[len(prefix) :]: value for key, value in values.items() if key.startswith(prefix)
    }
    return result or None


def map_by_prefix(values: dict[str, str], prefix: str) -> "dict[str, str] | None":
    """Entries whose key starts with ``prefix``, keys unchanged; None if none match."""
    result = {key: value for key, value in values.items() if key.startswith(prefix)}
    return result or None


def _parse_unsigned(text: str) -> int:
    text = text.strip()
    if not _DIGITS.fullmatch(text):
        raise IniError(f"invalid number {text!r}")
    return int(text)


def parse_range_numbers(text: str) -> list[int]:
    """Expand ``"1000-1002,2000"`` into ``[1000, 1001, 1002, 2000]``."""
    numbers: list[int] = []
    for part in text.split(","):
        bounds = part.strip().split("-")
        if len(bounds) == 1:
            numbers.append(_parse_unsigned(bounds[0]))
        elif len(bounds) == 2:
            low, high = _parse_unsigned(bounds[0]), _parse_unsigned(bounds[1])
            if low > high:
                raise IniError(f"range number is invalid: {part.strip()!r}")
            numbers.extend(range(low, high + 1))
        else:
            raise IniError(f"range number is invalid: {part.strip()!r}")
    return numbers


def parse_bool(text: str) -> bool:
    """Read an INI boolean such as ``true``, ``yes``, ``on`` or ``0``."""
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise IniError(f"invalid boolean value {text!r}")