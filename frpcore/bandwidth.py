"""Bandwidth quantities such as ``19MB`` or ``512KB``."""

import json
import re
from dataclasses import dataclass, field

KB = 1024
MB = 1024 * 1024

BANDWIDTH_LIMIT_MODE_CLIENT = "client"
BANDWIDTH_LIMIT_MODE_SERVER = "server"

_UNITS = (("MB", MB), ("KB", KB))
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_number(text: str) -> float:
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid number {text!r}")
    return float(text)


@dataclass(frozen=True)
class BandwidthQuantity:
    """A bandwidth limit; equality compares the number of bytes only."""

    text: str = field(default="", compare=False)
    num_bytes: int = 0

    def __str__(self) -> str:
        return self.text

    @classmethod
    def parse(cls, text: str) -> "BandwidthQuantity":
        """Parse ``<number>MB`` or ``<number>KB``; an empty string means no limit."""
        text = text.strip()
        if not text:
            return cls()
        for suffix, base in _UNITS:
            if text.endswith(suffix):
                number = _parse_number(text[: -len(suffix)])
                return cls(text, int(number * base))
        raise ValueError("unit not support")

    @classmethod
    def from_json(cls, data: "str | bytes") -> "BandwidthQuantity":
        """Decode a JSON string value; ``null`` gives an empty quantity."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        if data.strip() == "null":
            return cls()
        value = json.loads(data)
        if not isinstance(value, str):
            raise ValueError("bandwidth quantity must be a JSON string")
        return cls.parse(value)

    def to_json(self) -> str:
        """Encode as a JSON string holding the original text."""
        return '"' + self.text + '"'