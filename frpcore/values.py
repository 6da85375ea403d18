"""Rendering of configuration templates that refer to environment variables.

Supported actions: ``{{ .Envs.NAME }}``, ``{{ index .Envs "NAME" }}``,
string literals and ``{{/* comments */}}``, with ``{{-`` and ``-}}``
trimming the whitespace next to them.
"""

import json
import os
import re
from pathlib import Path

_ACTION = re.compile(r"\{\{(-[ \t\r\n])?(.*?)([ \t\r\n]-)?\}\}", re.S)
_ENV_FIELD = re.compile(r"\.Envs\.([A-Za-z_][A-Za-z0-9_]*)")
_ENV_INDEX = re.compile(r'index\s+\.Envs\s+("(?:[^"\\]|\\.)*")')
_STRING = re.compile(r'"(?:[^"\\]|\\.)*"')

NO_VALUE = "<no value>"


class TemplateError(ValueError):
    """A template could not be parsed or executed."""


def _string_literal(quoted: str) -> str:
    try:
        return json.loads(quoted)
    except ValueError as exc:
        raise TemplateError(f"invalid string literal {quoted}") from exc


def _evaluate(expression: str, envs: dict[str, str]) -> str:
    expression = expression.strip()
    if expression.startswith("/*") and expression.endswith("*/"):
        return ""
    if not expression:
        raise TemplateError("missing value for command")
    match = _ENV_FIELD.fullmatch(expression)
    if match:
        return envs.get(match.group(1), NO_VALUE)
    match = _ENV_INDEX.fullmatch(expression)
    if match:
        return envs.get(_string_literal(match.group(1)), "")
    if _STRING.fullmatch(expression):
        return _string_literal(expression)
    raise TemplateError(f"unsupported template action: {expression}")


def _check_literal(literal: str) -> str:
    if "{{" in literal:
        raise TemplateError("unclosed action")
    return literal


def render_content(text: "str | bytes", envs: "dict[str, str] | None" = None) -> str:
    """Render ``text`` against ``envs`` (the process environment by default)."""
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8")
    values = dict(os.environ) if envs is None else envs
    parts: list[str] = []
    position = 0
    trim_next = False
    for match in _ACTION.finditer(text):
        literal = text[position : match.start()]
        if trim_next:
            literal = literal.lstrip()
        if match.group(1):
            literal = literal.rstrip()
        parts.append(_check_literal(literal))
        parts.append(_evaluate(match.group(2), values))
        trim_next = bool(match.group(3))
        position = match.end()
    tail = text[position:]
    if trim_next:
        tail = tail.lstrip()
    parts.append(_check_literal(tail))
    return "".join(parts)


def rendered_conf_from_file(path: "str | os.PathLike[str]") -> str:
    """Read a configuration file and render it against the environment."""
    return render_content(Path(path).read_bytes())