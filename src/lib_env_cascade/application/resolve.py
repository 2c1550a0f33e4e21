"""Variable interpolation and type coercion for parsed dotenv values.

Purpose
-------
Turn raw strings produced by the dotenv parser into final values: expand
``$NAME`` / ``${NAME}`` / ``${NAME:-default}`` references against the
environment and the cascade itself, then coerce the text to booleans, numbers,
or JSON structures.

Contents
--------
* :func:`interpolate` – reference expansion with cycle detection.
* :func:`coerce` – ordered type coercion with explicit fallbacks.
* :func:`resolve_value` – ``coerce(interpolate(...))``.
* :func:`to_env_string` – text form used when typed values are referenced or
  committed to a string-only store.
* :func:`is_blank` – Unicode-aware emptiness check.

System Role
-----------
Called by :func:`lib_env_cascade.core.load` for every key absent from the
environment store. Pure functions, no I/O.
"""

from __future__ import annotations

import json
import math
import re
import sys
from typing import Any, Mapping

from ..domain.errors import InterpolationCycleError

# Groups: escape, dollar, open brace, name, default (up to three nested ${...}), close brace.
_SUBSTITUTION = re.compile(
    r"(\\)?(\$)(?!\()(\{?)([\w.]+)"
    r"(?::?-((?:\$\{(?:\$\{(?:\$\{[^}]*\}|[^}])*\}|[^}])*\}|[^}])+))?"
    r"(\}?)",
    re.ASCII,
)

_SPACE_CHARS = (
    " \t\n\r\v\f\u00a0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_PREFIXED_INTEGER = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")

# Integral floats below this render without ".0" or an exponent.
_PLAIN_INTEGRAL_LIMIT = 1e21


def is_blank(value: str) -> bool:
    """Return ``True`` for empty or whitespace-only strings (full Unicode space set).

    Examples
    --------
    >>> is_blank(""), is_blank(" \\u3000\\ufeff"), is_blank(" x ")
    (True, True, False)
    """

    return not value.strip(_SPACE_CHARS)


def to_env_string(value: Any) -> str:
    """Render a (possibly coerced) value as environment text.

    Examples
    --------
    >>> to_env_string(True), to_env_string(42), to_env_string([1, 2]), to_env_string("x")
    ('true', '42', '[1, 2]', 'x')
    >>> to_env_string(1e3), to_env_string(2.5)
    ('1000', '2.5')
    """

    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < _PLAIN_INTEGRAL_LIMIT:
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


def interpolate(
    value: str,
    environ: Mapping[str, str],
    parsed: Mapping[str, Any],
    *,
    key: str | None = None,
) -> str:
    """Expand variable references inside *value*.

    Why
    ----
    Dotenv files commonly compose values (``URL=http://${HOST}:${PORT}``) and
    defer to values defined by the shell.

    What
    ----
    For each token: an escaped ``\\$`` is kept literally; a non-empty
    environment value wins (recursively expanded unless it equals the parsed
    value); then a non-empty parsed value that differs from the text being
    expanded; then the default (expanded when it starts with ``$``); else the
    empty string.

    Parameters
    ----------
    key:
        Name of the variable owning *value*; seeds the reference chain so
        ``A=${B}`` with ``B=${A}`` is reported instead of looping forever.

    Raises
    ------
    InterpolationCycleError
        When a reference chain revisits a name.

    Examples
    --------
    >>> interpolate("${A}-2", {}, {"A": "1", "B": "${A}-2"}, key="B")
    '1-2'
    >>> interpolate("${MISSING:-fallback}", {}, {})
    'fallback'
    >>> interpolate("${HOME}/app", {"HOME": "/root"}, {})
    '/root/app'
    """

    return _interpolate(value, environ, parsed, (key,) if key else ())


def _interpolate(
    value: str,
    environ: Mapping[str, str],
    parsed: Mapping[str, Any],
    chain: tuple[str, ...],
) -> str:
    def substitute(match: re.Match[str]) -> str:
        escaped, name, default = match.group(1), match.group(4), match.group(5)
        if escaped:
            return match.group(0)[1:]

        env_value = environ.get(name)
        if env_value:
            if env_value == parsed.get(name):
                return env_value
            return _interpolate(env_value, environ, parsed, _follow(chain, name))

        if name in parsed:
            parsed_value = to_env_string(parsed[name])
            if parsed_value and parsed_value != value:
                return _interpolate(parsed_value, environ, parsed, _follow(chain, name))

        if default:
            if default.startswith("$"):
                return _interpolate(default, environ, parsed, chain)
            return default

        return ""

    return _SUBSTITUTION.sub(substitute, value)


def _follow(chain: tuple[str, ...], name: str) -> tuple[str, ...]:
    if name in chain:
        raise InterpolationCycleError([*chain[chain.index(name) :], name])
    return (*chain, name)


def coerce(value: str) -> Any:
    """Coerce interpolated text into a typed value.

    Precedence: unescape ``\\$``; backtick-wrapped text is returned verbatim
    without the backticks; a trailing ``*`` forces the remaining string; then
    ``true``/``false``; finite numbers; ``[...]``/``{...}`` JSON (falling back to
    ``[]``/``{}``); otherwise the string itself.

    Examples
    --------
    >>> coerce("true"), coerce("42"), coerce("[1,2]"), coerce("3*"), coerce("`42`")
    (True, 42, [1, 2], '3', '42')
    >>> coerce("{broken"), coerce("{broken}"), coerce("0x1F"), coerce("1e3")
    ('{broken', {}, 31, 1000.0)
    """

    text = value.replace("\\$", "$")

    if text.startswith("`") and text.endswith("`"):
        return text[1:-1]

    if text.endswith("*"):
        return text[:-1]

    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"

    if not is_blank(text):
        number = _parse_number(text)
        if number is not None:
            return number

    if text.startswith("[") and text.endswith("]"):
        return _parse_json(text, fallback=[])
    if text.startswith("{") and text.endswith("}"):
        return _parse_json(text, fallback={})

    return text


def resolve_value(
    value: str,
    environ: Mapping[str, str],
    parsed: Mapping[str, Any],
    *,
    key: str | None = None,
) -> Any:
    """Interpolate then coerce *value*.

    Examples
    --------
    >>> resolve_value("${PORT}", {}, {"PORT": "8080"})
    8080
    """

    return coerce(interpolate(value, environ, parsed, key=key))


def _parse_number(text: str) -> int | float | None:
    """Return the numeric value of *text* or ``None`` when it is not a finite number.

    Integers beyond the double range count as non-finite, which also keeps
    digit strings past the interpreter's int conversion limit as text.
    """

    candidate = text.strip(_SPACE_CHARS)
    try:
        if _PREFIXED_INTEGER.fullmatch(candidate):
            number: int | float = int(candidate, 0)
        elif _INTEGER.fullmatch(candidate):
            number = int(candidate)
        elif _DECIMAL.fullmatch(candidate):
            number = float(candidate)
        else:
            return None
    except ValueError:
        return None
    if isinstance(number, int):
        return number if number.bit_length() <= sys.float_info.max_exp else None
    return number if math.isfinite(number) else None


def _parse_json(text: str, *, fallback: list[Any] | dict[str, Any]) -> Any:
    """Decode JSON, returning *fallback* for malformed or too deeply nested payloads."""

    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return fallback
