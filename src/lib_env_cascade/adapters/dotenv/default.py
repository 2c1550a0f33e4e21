"""`.env` parser adapter.

Purpose
-------
Implement the :class:`lib_env_cascade.application.ports.FileParser` protocol:
read dotenv files and produce ordered ``{KEY: raw_value}`` mappings with quoting,
escaping, multi-line values, and comments handled.

Contents
--------
* :func:`parse_text` – explicit three-state line scanner.
* :func:`parse_file` – read one file (wrapping I/O failures in
  :class:`~lib_env_cascade.domain.errors.FileReadError`).
* :func:`parse_files` – parse several files and overwrite-merge them in order.
* :class:`DefaultFileParser` – injectable wrapper used by the composition root.

System Role
-----------
Feeds raw maps into :mod:`lib_env_cascade.core`, which resolves and commits
them. Values are dequoted and escape-processed here but never interpolated.
"""

from __future__ import annotations

import enum
import re
from pathlib import Path
from typing import Iterable

from ...application.merge import OVERWRITE_MERGE, Merger
from ...domain.errors import FileReadError
from ...observability import log_debug

_KEY = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*")
_QUOTES = frozenset("'\"`")
_DOUBLE_QUOTE_ESCAPES = re.compile(r'\\([nrt\\"])')
_ESCAPE_TABLE = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", '"': '"'}


class _State(enum.Enum):
    SEEKING_KEY = enum.auto()
    UNQUOTED_CONTINUATION = enum.auto()
    QUOTED_VALUE = enum.auto()


def _closing_quote(quote: str) -> re.Pattern[str]:
    """Return a pattern matching *quote* when it is not preceded by a backslash."""

    return re.compile(r"(?<!\\)" + re.escape(quote))


def decode_quoted(quote: str, content: str) -> str:
    """Decode the inner *content* of a value wrapped in *quote*.

    Double quotes process ``\\n \\r \\t \\\\ \\"`` in a single pass; single quotes
    and backticks keep the content literally.

    Examples
    --------
    >>> decode_quoted('"', r'a\\nb')
    'a\\nb'
    >>> decode_quoted("'", r'a\\nb')
    'a\\\\nb'
    """

    if quote == '"':
        return _DOUBLE_QUOTE_ESCAPES.sub(lambda match: _ESCAPE_TABLE[match.group(1)], content)
    return content


def _is_skippable(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def parse_text(text: str) -> dict[str, str]:
    """Parse dotenv *text* into an ordered ``{KEY: raw_value}`` mapping.

    Why
    ----
    Multi-line quoted values and backslash continuations need state carried
    across lines; an explicit state enum keeps those transitions auditable.

    What
    ----
    * ``SEEKING_KEY`` skips blanks and ``#`` comments and starts an entry on
      ``[export ]KEY=value`` lines. Quoted values closing on the same line are
      complete; otherwise the scanner enters ``QUOTED_VALUE``. Unquoted values
      ending with ``\\`` enter ``UNQUOTED_CONTINUATION``.
    * ``UNQUOTED_CONTINUATION`` appends trimmed lines until one does not end
      with ``\\``; fragments are joined with newlines.
    * ``QUOTED_VALUE`` appends raw lines until an unescaped closing quote.
    * End of input finalises whatever value is still open.

    Examples
    --------
    >>> parse_text('A=1\\nexport B="x\\\\ty"\\n# note\\nC=\\'multi\\nline\\'\\n')
    {'A': '1', 'B': 'x\\ty', 'C': 'multi\\nline'}
    >>> parse_text('LIST=one \\\\\\n  two\\n')
    {'LIST': 'one\\ntwo'}
    """

    parsed: dict[str, str] = {}
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    state = _State.SEEKING_KEY
    key = ""
    quote = ""
    buffer: list[str] = []

    for line in lines:
        if state is not _State.QUOTED_VALUE and _is_skippable(line):
            continue

        if state is _State.SEEKING_KEY:
            match = _KEY.match(line)
            if match is None:
                continue
            key = match.group(1)
            value_start = line[match.end() :]
            trimmed = value_start.strip()

            if trimmed[:1] in _QUOTES:
                quote = trimmed[0]
                remaining = trimmed[1:]
                closing = _closing_quote(quote).search(remaining)
                if closing is not None:
                    parsed[key] = decode_quoted(quote, remaining[: closing.start()])
                else:
                    buffer = [remaining]
                    state = _State.QUOTED_VALUE
            elif value_start.endswith("\\"):
                buffer = [value_start[:-1].strip()]
                state = _State.UNQUOTED_CONTINUATION
            else:
                parsed[key] = trimmed

        elif state is _State.UNQUOTED_CONTINUATION:
            if line.endswith("\\"):
                buffer.append(line[:-1].strip())
            else:
                buffer.append(line.strip())
                parsed[key] = "\n".join(buffer).strip()
                buffer = []
                state = _State.SEEKING_KEY

        else:
            closing = _closing_quote(quote).search(line)
            if closing is not None:
                buffer.append(line[: closing.start()])
                parsed[key] = decode_quoted(quote, "\n".join(buffer))
                buffer = []
                state = _State.SEEKING_KEY
            else:
                buffer.append(line)

    if state is _State.QUOTED_VALUE:
        parsed[key] = decode_quoted(quote, "\n".join(buffer))
    elif state is _State.UNQUOTED_CONTINUATION:
        parsed[key] = "\n".join(buffer).strip()

    return parsed


def parse_file(path: str, *, encoding: str = "utf-8") -> dict[str, str]:
    """Read and parse the dotenv file at *path*.

    Raises
    ------
    FileReadError
        When the file is missing, unreadable, or cannot be decoded with
        *encoding*. No partial result is returned.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> target = Path(tmp.name) / '.env'
    >>> _ = target.write_text('GREETING="hello world"\\n', encoding='utf-8')
    >>> parse_file(str(target))
    {'GREETING': 'hello world'}
    >>> tmp.cleanup()
    """

    try:
        text = Path(path).read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError, LookupError) as exc:
        raise FileReadError(str(path), str(exc)) from exc
    parsed = parse_text(text)
    log_debug("dotenv_parsed", role="file", path=str(path), keys=list(parsed))
    return parsed


def parse_files(
    paths: str | Iterable[str],
    *,
    encoding: str = "utf-8",
    merger: Merger | None = None,
) -> dict[str, str]:
    """Parse *paths* in order and fold them with the overwrite merge.

    Later files override keys defined by earlier files. A failure in any file
    fails the whole call.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> first, second = Path(tmp.name) / 'a.env', Path(tmp.name) / 'b.env'
    >>> _ = first.write_text('X=1\\nY=1\\n', encoding='utf-8')
    >>> _ = second.write_text('X=2\\n', encoding='utf-8')
    >>> parse_files([str(first), str(second)])
    {'X': '2', 'Y': '1'}
    >>> tmp.cleanup()
    """

    merge = merger or OVERWRITE_MERGE
    file_list = [paths] if isinstance(paths, str) else list(paths)
    result: dict[str, str] = {}
    for path in file_list:
        parsed = parse_file(path, encoding=encoding)
        for key in parsed:
            if key in result:
                log_debug("dotenv_key_overwritten", role="file", path=str(path), key=key)
        result = merge(result, parsed)
    return result


class DefaultFileParser:
    """Injectable :class:`~lib_env_cascade.application.ports.FileParser`.

    Why
    ----
    Tests and embedding applications may swap in a parser that reads from a
    virtual filesystem; the composition root only talks to this interface.
    """

    def __init__(self, *, merger: Merger | None = None) -> None:
        self._merger = merger

    def parse_file(self, path: str, *, encoding: str = "utf-8") -> dict[str, str]:
        return parse_file(path, encoding=encoding)

    def parse_files(self, paths: Iterable[str], *, encoding: str = "utf-8") -> dict[str, str]:
        return parse_files(paths, encoding=encoding, merger=self._merger)
