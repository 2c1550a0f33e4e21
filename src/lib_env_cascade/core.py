"""Composition root for ``lib_env_cascade``.

Purpose
-------
Provide the entry points that orchestrate filename resolution, dotenv parsing,
value resolution, and the commit into the environment store.

Contents
--------
* :func:`effective_env_name` – explicit option > ``APP_ENV`` > default option.
* :func:`parse` – parse and overwrite-merge files without resolving values.
* :func:`load` – parse, resolve, and commit a list of files.
* :func:`unload` – remove keys whose current value still matches a file.
* :func:`config` – the full cascade (``list_files`` + ``load``).
* :func:`config_from_env` – :func:`config` driven by ``ENV_CASCADE_*`` variables.

System Role
-----------
This module connects adapters (filesystem, parser, environment store) with the
pure resolver and merge policy while emitting structured observability signals.
Expected failures never escape :func:`load` / :func:`config`; they are returned
inside :class:`~lib_env_cascade.domain.result.LoadResult` and the store is left
untouched.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Mapping
from typing import Any, Iterable

from .adapters.dotenv.default import DefaultFileParser
from .adapters.env.default import ENV_NAME_VARIABLE, ProcessEnvStore, env_options
from .adapters.path_resolvers.default import (
    DEFAULT_PATTERN,
    DefaultFilenameResolver,
    describe_pattern,
    list_files,
    resolve_path,
)
from .application.merge import OVERWRITE_MERGE, Merger
from .application.ports import EnvStore, FileParser, FilenameResolver
from .application.resolve import resolve_value, to_env_string
from .domain.errors import EnvCascadeError, InvalidValueError, NoMatchingFilesError
from .domain.result import LoadResult
from .observability import bind_trace_id, log_debug, log_error, log_info, log_warning, make_event

FileArgument = str | os.PathLike[str] | Iterable[str | os.PathLike[str]]


def effective_env_name(
    *,
    env_name: str | None = None,
    default_env_name: str | None = None,
    environ: Mapping[str, str] | None = None,
    variable: str = ENV_NAME_VARIABLE,
) -> str | None:
    """Return the environment name used to select environment-specific files.

    Examples
    --------
    >>> effective_env_name(env_name="staging", environ={"APP_ENV": "production"})
    'staging'
    >>> effective_env_name(default_env_name="development", environ={"APP_ENV": "production"})
    'production'
    >>> effective_env_name(default_env_name="development", environ={})
    'development'
    >>> effective_env_name(environ={}) is None
    True
    """

    source = os.environ if environ is None else environ
    if env_name:
        log_debug("env_name_resolved", role="env_name", path=None, env_name=env_name, source="option")
        return env_name
    live = source.get(variable)
    if live:
        log_debug("env_name_resolved", role="env_name", path=None, env_name=live, source=variable)
        return live
    if default_env_name:
        log_debug("env_name_resolved", role="env_name", path=None, env_name=default_env_name, source="default")
        return default_env_name
    log_debug("env_name_resolved", role="env_name", path=None, env_name=None, source="none")
    return None


def parse(
    files: FileArgument,
    *,
    encoding: str = "utf-8",
    merger: Merger | None = None,
    parser: FileParser | None = None,
) -> dict[str, str]:
    """Parse *files* in order and return the merged raw map.

    Raises
    ------
    FileReadError
        When any file cannot be read.
    """

    return dict(_parser(parser, merger).parse_files(_as_list(files), encoding=encoding))


def load(
    files: FileArgument,
    *,
    encoding: str = "utf-8",
    silent: bool = False,
    merger: Merger | None = None,
    store: EnvStore | None = None,
    parser: FileParser | None = None,
) -> LoadResult:
    """Parse *files*, resolve their values, and commit them into *store*.

    Why
    ----
    Variables predefined by the shell must keep priority over every dotenv file,
    and a broken file must never leave the environment half-populated.

    What
    ----
    Parses and overwrite-merges *files*, resolves each key absent from the
    store against a snapshot of it (the raw map is updated in place so later
    references see resolved values), then assigns the new keys. Keys already in
    the store are left alone and not resolved. A key or value the store cannot
    hold fails the whole load with :class:`InvalidValueError`; keys assigned
    before a rejected one are removed again.

    Returns
    -------
    LoadResult
        ``parsed`` holds the merged map on success; ``error`` holds the
        :class:`EnvCascadeError` otherwise, with the store untouched.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> from pathlib import Path
    >>> from lib_env_cascade.adapters.env.default import MemoryEnvStore
    >>> tmp = TemporaryDirectory()
    >>> env_file = Path(tmp.name) / '.env'
    >>> _ = env_file.write_text('A=1\\nB=${A}-2\\nDEBUG=true\\n', encoding='utf-8')
    >>> store = MemoryEnvStore({"DEBUG": "false"})
    >>> result = load(str(env_file), store=store)
    >>> result["A"], result["B"], store.get("B"), store.get("DEBUG")
    (1, '1-2', '1-2', 'false')
    >>> tmp.cleanup()
    """

    target = store if store is not None else ProcessEnvStore()
    merge = merger or OVERWRITE_MERGE
    try:
        parsed: dict[str, Any] = dict(_parser(parser, merger).parse_files(_as_list(files), encoding=encoding))
        snapshot = target.snapshot()
        for key in list(parsed):
            if key in snapshot:
                if snapshot[key] != parsed[key]:
                    log_debug("env_key_preserved", role="commit", path=None, key=key)
                continue
            parsed[key] = resolve_value(parsed[key], snapshot, parsed, key=key)
        committed = merge({key: to_env_string(value) for key, value in parsed.items()}, snapshot)
        pending = {key: value for key, value in committed.items() if not target.has(key)}
        _validate_entries(pending)
        _commit(target, pending)
    except EnvCascadeError as exc:
        return _failure(exc, silent=silent)
    return LoadResult(parsed=parsed)


def unload(
    files: FileArgument,
    *,
    encoding: str = "utf-8",
    store: EnvStore | None = None,
    parser: FileParser | None = None,
) -> list[str]:
    """Remove keys whose current store value equals the value parsed from *files*.

    Why
    ----
    Another component may have loaded ``.env`` before the cascade ran; those
    values would otherwise be treated as shell-defined and outrank
    ``.env.local`` and friends. Keys changed since then are kept, so the
    operation is a safe and idempotent revert.

    Returns
    -------
    list[str]
        Keys removed from the store.

    Raises
    ------
    FileReadError
        When any file cannot be read.
    """

    target = store if store is not None else ProcessEnvStore()
    parsed = _parser(parser, None).parse_files(_as_list(files), encoding=encoding)
    removed: list[str] = []
    for key, value in parsed.items():
        if target.get(key) == value:
            target.delete(key)
            removed.append(key)
            log_debug("env_key_unloaded", role="purge", path=None, key=key)
    return removed


def config(
    *,
    env_name: str | None = None,
    default_env_name: str | None = None,
    path: str | os.PathLike[str] | None = None,
    pattern: str | None = None,
    files: FileArgument | None = None,
    encoding: str = "utf-8",
    purge_dotenv: bool = False,
    silent: bool = False,
    merger: Merger | None = None,
    store: EnvStore | None = None,
    resolver: FilenameResolver | None = None,
    parser: FileParser | None = None,
) -> LoadResult:
    """Load the dotenv cascade into *store* (``os.environ`` by default).

    Parameters
    ----------
    env_name / default_env_name:
        Environment name selection; see :func:`effective_env_name`.
    path:
        Directory holding the dotenv files (defaults to the CWD).
    pattern:
        Naming convention (defaults to ``.env[.node_env][.local]``).
    files:
        Explicit file list resolved against *path*. Missing entries are skipped
        and *env_name*, *default_env_name*, and *pattern* are ignored.
    purge_dotenv:
        Unload ``<path>/.env`` first (see :func:`unload`).
    silent:
        Suppress warning logs; the returned error is never suppressed.

    Returns
    -------
    LoadResult
        ``parsed`` or ``error``; on error the store is left untouched.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> from pathlib import Path
    >>> from lib_env_cascade.adapters.env.default import MemoryEnvStore
    >>> tmp = TemporaryDirectory()
    >>> _ = (Path(tmp.name) / '.env').write_text('A=ok\\n', encoding='utf-8')
    >>> _ = (Path(tmp.name) / '.env.local').write_text('A=ok2\\nB=ok\\n', encoding='utf-8')
    >>> dict(config(path=tmp.name, store=MemoryEnvStore()).parsed)
    {'A': 'ok2', 'B': 'ok'}
    >>> tmp.cleanup()
    """

    bind_trace_id(uuid.uuid4().hex)
    target = store if store is not None else ProcessEnvStore()
    finder = resolver or DefaultFilenameResolver()
    working_dir = os.fspath(path) if path else os.getcwd()
    active_pattern = pattern or DEFAULT_PATTERN

    if purge_dotenv:
        dotenv_file = resolve_path(working_dir, ".env")
        log_debug("dotenv_purge", **make_event("base", dotenv_file))
        if finder.exists(dotenv_file):
            try:
                unload([dotenv_file], encoding=encoding, store=target, parser=parser)
            except EnvCascadeError as exc:
                _failure(exc, silent=silent)

    if files is not None:
        file_list = []
        for name in _as_list(files):
            candidate = resolve_path(working_dir, name)
            if finder.exists(candidate):
                file_list.append(candidate)
            else:
                log_debug("explicit_file_missing", **make_event("explicit", candidate))
    else:
        selected = effective_env_name(
            env_name=env_name,
            default_env_name=default_env_name,
            environ=target.snapshot(),
        )
        file_list = finder.list_files(env_name=selected, path=working_dir, pattern=active_pattern)
        if not file_list:
            return _failure(
                NoMatchingFilesError(working_dir, describe_pattern(active_pattern, selected)),
                silent=silent,
            )

    result = load(
        list(dict.fromkeys(file_list)),
        encoding=encoding,
        silent=silent,
        merger=merger,
        store=target,
        parser=parser,
    )
    if result.ok:
        log_info("env_cascade_loaded", **make_event("cascade", working_dir, {"files": len(file_list)}))
    return result


def config_from_env(environ: Mapping[str, str] | None = None, **overrides: Any) -> LoadResult:
    """Run :func:`config` with options read from ``APP_ENV`` / ``ENV_CASCADE_*``.

    Explicit keyword *overrides* win over variables.
    """

    options: dict[str, Any] = dict(env_options(environ))
    options.update(overrides)
    return config(**options)


def _parser(parser: FileParser | None, merger: Merger | None) -> FileParser:
    return parser if parser is not None else DefaultFileParser(merger=merger)


def _as_list(files: FileArgument) -> list[str]:
    if isinstance(files, (str, os.PathLike)):
        return [os.fspath(files)]
    return [os.fspath(item) for item in files]


def _validate_entries(entries: Mapping[str, str]) -> None:
    for key, value in entries.items():
        if "\x00" in key or "\x00" in value:
            raise InvalidValueError(key, "embedded null character")


def _commit(target: EnvStore, entries: Mapping[str, str]) -> None:
    """Assign *entries*, removing the ones already assigned if the store rejects a key."""

    assigned: list[str] = []
    for key, value in entries.items():
        try:
            target.set(key, value)
        except (ValueError, OSError) as exc:
            for done in reversed(assigned):
                target.delete(done)
            log_error(
                "env_commit_rolled_back",
                role="commit",
                path=None,
                key=key,
                rolled_back=len(assigned),
                error=str(exc),
            )
            raise InvalidValueError(key, str(exc)) from exc
        assigned.append(key)


def _failure(error: EnvCascadeError, *, silent: bool) -> LoadResult:
    """Log *error* unless *silent* and wrap it in a :class:`LoadResult`."""

    if not silent:
        log_warning(
            "env_cascade_failed",
            role="cascade",
            path=getattr(error, "path", None),
            error=str(error),
        )
    return LoadResult(error=error)


__all__ = [
    "DEFAULT_PATTERN",
    "LoadResult",
    "config",
    "config_from_env",
    "effective_env_name",
    "list_files",
    "load",
    "parse",
    "unload",
]
