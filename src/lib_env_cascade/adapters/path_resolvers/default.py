"""Filesystem path resolution for the dotenv cascade.

Purpose
-------
Implement the :class:`lib_env_cascade.application.ports.FilenameResolver`
protocol: expand a naming pattern such as ``.env[.node_env][.local]`` into the
five cascade roles and keep the files that exist.

Contents
--------
* :data:`DEFAULT_PATTERN` – default naming convention.
* :data:`CASCADE_ROLES` – roles in ascending override priority.
* :func:`compose_filename` – expand a pattern for one role.
* :func:`list_files` – ordered list of existing cascade files.
* :func:`describe_pattern` – pattern text used in error messages.
* :class:`DefaultFilenameResolver` – injectable wrapper.

System Role
-----------
Feeds deterministic path lists into :func:`lib_env_cascade.core.config`. It is
the only component that touches the filesystem besides the parser.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable, Final

from ...observability import log_debug, make_event

DEFAULT_PATTERN: Final[str] = ".env[.node_env][.local]"

#: Legacy defaults file considered only for :data:`DEFAULT_PATTERN`.
LEGACY_DEFAULTS_FILE: Final[str] = ".env.defaults"

#: Environment name for which the shared ``.env.local`` file is never loaded.
TEST_ENV_NAME: Final[str] = "test"

CASCADE_ROLES: Final[tuple[str, ...]] = ("defaults", "base", "local", "env-specific", "env-specific-local")

_LOCAL_PLACEHOLDER = re.compile(r"\[(\W*\blocal\b\W*)]")
_NODE_ENV_PLACEHOLDER = re.compile(r"\[(\W*\b)node_env(\b\W*)]")

ExistsCheck = Callable[[str], bool]


def compose_filename(pattern: str, *, local: bool = False, env_name: str | None = None) -> str:
    """Expand *pattern* for the given flags.

    Active placeholders keep their surrounding text without brackets; inactive
    ones disappear together with their brackets.

    Examples
    --------
    >>> compose_filename(".env[.node_env][.local]")
    '.env'
    >>> compose_filename(".env[.node_env][.local]", local=True, env_name="production")
    '.env.production.local'
    >>> compose_filename("config/[local/].env[.node_env]", local=True)
    'config/local/.env'
    """

    filename = _LOCAL_PLACEHOLDER.sub(lambda match: match.group(1) if local else "", pattern)
    return _NODE_ENV_PLACEHOLDER.sub(
        lambda match: f"{match.group(1)}{env_name}{match.group(2)}" if env_name else "",
        filename,
    )


def describe_pattern(pattern: str, env_name: str | None) -> str:
    """Return *pattern* with the node_env placeholder filled in for messages.

    Examples
    --------
    >>> describe_pattern(".env[.node_env][.local]", "development")
    '.env[.development][.local]'
    >>> describe_pattern(".env[.node_env][.local]", None)
    '.env[.node_env][.local]'
    """

    if not env_name:
        return pattern
    return _NODE_ENV_PLACEHOLDER.sub(lambda match: f"[{match.group(1)}{env_name}{match.group(2)}]", pattern)


def has_local_placeholder(pattern: str) -> bool:
    return _LOCAL_PLACEHOLDER.search(pattern) is not None


def has_env_placeholder(pattern: str) -> bool:
    return _NODE_ENV_PLACEHOLDER.search(pattern) is not None


def path_exists(path: str) -> bool:
    """Return ``True`` when *path* exists; any ``OSError`` counts as absence."""

    try:
        return Path(path).exists()
    except OSError:
        return False


def resolve_path(directory: str | os.PathLike[str] | None, filename: str) -> str:
    """Resolve *filename* against *directory* (default: CWD) into a normalised absolute path."""

    base = Path(directory) if directory else Path.cwd()
    return os.path.abspath(base / filename)


def list_files(
    *,
    env_name: str | None = None,
    path: str | os.PathLike[str] | None = None,
    pattern: str | None = None,
    exists: ExistsCheck | None = None,
) -> list[str]:
    """Return existing cascade files ordered by ascending override priority.

    Why
    ----
    The order defaults → base → local → env-specific → env-specific-local is
    what gives later files precedence; it must never depend on which files
    happen to exist.

    What
    ----
    Composes one filename per applicable role, drops the ``local`` role for
    the ``"test"`` environment (``.env.test.local`` is still listed),
    resolves every candidate against *path*, and keeps the ones *exists*
    confirms.

    Parameters
    ----------
    env_name:
        Environment name substituted for ``node_env``; ``None`` disables the
        environment-specific roles.
    path:
        Working directory; defaults to :func:`pathlib.Path.cwd`.
    pattern:
        Naming convention; defaults to :data:`DEFAULT_PATTERN`.
    exists:
        Existence check, injectable for tests (defaults to :func:`path_exists`).

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> for name in ('.env', '.env.local', '.env.production'):
    ...     _ = (Path(tmp.name) / name).write_text('A=1', encoding='utf-8')
    >>> [Path(p).name for p in list_files(env_name='production', path=tmp.name)]
    ['.env', '.env.local', '.env.production']
    >>> [Path(p).name for p in list_files(env_name='test', path=tmp.name)]
    ['.env']
    >>> tmp.cleanup()
    """

    active_pattern = pattern or DEFAULT_PATTERN
    check = exists or path_exists
    with_local = has_local_placeholder(active_pattern)
    skip_local = env_name == TEST_ENV_NAME

    filenames: dict[str, str] = {}
    if active_pattern == DEFAULT_PATTERN:
        filenames["defaults"] = LEGACY_DEFAULTS_FILE
    filenames["base"] = compose_filename(active_pattern)
    if with_local:
        filenames["local"] = compose_filename(active_pattern, local=True)
    if env_name and has_env_placeholder(active_pattern):
        filenames["env-specific"] = compose_filename(active_pattern, env_name=env_name)
        if with_local:
            filenames["env-specific-local"] = compose_filename(active_pattern, local=True, env_name=env_name)

    found: list[str] = []
    for role in CASCADE_ROLES:
        filename = filenames.get(role)
        if not filename:
            continue
        candidate = resolve_path(path, filename)
        if skip_local and role == "local":
            if check(candidate):
                log_debug("local_file_skipped", **make_event(role, candidate, {"env_name": env_name}))
            continue
        if check(candidate):
            log_debug("cascade_file_listed", **make_event(role, candidate))
            found.append(candidate)
    return found


class DefaultFilenameResolver:
    """Injectable :class:`~lib_env_cascade.application.ports.FilenameResolver`."""

    def __init__(self, *, exists: ExistsCheck | None = None) -> None:
        self._exists = exists or path_exists

    def list_files(
        self,
        *,
        env_name: str | None = None,
        path: str | None = None,
        pattern: str | None = None,
    ) -> list[str]:
        return list_files(env_name=env_name, path=path, pattern=pattern, exists=self._exists)

    def exists(self, path: str) -> bool:
        return self._exists(path)
