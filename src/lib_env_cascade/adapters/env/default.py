"""Environment adapters.

Purpose
-------
Provide the :class:`lib_env_cascade.application.ports.EnvStore` implementations
the cascade commits into, and translate ``APP_ENV`` / ``ENV_CASCADE_*``
variables into keyword options for :func:`lib_env_cascade.core.config`.

Key behaviours
--------------
* :class:`ProcessEnvStore` wraps :data:`os.environ` (or any mutable mapping).
* :class:`MemoryEnvStore` keeps an isolated table for tests and for loading
  several independent cascades in one process.
* :func:`env_options` maps environment variables to option names, coercing the
  boolean switches.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping
from typing import Final

from ...observability import log_debug

#: Variable holding the active environment name (``development``, ``test`` ...).
ENV_NAME_VARIABLE: Final[str] = "APP_ENV"

#: Environment variable -> :func:`lib_env_cascade.core.config` keyword.
ENV_OPTIONS: Final[dict[str, str]] = {
    ENV_NAME_VARIABLE: "env_name",
    "DEFAULT_APP_ENV": "default_env_name",
    "ENV_CASCADE_PATH": "path",
    "ENV_CASCADE_PATTERN": "pattern",
    "ENV_CASCADE_ENCODING": "encoding",
    "ENV_CASCADE_PURGE_DOTENV": "purge_dotenv",
    "ENV_CASCADE_SILENT": "silent",
}

_FLAG_OPTIONS: Final[frozenset[str]] = frozenset({"purge_dotenv", "silent"})
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on", "enabled"})


def env_options(environ: Mapping[str, str] | None = None) -> dict[str, object]:
    """Return the cascade options defined by environment variables.

    Why
    ----
    Deployments configure the loader without code changes (``APP_ENV=prod``,
    ``ENV_CASCADE_PATH=/srv/app``).

    Examples
    --------
    >>> env_options({"APP_ENV": "production", "ENV_CASCADE_SILENT": "yes", "OTHER": "x"})
    {'env_name': 'production', 'silent': True}
    """

    source = os.environ if environ is None else environ
    options: dict[str, object] = {}
    for variable, option in ENV_OPTIONS.items():
        if variable not in source:
            continue
        value = source[variable]
        options[option] = parse_flag(value) if option in _FLAG_OPTIONS else value
    return options


def parse_flag(value: str | bool | None) -> bool:
    """Interpret switch values such as ``yes``/``on``/``1``.

    Examples
    --------
    >>> parse_flag("Yes"), parse_flag("0"), parse_flag(None)
    (True, False, False)
    """

    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


class ProcessEnvStore:
    """Commit target backed by :data:`os.environ`.

    Parameters
    ----------
    environ:
        Mutable mapping to operate on; defaults to :data:`os.environ`. Passing a
        plain ``dict`` lets tests observe writes without touching the process.
    """

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def get(self, key: str) -> str | None:
        return self._environ.get(key)

    def set(self, key: str, value: str) -> None:
        self._environ[key] = value
        log_debug("env_key_assigned", role="commit", path=None, key=key)

    def has(self, key: str) -> bool:
        return key in self._environ

    def delete(self, key: str) -> None:
        self._environ.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._environ)


class MemoryEnvStore(ProcessEnvStore):
    """Isolated store that starts from a copy of *initial*.

    Examples
    --------
    >>> store = MemoryEnvStore({"HOME": "/root"})
    >>> store.set("PORT", "8080")
    >>> store.snapshot()
    {'HOME': '/root', 'PORT': '8080'}
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        super().__init__(dict(initial or {}))
