"""Public package surface for the dotenv cascade loader.

``config()`` is the usual entry point: it lists ``.env``, ``.env.local``,
``.env.<env>`` and ``.env.<env>.local`` in ascending priority, parses and merges
them, resolves ``${VAR}`` references and typed values, and assigns every key
the environment does not already define.
"""

from __future__ import annotations

from .adapters.env.default import MemoryEnvStore, ProcessEnvStore
from .application.merge import MergeConfig, clone, make_merger
from .application.resolve import coerce, interpolate, resolve_value
from .core import (
    DEFAULT_PATTERN,
    config,
    config_from_env,
    effective_env_name,
    list_files,
    load,
    parse,
    unload,
)
from .domain.errors import (
    EnvCascadeError,
    FileReadError,
    InterpolationCycleError,
    InvalidValueError,
    NoMatchingFilesError,
)
from .domain.result import LoadResult
from .observability import bind_trace_id, get_logger

__all__ = [
    "DEFAULT_PATTERN",
    "EnvCascadeError",
    "FileReadError",
    "InterpolationCycleError",
    "InvalidValueError",
    "LoadResult",
    "MemoryEnvStore",
    "MergeConfig",
    "NoMatchingFilesError",
    "ProcessEnvStore",
    "bind_trace_id",
    "clone",
    "coerce",
    "config",
    "config_from_env",
    "effective_env_name",
    "get_logger",
    "interpolate",
    "list_files",
    "load",
    "make_merger",
    "parse",
    "resolve_value",
    "unload",
]
