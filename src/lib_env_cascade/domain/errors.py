"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by adapters, the resolver, and the
composition root. The hierarchy lives in the domain layer so outer layers may
depend on it without creating import cycles.

Contents
--------
* :class:`EnvCascadeError` – umbrella base class for every library failure.
* :class:`FileReadError` – a dotenv file could not be read or decoded.
* :class:`NoMatchingFilesError` – the computed cascade produced no files.
* :class:`InterpolationCycleError` – ``${VAR}`` references form a loop.
* :class:`InvalidValueError` – a resolved entry cannot be stored in the environment.

System Role
-----------
Adapters raise these exceptions; :func:`lib_env_cascade.core.load` and
:func:`lib_env_cascade.core.config` catch :class:`EnvCascadeError` and surface it
through :class:`lib_env_cascade.domain.result.LoadResult` instead of raising.
"""

from __future__ import annotations

from typing import Sequence


class EnvCascadeError(Exception):
    """Base type for all exceptions emitted by ``lib_env_cascade``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class FileReadError(EnvCascadeError):
    """Raised when a dotenv file cannot be read.

    Why
    ----
    Missing files, permission problems, and decoding failures all abort the
    cascade the same way; callers still need the offending path.

    Attributes
    ----------
    path:
        File that failed to load.
    reason:
        Human readable description of the underlying failure.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"unable to read {path!r}: {reason}")
        self.path = path
        self.reason = reason


class NoMatchingFilesError(EnvCascadeError):
    """Raised when the pattern-driven cascade yields no existing file.

    Examples
    --------
    >>> str(NoMatchingFilesError("/srv/app", ".env[.local]"))
    'no ".env*" files matching pattern ".env[.local]" in "/srv/app" dir'
    """

    def __init__(self, path: str, pattern: str) -> None:
        super().__init__(f'no ".env*" files matching pattern "{pattern}" in "{path}" dir')
        self.path = path
        self.pattern = pattern


class InterpolationCycleError(EnvCascadeError):
    """Raised when variable references loop back onto themselves.

    Examples
    --------
    >>> str(InterpolationCycleError(["A", "B", "A"]))
    'cyclic variable reference: A -> B -> A'
    """

    def __init__(self, chain: Sequence[str]) -> None:
        super().__init__("cyclic variable reference: " + " -> ".join(chain))
        self.chain = tuple(chain)


class InvalidValueError(EnvCascadeError):
    """Raised when a resolved key or value cannot be committed to the store.

    Why
    ----
    ``os.environ`` rejects embedded NUL characters; the whole commit is refused
    instead of leaving earlier keys assigned.

    Examples
    --------
    >>> str(InvalidValueError("TOKEN", "embedded null character"))
    "cannot store 'TOKEN': embedded null character"
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"cannot store {key!r}: {reason}")
        self.key = key
        self.reason = reason
