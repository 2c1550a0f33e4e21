"""Outcome value object for cascade loads.

Purpose
-------
Carry the result of :func:`lib_env_cascade.core.load` and
:func:`lib_env_cascade.core.config` as exactly one of ``parsed`` or ``error``.

System Role
-----------
The composition root never raises for expected failures (unreadable file, no
matching files, cyclic references). It records the exception here instead so
callers can decide whether to abort or continue with defaults.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, cast


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Immutable ``parsed`` xor ``error`` pair.

    Examples
    --------
    >>> ok = LoadResult(parsed={"PORT": 8080})
    >>> ok.ok, ok["PORT"]
    (True, 8080)
    >>> failed = LoadResult(error=RuntimeError("boom"))
    >>> failed.ok, failed.parsed
    (False, None)
    >>> LoadResult()
    Traceback (most recent call last):
    ...
    ValueError: LoadResult requires exactly one of parsed or error
    """

    parsed: Mapping[str, Any] | None = None
    error: BaseException | None = None

    def __post_init__(self) -> None:
        if (self.parsed is None) == (self.error is None):
            raise ValueError("LoadResult requires exactly one of parsed or error")
        if self.parsed is not None:
            object.__setattr__(self, "parsed", MappingProxyType(dict(self.parsed)))

    @property
    def ok(self) -> bool:
        """Return ``True`` when the load succeeded."""

        return self.error is None

    def __getitem__(self, key: str) -> Any:
        if self.parsed is None:
            raise KeyError(key)
        return self.parsed[key]

    def raise_for_error(self) -> Mapping[str, Any]:
        """Re-raise the captured error or return the parsed mapping.

        Why
        ----
        Scripts that prefer exceptions over result inspection can chain
        ``config(...).raise_for_error()``.
        """

        if self.error is not None:
            raise self.error
        return cast(Mapping[str, Any], self.parsed)
