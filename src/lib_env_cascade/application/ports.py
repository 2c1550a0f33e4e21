"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the composition
root can orchestrate behaviour without depending on concrete implementations.

Contents
--------
* :class:`EnvStore` – the mutable string table the cascade commits into.
* :class:`FilenameResolver` – yields the ordered dotenv cascade.
* :class:`FileParser` – turns dotenv files into ordered raw maps.

System Role
-----------
These protocols enforce Dependency Inversion. Each adapter implements one
protocol so :mod:`lib_env_cascade.core` can be tested against in-memory stores
and fake filesystems.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, runtime_checkable


@runtime_checkable
class EnvStore(Protocol):
    """Key/value table holding the process environment (or an isolated copy).

    Why
    ----
    Committing into ``os.environ`` directly makes the orchestrator impossible to
    test without process-wide side effects; an injected store keeps independent
    cascades isolated from each other.
    """

    def get(self, key: str) -> str | None:
        """Return the value stored under *key* or ``None``."""

    def set(self, key: str, value: str) -> None:
        """Assign *value* to *key*."""

    def has(self, key: str) -> bool:
        """Return ``True`` when *key* is present."""

    def delete(self, key: str) -> None:
        """Remove *key*; missing keys are ignored."""

    def snapshot(self) -> dict[str, str]:
        """Return a detached copy of the current contents."""


@runtime_checkable
class FilenameResolver(Protocol):
    """List existing cascade files in ascending override priority."""

    def list_files(
        self,
        *,
        env_name: str | None = None,
        path: str | None = None,
        pattern: str | None = None,
    ) -> list[str]:
        """Return absolute paths of existing cascade files."""

    def exists(self, path: str) -> bool:
        """Return ``True`` when *path* exists; failures count as absence."""


@runtime_checkable
class FileParser(Protocol):
    """Parse dotenv files into ordered raw maps."""

    def parse_file(self, path: str, *, encoding: str = "utf-8") -> Mapping[str, str]:
        """Parse one file or raise ``FileReadError``."""

    def parse_files(self, paths: Iterable[str], *, encoding: str = "utf-8") -> dict[str, str]:
        """Parse and overwrite-merge *paths* in order."""
