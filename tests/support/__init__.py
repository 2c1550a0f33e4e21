"""Shared fixtures for dotenv cascade tests.

``create_dotenv_sandbox`` builds a throwaway project directory and an isolated
environment store so tests can describe a cascade declaratively: which files
exist, what they contain, and which variables the "shell" already defines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from lib_env_cascade.adapters.env.default import MemoryEnvStore


@dataclass
class DotenvSandbox:
    """Project directory plus the store the cascade commits into."""

    root: Path
    store: MemoryEnvStore = field(default_factory=MemoryEnvStore)

    def write(self, name: str, content: str, *, encoding: str = "utf-8") -> Path:
        """Create (or replace) ``root/name`` and return its path."""

        target = self.root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding=encoding)
        return target

    def path_of(self, name: str) -> str:
        return str(self.root / name)

    @property
    def environ(self) -> dict[str, str]:
        return self.store.snapshot()


def create_dotenv_sandbox(
    tmp_path: Path,
    *,
    environ: Mapping[str, str] | None = None,
    files: Mapping[str, str] | None = None,
) -> DotenvSandbox:
    """Return a sandbox rooted at ``tmp_path/project`` with optional initial files."""

    root = tmp_path / "project"
    root.mkdir(parents=True, exist_ok=True)
    sandbox = DotenvSandbox(root=root, store=MemoryEnvStore(environ))
    for name, content in (files or {}).items():
        sandbox.write(name, content)
    return sandbox


__all__ = ["DotenvSandbox", "create_dotenv_sandbox"]
