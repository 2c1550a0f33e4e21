"""Environment store and option adapter tests."""

from __future__ import annotations

import logging
import os

import pytest

from lib_env_cascade.adapters.env.default import (
    ENV_NAME_VARIABLE,
    MemoryEnvStore,
    ProcessEnvStore,
    env_options,
    parse_flag,
)


def test_process_store_writes_through_to_os_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LIB_ENV_CASCADE_PROBE", raising=False)
    store = ProcessEnvStore()
    store.set("LIB_ENV_CASCADE_PROBE", "on")
    try:
        assert os.environ["LIB_ENV_CASCADE_PROBE"] == "on"
        assert store.has("LIB_ENV_CASCADE_PROBE")
    finally:
        store.delete("LIB_ENV_CASCADE_PROBE")
    assert "LIB_ENV_CASCADE_PROBE" not in os.environ


def test_process_store_accepts_custom_mapping() -> None:
    backing: dict[str, str] = {}
    store = ProcessEnvStore(backing)
    store.set("A", "1")
    assert backing == {"A": "1"}


def test_memory_store_is_isolated_from_its_seed() -> None:
    seed = {"HOME": "/root"}
    store = MemoryEnvStore(seed)
    store.set("PORT", "80")
    store.delete("HOME")
    assert seed == {"HOME": "/root"}
    assert store.snapshot() == {"PORT": "80"}
    assert store.get("HOME") is None


def test_delete_missing_key_is_ignored() -> None:
    store = MemoryEnvStore()
    store.delete("NOPE")
    assert store.snapshot() == {}


def test_snapshot_is_detached() -> None:
    store = MemoryEnvStore({"A": "1"})
    snapshot = store.snapshot()
    snapshot["B"] = "2"
    assert not store.has("B")


def test_set_emits_debug_event(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_env_cascade")
    MemoryEnvStore().set("A", "1")
    record = next(record for record in caplog.records if record.getMessage() == "env_key_assigned")
    assert record.context["key"] == "A"
    assert "1" not in record.context.values()


def test_env_options_maps_known_variables() -> None:
    environ = {
        ENV_NAME_VARIABLE: "staging",
        "DEFAULT_APP_ENV": "development",
        "ENV_CASCADE_PATH": "/srv/app",
        "ENV_CASCADE_PATTERN": "config/[local/].env",
        "ENV_CASCADE_ENCODING": "latin-1",
        "ENV_CASCADE_PURGE_DOTENV": "true",
        "ENV_CASCADE_SILENT": "off",
        "UNRELATED": "x",
    }
    assert env_options(environ) == {
        "env_name": "staging",
        "default_env_name": "development",
        "path": "/srv/app",
        "pattern": "config/[local/].env",
        "encoding": "latin-1",
        "purge_dotenv": True,
        "silent": False,
    }


def test_env_options_empty_when_nothing_set() -> None:
    assert env_options({}) == {}


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("TRUE", True), (" yes ", True), ("on", True), ("enabled", True), ("0", False), ("", False)],
)
def test_parse_flag(value: str, expected: bool) -> None:
    assert parse_flag(value) is expected
