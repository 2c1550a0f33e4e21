"""End-to-end CLI coverage for the commands exposed by lib_env_cascade.

These tests drive the Click commands through ``CliRunner`` with real dotenv
files, checking the JSON payloads, the environment-variable defaults, and the
exit codes of failing and delegated runs.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from click.testing import CliRunner

import lib_cli_exit_tools

from lib_env_cascade import cli
from lib_env_cascade.domain.errors import FileReadError, NoMatchingFilesError
from tests.support import create_dotenv_sandbox


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def test_cli_list_files_outputs_cascade(tmp_path: Path) -> None:
    files = {".env": "", ".env.local": "", ".env.prod": "", ".env.prod.local": ""}
    sandbox = create_dotenv_sandbox(tmp_path, files=files)
    result = _runner().invoke(cli.cli, ["list-files", "--path", str(sandbox.root), "--env-name", "prod"])
    assert result.exit_code == 0
    assert [Path(path).name for path in json.loads(result.output)] == list(files)


def test_cli_list_files_reads_app_env(tmp_path: Path) -> None:
    files = {".env": "", ".env.local": "", ".env.test": ""}
    sandbox = create_dotenv_sandbox(tmp_path, files=files)
    result = _runner().invoke(
        cli.cli,
        ["list-files"],
        env={"APP_ENV": "test", "ENV_CASCADE_PATH": str(sandbox.root)},
    )
    assert result.exit_code == 0
    assert [Path(path).name for path in json.loads(result.output)] == [".env", ".env.test"]


def test_cli_parse_prints_raw_map(tmp_path: Path) -> None:
    sandbox = create_dotenv_sandbox(tmp_path, files={"a.env": "PORT=80\n", "b.env": "URL=http://${HOST}:${PORT}\n"})
    result = _runner().invoke(cli.cli, ["parse", sandbox.path_of("a.env"), sandbox.path_of("b.env"), "--indent", "2"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"PORT": "80", "URL": "http://${HOST}:${PORT}"}


def test_cli_parse_missing_file_fails(tmp_path: Path) -> None:
    result = _runner().invoke(cli.cli, ["parse", str(tmp_path / "absent.env")])
    assert result.exit_code != 0
    assert isinstance(result.exception, FileReadError)


def test_cli_config_prints_resolved_values_without_touching_process(tmp_path: Path) -> None:
    files = {
        ".env": "LIB_ENV_CASCADE_CLI_PORT=8080\nDEBUG_FLAG=true\n",
        ".env.local": "URL=http://x:${LIB_ENV_CASCADE_CLI_PORT}\n",
    }
    sandbox = create_dotenv_sandbox(tmp_path, files=files)
    result = _runner().invoke(cli.cli, ["config", "--path", str(sandbox.root)])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload == {"LIB_ENV_CASCADE_CLI_PORT": 8080, "DEBUG_FLAG": True, "URL": "http://x:8080"}
    assert "LIB_ENV_CASCADE_CLI_PORT" not in os.environ


def test_cli_config_explicit_files(tmp_path: Path) -> None:
    sandbox = create_dotenv_sandbox(tmp_path, files={".env": "A=base\n", "ci.env": "A=ci\n"})
    result = _runner().invoke(cli.cli, ["config", "--path", str(sandbox.root), "--file", "ci.env"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"A": "ci"}


def test_cli_config_without_files_fails(tmp_path: Path) -> None:
    sandbox = create_dotenv_sandbox(tmp_path)
    result = _runner().invoke(cli.cli, ["config", "--path", str(sandbox.root), "--silent"])
    assert result.exit_code != 0
    assert isinstance(result.exception, NoMatchingFilesError)


def test_cli_run_passes_environment_and_exit_code(tmp_path: Path) -> None:
    sandbox = create_dotenv_sandbox(tmp_path, files={".env": "LIB_ENV_CASCADE_CLI_CODE=3\n"})
    script = "import os, sys; sys.exit(int(os.environ['LIB_ENV_CASCADE_CLI_CODE']))"
    result = _runner().invoke(cli.cli, ["run", "--path", str(sandbox.root), sys.executable, "-c", script])
    assert result.exit_code == 3
    assert "LIB_ENV_CASCADE_CLI_CODE" not in os.environ


def test_cli_debug_logs_to_stderr(tmp_path: Path) -> None:
    """`--debug` attaches a stderr handler for one invocation only."""

    sandbox = create_dotenv_sandbox(tmp_path, files={".env": "A=1\n"})
    logger = cli.get_logger()
    handlers_before = list(logger.handlers)
    level_before = logger.level

    result = _runner().invoke(cli.cli, ["--debug", "list-files", "--path", str(sandbox.root)])

    assert result.exit_code == 0
    assert "cascade_file_listed" in result.output
    assert logger.handlers == handlers_before
    assert logger.level == level_before


def test_cli_info_handles_missing_metadata(monkeypatch) -> None:
    """`cli info` must degrade gracefully when package metadata is unavailable."""

    def _raise_pkg_not_found(*_args, **_kwargs):
        raise cli.metadata.PackageNotFoundError()

    monkeypatch.setattr(cli.metadata, "metadata", _raise_pkg_not_found)
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_cli_main_restores_traceback_flag(tmp_path: Path) -> None:
    """`cli main` should restore lib_cli_exit_tools tracebacks after execution."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    sandbox = create_dotenv_sandbox(tmp_path, files={".env": "A=1\n"})
    exit_code = cli.main(["--traceback", "list-files", "--path", str(sandbox.root)], restore_traceback=True)
    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback
