"""CLI adapter for ``lib_env_cascade`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the dotenv cascade via a command line interface so operators can see
which files apply, what they parse to, and run programs inside the resolved
environment without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling and log verbosity.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_list_files` – prints the effective cascade as JSON.
* :func:`cli_parse` – prints the raw merged map of the given files.
* :func:`cli_config` – prints the resolved cascade as JSON.
* :func:`cli_run` – runs a command inside the resolved environment.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer: it calls :mod:`lib_env_cascade.core` and never reaches into
adapter internals except to build an isolated copy of the process environment.
Cascade options default to the same ``APP_ENV`` / ``ENV_CASCADE_*`` variables
that :func:`lib_env_cascade.core.config_from_env` reads.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.env.default import ENV_OPTIONS, MemoryEnvStore
from .core import DEFAULT_PATTERN, config, effective_env_name, list_files, parse
from .domain.result import LoadResult
from .observability import get_logger

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

_ENVVAR_FOR: Final[dict[str, str]] = {option: variable for variable, option in ENV_OPTIONS.items()}

_LOG_FORMAT: Final[str] = "[lib_env_cascade] %(levelname)s %(message)s %(context)s"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when metadata is missing."""

    try:
        return metadata.version("lib_env_cascade")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _configure_logging(ctx: click.Context, debug: bool) -> None:
    """Route package logs to stderr for the lifetime of *ctx*.

    Warnings are always shown; cascade debug events only with ``--debug``. The
    handler and the previous logger level are restored when the context closes.
    """

    logger = get_logger()
    previous_level = logger.level
    level = logging.DEBUG if debug else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)

    def restore() -> None:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)

    ctx.call_on_close(restore)


def _cascade_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every cascade-driven command."""

    decorators = [
        click.option(
            "--env-name",
            envvar=_ENVVAR_FOR["env_name"],
            default=None,
            help="Environment name selecting .env.<name> files",
        ),
        click.option(
            "--default-env-name",
            envvar=_ENVVAR_FOR["default_env_name"],
            default=None,
            help="Environment name used when none is set",
        ),
        click.option(
            "--path",
            "path",
            envvar=_ENVVAR_FOR["path"],
            type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
            default=None,
            help="Directory holding the .env* files (defaults to CWD)",
        ),
        click.option(
            "--pattern",
            envvar=_ENVVAR_FOR["pattern"],
            default=DEFAULT_PATTERN,
            show_default=True,
            help="Naming convention of the .env* files",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _load_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options that only matter when files are actually loaded."""

    decorators = [
        click.option(
            "--file",
            "files",
            multiple=True,
            help="Explicit file to load instead of the pattern cascade (repeatable)",
        ),
        click.option(
            "--encoding",
            envvar=_ENVVAR_FOR["encoding"],
            default="utf-8",
            show_default=True,
            help="Encoding of the .env* files",
        ),
        click.option(
            "--purge-dotenv/--no-purge-dotenv",
            envvar=_ENVVAR_FOR["purge_dotenv"],
            default=False,
            help="Unload a previously loaded .env before applying the cascade",
        ),
        click.option(
            "--silent/--no-silent",
            envvar=_ENVVAR_FOR["silent"],
            default=False,
            help="Suppress warnings about loading failures",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


@click.group(
    help="Layered .env file loader",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_env_cascade",
    message="lib_env_cascade version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option("--debug/--no-debug", default=False, help="Log every cascade step to stderr")
@click.pass_context
def cli(ctx: click.Context, traceback: bool, debug: bool) -> None:
    """Root command configuring traceback handling and log verbosity.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``, and attaches a
        stderr handler to the package logger.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    _configure_logging(ctx, debug)


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_env_cascade")
    except metadata.PackageNotFoundError:
        click.echo("lib_env_cascade (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_env_cascade')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("list-files", context_settings=CLICK_CONTEXT_SETTINGS)
@_cascade_options
def cli_list_files(
    env_name: Optional[str],
    default_env_name: Optional[str],
    path: Optional[Path],
    pattern: str,
) -> None:
    """Print the existing cascade files in ascending priority as JSON.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> _ = (Path(tmp.name) / '.env').write_text('A=1', encoding='utf-8')
    >>> result = CliRunner().invoke(cli, ["list-files", "--path", tmp.name, "--env-name", "dev"])
    >>> [Path(p).name for p in json.loads(result.output)]
    ['.env']
    >>> tmp.cleanup()
    """

    selected = effective_env_name(env_name=env_name, default_env_name=default_env_name)
    found = list_files(env_name=selected, path=path, pattern=pattern)
    click.echo(json.dumps(found, indent=2))


@cli.command("parse", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("files", nargs=-1, required=True)
@click.option("--encoding", default="utf-8", show_default=True, help="Encoding of the files")
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_parse(files: Sequence[str], encoding: str, indent: Optional[int]) -> None:
    """Print the raw (uninterpolated) merged map of FILES as JSON."""

    click.echo(json.dumps(parse(list(files), encoding=encoding), indent=indent))


@cli.command("config", context_settings=CLICK_CONTEXT_SETTINGS)
@_cascade_options
@_load_options
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_config(
    env_name: Optional[str],
    default_env_name: Optional[str],
    path: Optional[Path],
    pattern: str,
    files: Sequence[str],
    encoding: str,
    purge_dotenv: bool,
    silent: bool,
    indent: Optional[int],
) -> None:
    """Resolve the cascade against a copy of the environment and print it as JSON.

    The current process environment is not modified.
    """

    result, _ = _run_cascade(
        env_name=env_name,
        default_env_name=default_env_name,
        path=path,
        pattern=pattern,
        files=files,
        encoding=encoding,
        purge_dotenv=purge_dotenv,
        silent=silent,
    )
    parsed = result.raise_for_error()
    click.echo(json.dumps(dict(parsed), indent=indent))


@cli.command(
    "run",
    context_settings={**CLICK_CONTEXT_SETTINGS, "ignore_unknown_options": True, "allow_interspersed_args": False},
)
@_cascade_options
@_load_options
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def cli_run(
    ctx: click.Context,
    env_name: Optional[str],
    default_env_name: Optional[str],
    path: Optional[Path],
    pattern: str,
    files: Sequence[str],
    encoding: str,
    purge_dotenv: bool,
    silent: bool,
    command: Sequence[str],
) -> None:
    """Run COMMAND with the cascade applied to a copy of the environment.

    The exit code of COMMAND becomes the exit code of this command.
    """

    result, store = _run_cascade(
        env_name=env_name,
        default_env_name=default_env_name,
        path=path,
        pattern=pattern,
        files=files,
        encoding=encoding,
        purge_dotenv=purge_dotenv,
        silent=silent,
    )
    result.raise_for_error()
    completed = subprocess.run(list(command), env=store.snapshot(), check=False)
    ctx.exit(completed.returncode)


def _run_cascade(
    *,
    env_name: Optional[str],
    default_env_name: Optional[str],
    path: Optional[Path],
    pattern: str,
    files: Sequence[str],
    encoding: str,
    purge_dotenv: bool,
    silent: bool,
) -> tuple[LoadResult, MemoryEnvStore]:
    """Run :func:`config` into an isolated copy of ``os.environ``."""

    store = MemoryEnvStore(os.environ)
    result = config(
        env_name=env_name,
        default_env_name=default_env_name,
        path=path,
        pattern=pattern,
        files=list(files) if files else None,
        encoding=encoding,
        purge_dotenv=purge_dotenv,
        silent=silent,
        store=store,
    )
    return result, store


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_env_cascade",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
