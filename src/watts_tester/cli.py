# src/watts_tester/cli.py
"""watts-plugin-tester Command Line Interface.

Entry point for the watts-plugin-tester tool.

Exit codes:
    0  success
    1  plugin contract violation (bad output, failed expectations or suite)
    2  plugin execution failure (spawn failure, non-zero exit, timeout)
    3  internal error
    4  user input error
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from watts_tester import __version__
from watts_tester.contracts import (
    ExitCode,
    JsonObject,
    UserInputError,
    WattsTesterError,
)
from watts_tester.core.config import (
    InvocationSettings,
    TesterSettings,
    load_settings,
    load_suite,
)
from watts_tester.core.identity import stamp_identity
from watts_tester.core.logging import configure_logging, get_logger
from watts_tester.core.merge import (
    InputSources,
    build_plugin_input,
    default_plugin_input,
    parse_override,
)
from watts_tester.engine import PluginInvoker, TestRunner
from watts_tester.report import render

app = typer.Typer(
    name="watts-plugin-tester",
    help="Test tool for WaTTS plugins.",
    no_args_is_help=True,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CliOptions:
    """Global options resolved once per invocation and carried on the context."""

    action: str | None
    plugin: str | None
    sources: InputSources
    settings: TesterSettings

    @property
    def machine(self) -> bool:
        return self.settings.machine_readable


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"watts-plugin-tester version {__version__}")
        raise typer.Exit()


def _echo_validation_errors(e: ValidationError) -> None:
    typer.echo("Configuration errors:", err=True)
    for error in e.errors():
        loc = ".".join(str(x) for x in error["loc"]) or "<root>"
        typer.echo(f"  - {loc}: {error['msg']}", err=True)


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Translate harness errors into messages on stderr and exit codes."""
    try:
        yield
    except ValidationError as e:
        _echo_validation_errors(e)
        raise typer.Exit(int(ExitCode.USER_ERROR)) from None
    except WattsTesterError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(int(e.exit_code)) from None


@app.callback()
def main(
    ctx: typer.Context,
    plugin_action: str | None = typer.Option(
        None,
        "--plugin-action",
        "-a",
        help="The plugin action to run the plugin with. Defaults to 'parameter'.",
    ),
    plugin: str | None = typer.Option(
        None,
        "--plugin",
        "-p",
        help="Path to the plugin executable.",
    ),
    input_file: Path | None = typer.Option(
        None,
        "--input-file",
        "-j",
        help="Complement the plugin input with a JSON file.",
    ),
    input_string: str | None = typer.Option(
        None,
        "--input-string",
        help="Complement the plugin input with a JSON object (provided as a string).",
    ),
    input_config: Path | None = typer.Option(
        None,
        "--input-config",
        "-c",
        help="Complement the plugin input with the config parameters from a WaTTS config.",
    ),
    input_config_identifier: str | None = typer.Option(
        None,
        "--input-config-identifier",
        "-i",
        help="Service ID for the WaTTS config.",
    ),
    machine: bool = typer.Option(
        False,
        "--machine",
        "-m",
        help="Be machine readable (all output will be JSON).",
    ),
    env: bool = typer.Option(
        False,
        "--env",
        "-e",
        help="Pass the plugin input in an environment variable instead of an argument.",
    ),
    env_var: str | None = typer.Option(
        None,
        "--env-var",
        help="Environment variable used to pass the plugin input [default: WATTS_PARAMETER].",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the plugin before killing it; 0 waits forever [default: 30].",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Harness settings file (WATTS_TESTER_* environment variables override it).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every stage to stderr.",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Test tool for WaTTS plugins."""
    try:
        loaded = load_settings(settings)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(int(ExitCode.USER_ERROR)) from None
    except ValidationError as e:
        _echo_validation_errors(e)
        raise typer.Exit(int(ExitCode.USER_ERROR)) from None

    invocation_updates: dict[str, Any] = {}
    if env:
        invocation_updates["pass_by_env"] = True
    if env_var is not None:
        invocation_updates["env_var"] = env_var
    if timeout is not None:
        invocation_updates["timeout_seconds"] = timeout

    try:
        invocation = InvocationSettings.model_validate(
            {**loaded.invocation.model_dump(), **invocation_updates}
        )
        tester_settings = TesterSettings(
            invocation=invocation,
            machine_readable=machine or loaded.machine_readable,
            log_level="debug" if verbose else loaded.log_level,
        )
        sources = InputSources(
            input_string=input_string,
            input_file=input_file,
            config_file=input_config,
            config_id=input_config_identifier,
        )
    except ValidationError as e:
        _echo_validation_errors(e)
        raise typer.Exit(int(ExitCode.USER_ERROR)) from None

    configure_logging(tester_settings.log_level, json_output=tester_settings.machine_readable)

    ctx.obj = CliOptions(
        action=plugin_action,
        plugin=plugin,
        sources=sources,
        settings=tester_settings,
    )


def _options(ctx: typer.Context) -> CliOptions:
    options = ctx.obj
    assert isinstance(options, CliOptions)  # Set by main()
    return options


def _require_plugin(options: CliOptions) -> str:
    if not options.plugin:
        raise UserInputError("No plugin given (use --plugin)")
    if not Path(options.plugin).is_file():
        raise UserInputError(f"Plugin not found: {options.plugin}")
    return options.plugin


def _runner(options: CliOptions) -> TestRunner:
    invocation = options.settings.invocation
    return TestRunner(
        PluginInvoker(
            timeout_seconds=invocation.effective_timeout,
            pass_by_env=invocation.pass_by_env,
            env_var=invocation.env_var,
        )
    )


def _emit(document: JsonObject, *, machine: bool) -> None:
    typer.echo(render(document, machine=machine), nl=False)


@app.command()
def check(ctx: typer.Context) -> None:
    """Check a plugin against the inbuilt typed schema."""
    options = _options(ctx)
    with _exit_on_error():
        plugin = _require_plugin(options)
        plugin_input = build_plugin_input(options.sources, action=options.action)
        result = _runner(options).check(plugin, plugin_input)

    _emit(result.to_report(), machine=options.machine)
    if not result.passed:
        raise typer.Exit(int(ExitCode.for_status(result.status)))


@app.command()
def test(
    ctx: typer.Context,
    expected_output_file: Path | None = typer.Option(
        None,
        "--expected-output-file",
        help="Expected output as a JSON file.",
    ),
    expected_output_string: str | None = typer.Option(
        None,
        "--expected-output-string",
        help="Expected output as a JSON string.",
    ),
) -> None:
    """Test a plugin against the inbuilt typed schema and expected output values."""
    options = _options(ctx)
    with _exit_on_error():
        plugin = _require_plugin(options)
        expected = _expected_output(expected_output_file, expected_output_string)
        plugin_input = build_plugin_input(options.sources, action=options.action)
        result = _runner(options).test(plugin, plugin_input, expected)

    _emit(result.to_report(), machine=options.machine)
    if not result.passed:
        raise typer.Exit(int(ExitCode.for_status(result.status)))


def _expected_output(file: Path | None, text: str | None) -> JsonObject:
    if file is not None:
        try:
            content = file.read_text(encoding="utf-8")
        except OSError as e:
            raise UserInputError(f"Cannot read expected output file {file}: {e}") from e
        return parse_override(content, str(file))
    if text is not None:
        return parse_override(text, "expected output string")
    raise UserInputError("No expected output provided")


@app.command()
def tests(
    ctx: typer.Context,
    config: Path = typer.Argument(..., help="Config file for the tests to run."),
) -> None:
    """Test a plugin using a test config."""
    options = _options(ctx)
    with _exit_on_error():
        suite = load_suite(config)
        result = _runner(options).run_suite(suite, base_dir=config.parent)

    _emit(result.to_report(), machine=options.machine)
    if not result.passed:
        raise typer.Exit(int(ExitCode.PLUGIN_ERROR))


@app.command()
def default(ctx: typer.Context) -> None:
    """Print the default plugin input as JSON."""
    _options(ctx)
    with _exit_on_error():
        document = stamp_identity(default_plugin_input())
    _emit(document, machine=True)


@app.command()
def specific(ctx: typer.Context) -> None:
    """Print the plugin input (including the user override) as JSON."""
    options = _options(ctx)
    with _exit_on_error():
        document = build_plugin_input(options.sources, action=options.action)
    _emit(document, machine=True)


@app.command()
def generate(ctx: typer.Context) -> None:
    """Generate a fitting JSON input file for the given plugin."""
    options = _options(ctx)
    with _exit_on_error():
        plugin = _require_plugin(options)
        plugin_input = build_plugin_input(options.sources, action=options.action)
        document = _runner(options).generate(plugin, plugin_input)
    logger.info("Generated plugin input", plugin=plugin, conf_params=len(document["conf_params"]))
    _emit(document, machine=True)


if __name__ == "__main__":
    app()
