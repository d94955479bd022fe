# src/watts_tester/core/config.py
"""
Configuration schema and loading for the plugin tester.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Two documents are configured here:
- TesterSettings: how the harness itself behaves (timeouts, env passing)
- SuiteSettings: a `tests` run description (plugin + ordered cases)
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from watts_tester.contracts import UserInputError, decode_json

_ENV_VAR_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class InvocationSettings(BaseModel):
    """How the plugin executable is run."""

    model_config = {"frozen": True}

    timeout_seconds: float | None = Field(
        default=30.0,
        ge=0,
        description="Wall-clock limit per invocation; 0 or null disables it",
    )
    pass_by_env: bool = Field(
        default=False,
        description="Pass the encoded input via an environment variable instead of argv",
    )
    env_var: str = Field(
        default="WATTS_PARAMETER",
        pattern=_ENV_VAR_PATTERN,
        description="Environment variable used when pass_by_env is set",
    )

    @property
    def effective_timeout(self) -> float | None:
        """Timeout to hand to the invoker, None when unbounded."""
        if not self.timeout_seconds:
            return None
        return self.timeout_seconds


class TesterSettings(BaseModel):
    """Top-level harness configuration.

    CLI flags override whatever is loaded here.
    """

    model_config = {"frozen": True}

    invocation: InvocationSettings = Field(
        default_factory=InvocationSettings,
        description="Plugin execution configuration",
    )
    machine_readable: bool = Field(
        default=False,
        description="Emit every report as a JSON document",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Minimum level written to stderr",
    )


class CaseSettings(BaseModel):
    """One case of a test suite.

    `input` complements the default plugin input; `expected_output` is
    checked as a subset of the plugin output.
    """

    model_config = {"frozen": True}

    name: str | None = Field(default=None, description="Label used in reports")
    input: dict[str, Any] = Field(
        default_factory=dict,
        description="Plugin input override for this case",
    )
    expected_output: dict[str, Any] = Field(
        default_factory=dict,
        description="Keys the plugin output must contain with these exact values",
    )


class SuiteSettings(BaseModel):
    """A suite document for the `tests` command.

    Example JSON:
        {
          "exec_file": "./plugins/info.py",
          "tests": [
            {"input": {"action": "parameter"},
             "expected_output": {"result": "ok"}}
          ]
        }
    """

    model_config = {"frozen": True}

    exec_file: str = Field(description="Plugin executable, relative to the suite file")
    tests: list[CaseSettings] = Field(
        default_factory=list,
        description="Ordered cases to run",
    )

    @field_validator("exec_file")
    @classmethod
    def validate_exec_file_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("exec_file must not be empty")
        return v

    def resolve_exec_file(self, base_dir: Path | None) -> str:
        """Resolve a relative exec_file against the suite's directory."""
        path = Path(self.exec_file)
        if path.is_absolute() or base_dir is None:
            return str(path)
        return str(base_dir / path)


def load_settings(config_path: Path | None = None) -> TesterSettings:
    """Load harness settings with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (WATTS_TESTER_*) - highest priority
    2. Config file (if given)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: WATTS_TESTER_INVOCATION__TIMEOUT_SECONDS
    for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If an explicit config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="WATTS_TESTER",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {
        k.lower(): _lower_keys(v)
        for k, v in dynaconf_settings.as_dict().items()
        if k not in internal_keys
    }
    return TesterSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_suite(suite_path: Path) -> SuiteSettings:
    """Load a JSON suite document.

    Raises:
        UserInputError: If the file is missing or not valid JSON
        ValidationError: If the document does not describe a suite
    """
    try:
        text = suite_path.read_text(encoding="utf-8")
    except OSError as e:
        raise UserInputError(f"Cannot read test config {suite_path}: {e}") from e

    try:
        raw = decode_json(text)
    except ValueError as e:
        raise UserInputError(f"Test config {suite_path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise UserInputError(f"Test config {suite_path} must be a JSON object")
    return SuiteSettings.model_validate(raw)
