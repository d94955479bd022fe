# src/watts_tester/core/merge.py
"""Assembly of the canonical plugin input from precedence-ordered sources.

Precedence, highest to lowest:
1. Inline JSON string (--input-string)
2. JSON file (--input-file)
3. conf_params extracted from a WaTTS config file (--input-config)
4. The compiled-in default input

Merging is a top-level key-wise union: when a key appears in several
sources the highest-precedence value wins whole. Nested objects are never
spliced and arrays are never concatenated.
"""

import copy
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from watts_tester.contracts import (
    Action,
    ConfigExtractionError,
    InvalidPluginInputError,
    JsonObject,
    MalformedOverrideError,
    UserInputError,
    decode_json,
)
from watts_tester.core.identity import stamp_identity
from watts_tester.core.logging import get_logger
from watts_tester.core.schema import validate
from watts_tester.core.schemes import PLUGIN_INPUT_SCHEMA, lookup

logger = get_logger(__name__)

DEFAULT_WATTS_VERSION = "1.0.0"

_DEFAULT_PLUGIN_INPUT: JsonObject = {
    "action": Action.PARAMETER.value,
    "watts_version": DEFAULT_WATTS_VERSION,
    "cred_state": "undefined",
    "conf_params": {},
    "params": {},
    "user_info": {
        "iss": "https://issuer.example.com",
        "sub": "123456789",
    },
    "additional_logins": [],
}


def default_plugin_input() -> JsonObject:
    """Fresh copy of the compiled-in default input."""
    return copy.deepcopy(_DEFAULT_PLUGIN_INPUT)


class InputSources(BaseModel):
    """User-provided complements to the default plugin input."""

    model_config = {"frozen": True}

    input_string: str | None = Field(
        default=None,
        description="Inline JSON object (highest precedence)",
    )
    input_file: Path | None = Field(
        default=None,
        description="JSON file holding an object",
    )
    config_file: Path | None = Field(
        default=None,
        description="WaTTS config to extract conf_params from",
    )
    config_id: str | None = Field(
        default=None,
        description="Service id whose plugin settings are extracted",
    )

    @model_validator(mode="after")
    def validate_config_id_present(self) -> "InputSources":
        """A config file is useless without the service id to extract."""
        if self.config_file is not None and not self.config_id:
            raise ValueError("Need a config identifier for config override")
        return self


def merge(base: JsonObject, overrides: Sequence[JsonObject]) -> JsonObject:
    """Merge overrides into base.

    Args:
        base: Lowest-precedence document
        overrides: Documents ordered from lowest to highest precedence

    Returns:
        A new document; no argument is modified

    Raises:
        MalformedOverrideError: If an override is not a JSON object
    """
    merged = copy.deepcopy(base)
    for index, override in enumerate(overrides):
        if not isinstance(override, dict):
            raise MalformedOverrideError(
                f"override #{index}", f"expected object, got {type(override).__name__}"
            )
        for key, value in override.items():
            merged[key] = copy.deepcopy(value)
    return merged


def parse_override(text: str, origin: str) -> JsonObject:
    """Parse a JSON override document.

    Raises:
        MalformedOverrideError: If text is not a JSON object or holds a
            non-finite number
    """
    try:
        parsed = decode_json(text)
    except ValueError as e:
        raise MalformedOverrideError(origin, str(e)) from e
    if not isinstance(parsed, dict):
        raise MalformedOverrideError(origin, f"expected object, got {type(parsed).__name__}")
    return parsed


def extract_config_params(text: str, service_id: str, origin: str = "<config>") -> JsonObject:
    """Extract a service's plugin settings from WaTTS config text.

    Reads every `service.<ID>.plugin.<KEY> = <VALUE>` line for the given
    service id. Values are kept as strings with surrounding blanks removed;
    an empty value is the empty string. A match never spans lines.

    Returns:
        {"conf_params": {KEY: VALUE, ...}}

    Raises:
        ConfigExtractionError: If no line matches the service id
    """
    pattern = re.compile(
        rf"^[ \t]*service\.{re.escape(service_id)}\.plugin\."
        r"(?P<key>[^\s=]+)[ \t]*=(?P<value>.*)$",
        re.MULTILINE,
    )
    conf_params: dict[str, Any] = {}
    for match in pattern.finditer(text):
        conf_params[match.group("key")] = match.group("value").strip()

    if not conf_params:
        raise ConfigExtractionError(service_id, origin)
    return {"conf_params": conf_params}


def _read_text(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise UserInputError(f"Cannot read {what} {path}: {e}") from e


def collect_overrides(sources: InputSources) -> list[JsonObject]:
    """Load all configured sources, ordered lowest to highest precedence.

    Raises:
        UserInputError: If a file cannot be read or a source is malformed
    """
    overrides: list[JsonObject] = []

    if sources.config_file is not None:
        # config_id presence is enforced by InputSources
        assert sources.config_id is not None
        text = _read_text(sources.config_file, "WaTTS config")
        overrides.append(
            extract_config_params(text, sources.config_id, str(sources.config_file))
        )

    if sources.input_file is not None:
        text = _read_text(sources.input_file, "input file")
        overrides.append(parse_override(text, str(sources.input_file)))

    if sources.input_string is not None:
        overrides.append(parse_override(sources.input_string, "input string"))

    return overrides


def assemble_plugin_input(
    overrides: Sequence[JsonObject],
    *,
    action: str | None = None,
    base: JsonObject | None = None,
) -> JsonObject:
    """Build a canonical plugin input from already-loaded overrides.

    Steps: merge over the default, resolve the action, stamp the user id,
    validate against the input schema, and confirm a response schema
    exists for the resulting (watts_version, action).

    Args:
        overrides: Documents ordered from lowest to highest precedence
        action: Explicit action; wins over any action in the documents
        base: Base document, defaults to default_plugin_input()

    Raises:
        UnknownActionError: If the action is not parameter/request/revoke
        InvalidPluginInputError: If the result violates the input schema
        UnknownSchemaError: If watts_version is not supported
    """
    merged = merge(base if base is not None else default_plugin_input(), overrides)

    resolved = Action.parse(action if action is not None else merged.get("action"))
    merged["action"] = resolved.value

    stamped = stamp_identity(merged)

    outcome = validate(PLUGIN_INPUT_SCHEMA, stamped)
    if not outcome.passed:
        raise InvalidPluginInputError(outcome.path, outcome.cause)

    lookup(stamped["watts_version"], resolved)

    logger.debug(
        "Plugin input assembled",
        action=resolved.value,
        sources=len(overrides),
        watts_userid=stamped["watts_userid"],
    )
    return stamped


def build_plugin_input(
    sources: InputSources,
    *,
    action: str | None = None,
    base: JsonObject | None = None,
) -> JsonObject:
    """Load the user's sources and assemble the canonical plugin input."""
    return assemble_plugin_input(collect_overrides(sources), action=action, base=base)
