# src/watts_tester/core/__init__.py
"""Core infrastructure: Configuration, Canonical JSON, Logging, Input assembly, Schemas."""

from watts_tester.core.canonical import (
    canonical_bytes,
    canonical_json,
)
from watts_tester.core.config import (
    CaseSettings,
    InvocationSettings,
    SuiteSettings,
    TesterSettings,
    load_settings,
    load_suite,
)
from watts_tester.core.identity import (
    derive_user_id,
    stamp_identity,
)
from watts_tester.core.logging import (
    configure_logging,
    get_logger,
)
from watts_tester.core.merge import (
    DEFAULT_WATTS_VERSION,
    InputSources,
    assemble_plugin_input,
    build_plugin_input,
    default_plugin_input,
    extract_config_params,
    merge,
    parse_override,
)
from watts_tester.core.schema import validate
from watts_tester.core.schemes import (
    PLUGIN_INPUT_SCHEMA,
    RESPONSE_SCHEMAS,
    lookup,
    parse_version,
)

__all__ = [
    "DEFAULT_WATTS_VERSION",
    "PLUGIN_INPUT_SCHEMA",
    "RESPONSE_SCHEMAS",
    "CaseSettings",
    "InputSources",
    "InvocationSettings",
    "SuiteSettings",
    "TesterSettings",
    "assemble_plugin_input",
    "build_plugin_input",
    "canonical_bytes",
    "canonical_json",
    "configure_logging",
    "default_plugin_input",
    "derive_user_id",
    "extract_config_params",
    "get_logger",
    "load_settings",
    "load_suite",
    "lookup",
    "merge",
    "parse_override",
    "parse_version",
    "stamp_identity",
    "validate",
]
