"""Shared contracts for cross-boundary data types.

All dataclasses, enums, and exceptions that cross subsystem boundaries
are defined here.

Import pattern:
    from watts_tester.contracts import Action, CaseResult, ExitCode
"""

from watts_tester.contracts.enums import (
    Action,
    CaseStatus,
    ExitCode,
    JsonKind,
)
from watts_tester.contracts.errors import (
    ConfigExtractionError,
    InternalError,
    InvalidPluginInputError,
    MalformedOverrideError,
    PluginRunError,
    UnknownActionError,
    UnknownSchemaError,
    UserInputError,
    WattsTesterError,
)
from watts_tester.contracts.values import (
    JsonObject,
    JsonValue,
    decode_json,
    json_equal,
    json_kind,
)
from watts_tester.contracts.results import (
    CaseResult,
    DecodeFailure,
    ExecutionOutcome,
    PluginSuccess,
    ProcessFailure,
    SuiteStats,
    TestCase,
    TestSuiteResult,
    ValidationOutcome,
    format_path,
)

__all__ = [
    # enums
    "Action",
    "CaseStatus",
    "ExitCode",
    "JsonKind",
    # errors
    "ConfigExtractionError",
    "InternalError",
    "InvalidPluginInputError",
    "MalformedOverrideError",
    "PluginRunError",
    "UnknownActionError",
    "UnknownSchemaError",
    "UserInputError",
    "WattsTesterError",
    # values
    "JsonObject",
    "JsonValue",
    "decode_json",
    "json_equal",
    "json_kind",
    # results
    "CaseResult",
    "DecodeFailure",
    "ExecutionOutcome",
    "PluginSuccess",
    "ProcessFailure",
    "SuiteStats",
    "TestCase",
    "TestSuiteResult",
    "ValidationOutcome",
    "format_path",
]
