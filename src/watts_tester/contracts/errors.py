"""Exception taxonomy.

User input problems and internal defects are raised. Plugin failures in
test and suite mode are values (see contracts.results); PluginRunError is
only raised where a single-shot command cannot continue without a
working plugin.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from watts_tester.contracts.enums import ExitCode

if TYPE_CHECKING:
    from watts_tester.contracts.results import CaseResult


class WattsTesterError(Exception):
    """Base class for all harness errors."""

    exit_code: ExitCode = ExitCode.INTERNAL_ERROR


class UserInputError(WattsTesterError):
    """Missing, unreadable, or malformed user-provided input."""

    exit_code = ExitCode.USER_ERROR


class MalformedOverrideError(UserInputError):
    """An input override did not parse as a JSON object."""

    def __init__(self, origin: str, reason: str) -> None:
        super().__init__(f"Malformed input override from {origin}: {reason}")
        self.origin = origin
        self.reason = reason


class ConfigExtractionError(UserInputError):
    """No plugin parameters found for a service in a WaTTS config."""

    def __init__(self, service_id: str, origin: str) -> None:
        super().__init__(
            f"Could not find configuration parameters for '{service_id}' in '{origin}'"
        )
        self.service_id = service_id
        self.origin = origin


class UnknownActionError(UserInputError):
    """Requested plugin action is not parameter, request, or revoke."""

    def __init__(self, action: object) -> None:
        super().__init__(f"invalid plugin action {action!r}")
        self.action = action


class UnknownSchemaError(UserInputError):
    """No schema exists for the (protocol version, action) pair."""

    def __init__(self, version: object, action: str | None = None) -> None:
        if action is None:
            message = f"unsupported watts_version {version!r}"
        else:
            message = f"no schema for watts_version {version!r} and action {action!r}"
        super().__init__(message)
        self.version = version
        self.action = action


class InvalidPluginInputError(UserInputError):
    """The assembled plugin input does not satisfy the input schema."""

    def __init__(self, path: Sequence[str | int], cause: str) -> None:
        self.path = tuple(path)
        self.cause = cause
        location = ".".join(str(p) for p in self.path) or "<root>"
        super().__init__(f"invalid plugin input at {location}: {cause}")


class InternalError(WattsTesterError):
    """A serialization or merge failure that indicates a harness defect."""

    exit_code = ExitCode.INTERNAL_ERROR


class PluginRunError(WattsTesterError):
    """A single-shot command could not use the plugin's result."""

    def __init__(self, result: "CaseResult") -> None:
        super().__init__(result.description)
        self.result = result
        self.exit_code = ExitCode.for_status(result.status)
