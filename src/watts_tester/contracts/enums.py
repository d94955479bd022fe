"""Status codes, actions, and kinds used across subsystem boundaries."""

from enum import Enum, IntEnum


class Action(str, Enum):
    """Plugin action requested by the harness.

    Uses (str, Enum) because the value IS the wire value of `action`
    in the plugin input.
    """

    PARAMETER = "parameter"
    REQUEST = "request"
    REVOKE = "revoke"

    @classmethod
    def parse(cls, value: object) -> "Action":
        """Resolve a raw action value.

        Raises:
            UnknownActionError: If value is not one of the supported actions
        """
        from watts_tester.contracts.errors import UnknownActionError

        for action in cls:
            if action.value == value:
                return action
        raise UnknownActionError(value)


class JsonKind(str, Enum):
    """Runtime kind of a JSON value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class CaseStatus(str, Enum):
    """Terminal status of one plugin test case.

    CONTRACT_VIOLATION covers every way the plugin broke its contract
    after running successfully: undecodable output, schema failure, or
    a mismatch against the expected output.
    """

    PASSED = "passed"
    CONTRACT_VIOLATION = "contract_violation"
    EXECUTION_FAILED = "execution_failed"
    INPUT_ERROR = "input_error"
    INTERNAL_ERROR = "internal_error"


class ExitCode(IntEnum):
    """Process exit codes. Scripts rely on these staying distinct."""

    OK = 0
    PLUGIN_ERROR = 1
    PLUGIN_EXECUTION_ERROR = 2
    INTERNAL_ERROR = 3
    USER_ERROR = 4

    @classmethod
    def for_status(cls, status: CaseStatus) -> "ExitCode":
        """Map a case status to the exit code of a single-shot run."""
        return _STATUS_EXIT_CODES[status]


_STATUS_EXIT_CODES = {
    CaseStatus.PASSED: ExitCode.OK,
    CaseStatus.CONTRACT_VIOLATION: ExitCode.PLUGIN_ERROR,
    CaseStatus.EXECUTION_FAILED: ExitCode.PLUGIN_EXECUTION_ERROR,
    CaseStatus.INPUT_ERROR: ExitCode.USER_ERROR,
    CaseStatus.INTERNAL_ERROR: ExitCode.INTERNAL_ERROR,
}
