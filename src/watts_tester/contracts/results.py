"""Operation outcomes and results.

These types answer: "What happened when the plugin was run and checked?"

IMPORTANT:
- ExecutionOutcome is a closed union of three frozen dataclasses;
  dispatch with isinstance/match, never by probing attributes
- ValidationOutcome.path is the full path from the root to the FIRST failure
- CaseResult and TestSuiteResult are built fresh per run and returned,
  never accumulated in shared state
"""

from dataclasses import dataclass, field
from typing import Any, TypeAlias

from watts_tester.contracts.enums import CaseStatus
from watts_tester.contracts.values import JsonObject, JsonValue

PathElement: TypeAlias = str | int


def format_path(path: tuple[PathElement, ...]) -> str:
    """Render a validation path as `a.b[0].c`."""
    if not path:
        return "<root>"
    rendered = ""
    for element in path:
        if isinstance(element, int):
            rendered += f"[{element}]"
        elif rendered:
            rendered += f".{element}"
        else:
            rendered = element
    return rendered


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of evaluating a schema rule tree against a value."""

    passed: bool
    path: tuple[PathElement, ...] = ()
    cause: str = ""

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(passed=True)

    @classmethod
    def fail(cls, path: tuple[PathElement, ...], cause: str) -> "ValidationOutcome":
        return cls(passed=False, path=path, cause=cause)

    @property
    def path_str(self) -> str:
        return format_path(self.path)


@dataclass(frozen=True)
class PluginSuccess:
    """Plugin exited 0 and printed valid JSON."""

    output: JsonValue
    duration_ms: float


@dataclass(frozen=True)
class ProcessFailure:
    """Plugin could not be spawned, exited non-zero, or timed out.

    exit_status is None when the process never produced an exit status
    (spawn failure or timeout).
    """

    error: str
    raw_output: bytes
    duration_ms: float
    exit_status: int | None = None


@dataclass(frozen=True)
class DecodeFailure:
    """Plugin exited 0 but its output is not JSON."""

    raw_output: bytes
    cause: str
    duration_ms: float


ExecutionOutcome: TypeAlias = PluginSuccess | ProcessFailure | DecodeFailure


@dataclass(frozen=True)
class TestCase:
    """A canonical plugin input paired with the expected output subset."""

    __test__ = False

    name: str
    plugin_input: JsonObject
    expected_output: JsonObject = field(default_factory=dict)


@dataclass(frozen=True)
class CaseResult:
    """Final result of running one plugin case through the harness.

    Build instances with the factory methods so status and description
    always agree with the stage that decided the outcome.
    """

    status: CaseStatus
    description: str
    plugin: str
    plugin_input: JsonObject | None = None
    execution: ExecutionOutcome | None = None
    validation: ValidationOutcome | None = None
    expected_output: JsonObject | None = None
    name: str | None = None

    @property
    def passed(self) -> bool:
        return self.status is CaseStatus.PASSED

    @classmethod
    def passed_case(
        cls,
        description: str,
        *,
        plugin: str,
        plugin_input: JsonObject,
        execution: PluginSuccess,
        validation: ValidationOutcome,
        expected_output: JsonObject | None = None,
        name: str | None = None,
    ) -> "CaseResult":
        return cls(
            status=CaseStatus.PASSED,
            description=description,
            plugin=plugin,
            plugin_input=plugin_input,
            execution=execution,
            validation=validation,
            expected_output=expected_output,
            name=name,
        )

    @classmethod
    def failed_case(
        cls,
        status: CaseStatus,
        description: str,
        *,
        plugin: str,
        plugin_input: JsonObject | None = None,
        execution: ExecutionOutcome | None = None,
        validation: ValidationOutcome | None = None,
        expected_output: JsonObject | None = None,
        name: str | None = None,
    ) -> "CaseResult":
        if status is CaseStatus.PASSED:
            raise ValueError("failed_case() requires a failing status")
        return cls(
            status=status,
            description=description,
            plugin=plugin,
            plugin_input=plugin_input,
            execution=execution,
            validation=validation,
            expected_output=expected_output,
            name=name,
        )

    def to_report(self) -> dict[str, Any]:
        """Machine-readable report document for this case."""
        plugin: dict[str, Any] = {"name": self.plugin}
        if self.plugin_input is not None:
            plugin["input"] = self.plugin_input

        match self.execution:
            case PluginSuccess(output=output, duration_ms=duration_ms):
                plugin["duration_ms"] = round(duration_ms, 3)
                plugin["output"] = output
            case ProcessFailure() as failure:
                plugin["duration_ms"] = round(failure.duration_ms, 3)
                plugin["error"] = failure.error
                plugin["exit_status"] = failure.exit_status
                plugin["plugin_output"] = failure.raw_output.decode("utf-8", "replace")
            case DecodeFailure() as failure:
                plugin["duration_ms"] = round(failure.duration_ms, 3)
                plugin["error"] = failure.cause
                plugin["plugin_output"] = failure.raw_output.decode("utf-8", "replace")
            case None:
                pass

        if self.expected_output is not None:
            plugin["output_expected"] = self.expected_output

        report: dict[str, Any] = {}
        if self.name is not None:
            report["name"] = self.name
        report["result"] = "ok" if self.passed else "error"
        report["status"] = self.status.value
        report["description"] = self.description
        if self.validation is not None and not self.validation.passed:
            report["path"] = self.validation.path_str
        report["plugin"] = plugin
        return report


@dataclass(frozen=True)
class SuiteStats:
    """Counters for a suite run. total == passed + failed always."""

    total: int = 0
    passed: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "passed": self.passed, "failed": self.failed}


@dataclass(frozen=True)
class TestSuiteResult:
    """Ordered per-case results of one suite run."""

    __test__ = False

    plugin: str
    cases: tuple[CaseResult, ...] = ()

    @property
    def stats(self) -> SuiteStats:
        passed = sum(1 for case in self.cases if case.passed)
        return SuiteStats(
            total=len(self.cases),
            passed=passed,
            failed=len(self.cases) - passed,
        )

    @property
    def passed(self) -> bool:
        """An empty suite passes."""
        return self.stats.failed == 0

    def to_report(self) -> dict[str, Any]:
        return {
            "result": "ok",
            "plugin": self.plugin,
            "tests": [case.to_report() for case in self.cases],
            "stats": self.stats.to_dict(),
        }
