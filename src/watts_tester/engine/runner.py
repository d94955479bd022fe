# src/watts_tester/engine/runner.py
"""TestRunner: drives plugin cases and aggregates their results.

Each case moves through four stages:
1. Building   - canonical input assembled, response schema resolved
2. Invoking   - plugin run via the invoker
3. Validating - response checked against the schema, then against the
                expected output when one is given
4. Reported   - a CaseResult is returned

A suite is an ordered loop over cases. A failing case never aborts the
suite; it is recorded and the next case runs.
"""

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from watts_tester.contracts import (
    Action,
    CaseResult,
    CaseStatus,
    DecodeFailure,
    InternalError,
    InvalidPluginInputError,
    JsonObject,
    PluginRunError,
    PluginSuccess,
    ProcessFailure,
    TestCase,
    TestSuiteResult,
    UserInputError,
    ValidationOutcome,
    json_equal,
)
from watts_tester.core.config import SuiteSettings
from watts_tester.core.logging import get_logger
from watts_tester.core.merge import assemble_plugin_input
from watts_tester.core.schema import validate
from watts_tester.core.schemes import PLUGIN_INPUT_SCHEMA, lookup
from watts_tester.engine.invoker import Invoker, encode_payload

logger = get_logger(__name__)


def compare_expected(output: Any, expected: Mapping[str, Any]) -> str | None:
    """Check the keys of expected against the plugin output.

    Only keys present in expected are checked, each with exact JSON
    equality (no partial matching inside nested values).

    Returns:
        None if everything matches, else a description naming the
        first offending key
    """
    if not isinstance(output, dict):
        return "Plugin output is not an object"
    for key, expected_value in expected.items():
        if key not in output:
            return f"Missing output key {key}: expected {expected_value!r}"
        actual = output[key]
        if not json_equal(actual, expected_value):
            return (
                f"Unexpected output for key {key}: "
                f"{actual!r} instead of {expected_value!r}"
            )
    return None


class TestRunner:
    """Runs single cases and suites against one invoker.

    The runner holds no result state between calls; every method returns
    a freshly built result.
    """

    __test__ = False

    def __init__(self, invoker: Invoker) -> None:
        self._invoker = invoker

    def check(self, plugin: str, plugin_input: JsonObject, *, name: str | None = None) -> CaseResult:
        """Run the plugin once and validate the response shape."""
        return self._run(plugin, plugin_input, expected=None, name=name)

    def test(
        self,
        plugin: str,
        plugin_input: JsonObject,
        expected: JsonObject,
        *,
        name: str | None = None,
    ) -> CaseResult:
        """Run the plugin once, validate the response, and compare it to expected."""
        return self._run(plugin, plugin_input, expected=expected, name=name)

    def run_case(self, plugin: str, case: TestCase) -> CaseResult:
        return self._run(plugin, case.plugin_input, expected=case.expected_output, name=case.name)

    def _run(
        self,
        plugin: str,
        plugin_input: JsonObject,
        *,
        expected: JsonObject | None,
        name: str | None,
    ) -> CaseResult:
        log = logger.bind(plugin=plugin, case=name)

        # Building: an unknown (version, action) fails before invocation
        log.debug("Building", action=plugin_input.get("action"))
        schema = lookup(plugin_input.get("watts_version"), Action.parse(plugin_input.get("action")))
        payload = encode_payload(plugin_input)

        log.debug("Invoking")
        execution = self._invoker.invoke(plugin, payload)

        common: dict[str, Any] = {
            "plugin": plugin,
            "plugin_input": plugin_input,
            "execution": execution,
            "expected_output": expected,
            "name": name,
        }

        match execution:
            case ProcessFailure(error=error):
                log.info("Plugin execution failed", error=error)
                return CaseResult.failed_case(
                    CaseStatus.EXECUTION_FAILED,
                    f"Error executing the plugin: {error}",
                    **common,
                )
            case DecodeFailure(cause=cause):
                log.info("Plugin output is not JSON", error=cause)
                return CaseResult.failed_case(
                    CaseStatus.CONTRACT_VIOLATION,
                    f"Error processing the output of the plugin: {cause}",
                    **common,
                )
            case PluginSuccess(output=output):
                pass

        log.debug("Validating", duration_ms=execution.duration_ms)
        validation = validate(schema, output)
        if not validation.passed:
            log.info("Validation failed", path=validation.path_str, cause=validation.cause)
            return CaseResult.failed_case(
                CaseStatus.CONTRACT_VIOLATION,
                f"Validation error {validation.cause} at {validation.path_str}",
                validation=validation,
                **common,
            )

        if expected is None:
            log.info("Validation passed")
            return CaseResult.passed_case(
                "Validation passed", validation=validation, **common
            )

        mismatch = compare_expected(output, expected)
        if mismatch is not None:
            log.info("Unexpected output", reason=mismatch)
            return CaseResult.failed_case(
                CaseStatus.CONTRACT_VIOLATION,
                mismatch,
                validation=validation,
                **common,
            )

        log.info("Test passed")
        return CaseResult.passed_case(
            "Test passed. All output as expected", validation=validation, **common
        )

    def run_suite(self, suite: SuiteSettings, *, base_dir: Path | None = None) -> TestSuiteResult:
        """Run every case of a suite in order.

        Each case input complements the default input. A case whose input
        cannot be assembled is recorded as an INPUT_ERROR failure; a case
        the harness cannot serialize is recorded as an INTERNAL_ERROR
        failure. Neither stops the suite.
        """
        plugin = suite.resolve_exec_file(base_dir)
        results: list[CaseResult] = []

        for index, case_settings in enumerate(suite.tests, start=1):
            name = case_settings.name or f"case {index}"
            expected = dict(case_settings.expected_output)
            try:
                plugin_input = assemble_plugin_input([dict(case_settings.input)])
                case = TestCase(name=name, plugin_input=plugin_input, expected_output=expected)
                results.append(self.run_case(plugin, case))
            except UserInputError as e:
                logger.info("Case input rejected", plugin=plugin, case=name, error=str(e))
                results.append(
                    CaseResult.failed_case(
                        CaseStatus.INPUT_ERROR,
                        f"Invalid test input: {e}",
                        plugin=plugin,
                        expected_output=expected,
                        name=name,
                    )
                )
            except InternalError as e:
                logger.error("Case aborted", plugin=plugin, case=name, error=str(e))
                results.append(
                    CaseResult.failed_case(
                        CaseStatus.INTERNAL_ERROR,
                        f"Internal error: {e}",
                        plugin=plugin,
                        expected_output=expected,
                        name=name,
                    )
                )

        suite_result = TestSuiteResult(plugin=plugin, cases=tuple(results))
        logger.info("Suite finished", plugin=plugin, **suite_result.stats.to_dict())
        return suite_result

    def generate(self, plugin: str, plugin_input: JsonObject) -> JsonObject:
        """Harvest conf_params defaults from the plugin into the input.

        The plugin is asked for its parameters (action `parameter`); the
        default of every conf_param it declares replaces the input's
        conf_params. The returned input keeps the caller's action.

        Raises:
            PluginRunError: If the plugin fails or its response is invalid
            InvalidPluginInputError: If the folded input violates the input schema
        """
        parameter_input = copy.deepcopy(plugin_input)
        parameter_input["action"] = Action.PARAMETER.value

        result = self.check(plugin, parameter_input)
        if not result.passed:
            raise PluginRunError(result)

        # check() passed, so the output matched the parameter schema
        assert isinstance(result.execution, PluginSuccess)
        declared = result.execution.output["conf_params"]  # type: ignore[index,call-overload]

        generated = copy.deepcopy(plugin_input)
        generated["conf_params"] = {param["name"]: param["default"] for param in declared}

        outcome: ValidationOutcome = validate(PLUGIN_INPUT_SCHEMA, generated)
        if not outcome.passed:
            raise InvalidPluginInputError(outcome.path, outcome.cause)
        return generated
