"""Tests for PluginInvoker against real executables."""

import base64
import json
from collections.abc import Callable
from pathlib import Path

import pytest


def _payload(action: str = "parameter") -> bytes:
    from watts_tester.core.merge import assemble_plugin_input
    from watts_tester.engine import encode_payload

    return encode_payload(assemble_plugin_input([], action=action))


class TestEncodePayload:
    """Payloads are compact JSON bytes with sorted keys."""

    def test_compact_sorted(self) -> None:
        from watts_tester.engine import encode_payload

        assert encode_payload({"b": 1, "a": [True, None]}) == b'{"a":[true,null],"b":1}'

    def test_large_integers_kept_exactly(self) -> None:
        from watts_tester.engine import encode_payload

        payload = encode_payload({"serial": 2**64 + 1, "name": "ä/b"})

        assert payload == '{"name":"ä/b","serial":18446744073709551617}'.encode()

    def test_unserializable_input_is_internal_error(self) -> None:
        from watts_tester.contracts import ExitCode, InternalError
        from watts_tester.engine import encode_payload

        with pytest.raises(InternalError) as exc_info:
            encode_payload({"x": float("nan")})
        assert exc_info.value.exit_code is ExitCode.INTERNAL_ERROR


class TestPluginInvoker:
    """Classification of plugin runs."""

    def test_argument_mode(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import PluginSuccess
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin()

        outcome = PluginInvoker().invoke(str(plugin), _payload("revoke"))

        assert isinstance(outcome, PluginSuccess)
        assert outcome.output == {"result": "ok"}
        assert outcome.duration_ms > 0

    def test_env_mode_uses_named_variable(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import PluginSuccess
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin()
        invoker = PluginInvoker(pass_by_env=True, env_var="CUSTOM_PARAMETER")

        outcome = invoker.invoke(str(plugin), _payload("request"))

        assert isinstance(outcome, PluginSuccess)
        assert outcome.output["state"] == "cred-123456789"  # type: ignore[index,call-overload]

    def test_payload_is_base64_of_input(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import PluginSuccess
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin(
            """
            import base64, json, sys
            print(json.dumps({"seen": base64.b64decode(sys.argv[1]).decode()}))
            """
        )
        payload = _payload()

        outcome = PluginInvoker().invoke(str(plugin), payload)

        assert isinstance(outcome, PluginSuccess)
        assert outcome.output == {"seen": payload.decode()}
        assert json.loads(outcome.output["seen"])["action"] == "parameter"  # type: ignore[index,call-overload]

    def test_stderr_is_captured_with_stdout(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import DecodeFailure
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin(
            """
            import sys
            sys.stderr.write("warning: deprecated\\n")
            sys.stderr.flush()
            print('{"result": "ok"}')
            """
        )

        outcome = PluginInvoker().invoke(str(plugin), b"{}")

        assert isinstance(outcome, DecodeFailure)
        assert b"warning: deprecated" in outcome.raw_output

    def test_non_zero_exit(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import ProcessFailure
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin(
            """
            import sys
            print("something broke")
            sys.exit(3)
            """
        )

        outcome = PluginInvoker().invoke(str(plugin), b"{}")

        assert isinstance(outcome, ProcessFailure)
        assert outcome.exit_status == 3
        assert outcome.error == "plugin exited with status 3"
        assert outcome.raw_output.strip() == b"something broke"

    def test_non_json_output(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import DecodeFailure
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin('print("hello there")\n')

        outcome = PluginInvoker().invoke(str(plugin), b"{}")

        assert isinstance(outcome, DecodeFailure)
        assert outcome.raw_output.strip() == b"hello there"

    def test_timeout_kills_plugin(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import ProcessFailure
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin(
            """
            import time
            time.sleep(30)
            """
        )

        outcome = PluginInvoker(timeout_seconds=0.5).invoke(str(plugin), b"{}")

        assert isinstance(outcome, ProcessFailure)
        assert outcome.exit_status is None
        assert "timed out" in outcome.error

    def test_missing_executable(self, tmp_path: Path) -> None:
        from watts_tester.contracts import ProcessFailure
        from watts_tester.engine import PluginInvoker

        outcome = PluginInvoker().invoke(str(tmp_path / "nope"), b"{}")

        assert isinstance(outcome, ProcessFailure)
        assert outcome.error.startswith("could not start plugin")
        assert outcome.exit_status is None

    def test_not_executable(self, tmp_path: Path) -> None:
        from watts_tester.contracts import ProcessFailure
        from watts_tester.engine import PluginInvoker

        script = tmp_path / "plain.txt"
        script.write_text("not a program")
        script.chmod(0o644)

        outcome = PluginInvoker().invoke(str(script), b"{}")

        assert isinstance(outcome, ProcessFailure)

    def test_env_mode_does_not_pass_argument(self, make_plugin: Callable[..., Path]) -> None:
        from watts_tester.contracts import PluginSuccess
        from watts_tester.engine import PluginInvoker

        plugin = make_plugin(
            """
            import json, os, sys
            print(json.dumps({"argc": len(sys.argv), "env": os.environ["WATTS_PARAMETER"]}))
            """
        )

        outcome = PluginInvoker(pass_by_env=True).invoke(str(plugin), b'{"a":1}')

        assert isinstance(outcome, PluginSuccess)
        assert outcome.output == {"argc": 1, "env": base64.b64encode(b'{"a":1}').decode()}
