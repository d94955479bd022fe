# src/watts_tester/engine/invoker.py
"""PluginInvoker: runs a plugin executable once and classifies the run.

The plugin receives its input as standard base64 of the JSON document,
either as its only argument or in an environment variable. stdout and
stderr are captured together; the combined bytes must be the JSON
response.

Classification:
- spawn failure, non-zero exit, or timeout -> ProcessFailure
- exit 0 with output that is not JSON     -> DecodeFailure
- otherwise                                -> PluginSuccess
"""

import base64
import json
import os
import subprocess
import time
from typing import Protocol

from watts_tester.contracts import (
    DecodeFailure,
    ExecutionOutcome,
    InternalError,
    JsonObject,
    PluginSuccess,
    ProcessFailure,
    decode_json,
)
from watts_tester.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_ENV_VAR = "WATTS_PARAMETER"


class Invoker(Protocol):
    """Anything that can run a plugin with an encoded payload."""

    def invoke(self, plugin: str, payload: bytes) -> ExecutionOutcome: ...


def encode_payload(plugin_input: JsonObject) -> bytes:
    """Serialize a plugin input to the bytes handed to the plugin.

    Compact JSON with sorted keys. Integers of any size are kept exactly;
    NaN and Infinity are rejected.

    Raises:
        InternalError: If the input is not serializable (harness defect)
    """
    try:
        text = json.dumps(
            plugin_input,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
        return text.encode("utf-8")
    except (TypeError, ValueError) as e:
        raise InternalError(f"Cannot serialize plugin input: {e}") from e


class PluginInvoker:
    """Runs plugins as child processes, one at a time.

    Each call blocks until the child exits or the timeout elapses; on
    timeout the child is killed.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
        pass_by_env: bool = False,
        env_var: str = DEFAULT_ENV_VAR,
    ) -> None:
        self._timeout = timeout_seconds or None
        self._pass_by_env = pass_by_env
        self._env_var = env_var

    def _command(self, plugin: str, encoded: str) -> tuple[list[str], dict[str, str] | None]:
        if self._pass_by_env:
            env = dict(os.environ)
            env[self._env_var] = encoded
            return [plugin], env
        return [plugin, encoded], None

    def invoke(self, plugin: str, payload: bytes) -> ExecutionOutcome:
        encoded = base64.b64encode(payload).decode("ascii")
        command, env = self._command(plugin, encoded)

        logger.debug(
            "Invoking plugin",
            plugin=plugin,
            pass_by_env=self._pass_by_env,
            timeout_seconds=self._timeout,
        )

        start = time.perf_counter()
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ProcessFailure(
                error=f"plugin timed out after {self._timeout}s",
                raw_output=e.output or b"",
                duration_ms=duration_ms,
            )
        except OSError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ProcessFailure(
                error=f"could not start plugin: {e}",
                raw_output=b"",
                duration_ms=duration_ms,
            )
        duration_ms = (time.perf_counter() - start) * 1000

        raw_output = completed.stdout or b""
        if completed.returncode != 0:
            return ProcessFailure(
                error=f"plugin exited with status {completed.returncode}",
                raw_output=raw_output,
                duration_ms=duration_ms,
                exit_status=completed.returncode,
            )

        try:
            output = decode_json(raw_output)
        except ValueError as e:
            return DecodeFailure(raw_output=raw_output, cause=str(e), duration_ms=duration_ms)

        return PluginSuccess(output=output, duration_ms=duration_ms)
