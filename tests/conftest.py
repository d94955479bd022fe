# tests/conftest.py
"""Shared test fixtures and helpers.

This module provides:
- scripted_invoker: an in-process Invoker returning canned outcomes
- make_plugin: writes a real executable plugin script into tmp_path

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
import stat
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from watts_tester.contracts import ExecutionOutcome, PluginSuccess

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Plugin doubles
# =============================================================================

PARAMETER_RESPONSE = {
    "result": "ok",
    "conf_params": [
        {
            "name": "lifetime",
            "type": "string",
            "default": "3600",
            "description": "Credential lifetime in seconds",
        }
    ],
    "request_params": [],
    "version": "1.0.0",
}


class ScriptedInvoker:
    """Invoker that returns canned outcomes in order and records calls."""

    def __init__(self, outcomes: list[ExecutionOutcome]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, bytes]] = []

    def invoke(self, plugin: str, payload: bytes) -> ExecutionOutcome:
        self.calls.append((plugin, payload))
        if not self._outcomes:
            raise AssertionError("ScriptedInvoker ran out of outcomes")
        return self._outcomes.pop(0)


@pytest.fixture
def scripted_invoker() -> Callable[..., ScriptedInvoker]:
    """Factory: scripted_invoker(output1, output2, ...).

    Plain JSON values are wrapped in PluginSuccess; ExecutionOutcome
    instances are returned as given.
    """

    def factory(*responses: object) -> ScriptedInvoker:
        outcomes: list[ExecutionOutcome] = []
        for response in responses:
            if isinstance(response, ExecutionOutcome):
                outcomes.append(response)  # type: ignore[arg-type]
            else:
                outcomes.append(PluginSuccess(output=response, duration_ms=1.0))  # type: ignore[arg-type]
        return ScriptedInvoker(outcomes)

    return factory


# Behaves like a well-formed WaTTS plugin for all three actions
ECHO_PLUGIN = """
import base64
import json
import os
import sys

if len(sys.argv) > 1:
    raw = sys.argv[1]
else:
    raw = os.environ.get("WATTS_PARAMETER") or os.environ["CUSTOM_PARAMETER"]
request = json.loads(base64.b64decode(raw))
action = request["action"]
if action == "parameter":
    print(json.dumps({
        "result": "ok",
        "conf_params": [{"name": "lifetime", "type": "string",
                         "default": "3600", "description": "Lifetime"}],
        "request_params": [],
        "version": "1.0.0",
    }))
elif action == "request":
    print(json.dumps({
        "result": "ok",
        "credential": [{"name": "userid", "type": "text",
                        "value": request["watts_userid"]}],
        "state": "cred-" + request["user_info"]["sub"],
    }))
else:
    print(json.dumps({"result": "ok"}))
"""


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Factory: make_plugin(source, name="plugin.py") -> executable path."""

    def factory(source: str = ECHO_PLUGIN, name: str = "plugin.py") -> Path:
        path = tmp_path / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(source))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return factory


@pytest.fixture
def parameter_response() -> dict[str, object]:
    """A valid `parameter` response (fresh copy per test)."""
    import copy

    return copy.deepcopy(PARAMETER_RESPONSE)
