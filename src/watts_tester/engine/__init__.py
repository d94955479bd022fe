"""Execution engine: PluginInvoker and TestRunner."""

from watts_tester.engine.invoker import Invoker, PluginInvoker, encode_payload
from watts_tester.engine.runner import TestRunner, compare_expected

__all__ = [
    "Invoker",
    "PluginInvoker",
    "TestRunner",
    "compare_expected",
    "encode_payload",
]
