# src/watts_tester/report.py
"""Rendering of report documents for humans and machines."""

import json
from collections.abc import Mapping
from typing import Any

_KEY_WIDTH = 15
# Continuation lines line up with the value column: key + ": "
_CONTINUATION = " " * (_KEY_WIDTH + 2)
_INDENT = 4


def render(document: Mapping[str, Any], *, machine: bool) -> str:
    """Render a report document.

    Machine mode emits the whole document as indented JSON. Human mode
    emits one right-aligned `key: value` block per top-level key.
    """
    if machine:
        return json.dumps(document, indent=_INDENT, ensure_ascii=False) + "\n"

    blocks = []
    for key, value in document.items():
        dumped = json.dumps(value, indent=_INDENT, ensure_ascii=False)
        body = ("\n" + _CONTINUATION).join(dumped.splitlines())
        blocks.append(f"{key:>{_KEY_WIDTH}}: {body}\n")
    return "".join(blocks)
