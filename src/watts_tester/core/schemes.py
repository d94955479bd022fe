# src/watts_tester/core/schemes.py
"""Schema tables for the WaTTS plugin protocol.

Response schemas are keyed by protocol version, then action. Every
supported version carries a complete table; there is no fallback from an
unknown version to a known one.
"""

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from watts_tester.contracts import Action, JsonKind, UnknownSchemaError
from watts_tester.core.schema import (
    ANY,
    BOOL,
    STRING,
    ArrayOf,
    Exact,
    ObjectShape,
    OneOf,
    Optional,
    Regex,
    Rule,
)

_VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")

# Keys of conf_params / params and parameter names
PARAMETER_KEY = Regex(r"^[a-z0-9_]+$")


def _result(value: str) -> Exact:
    return Exact(JsonKind.STRING, value)


PLUGIN_INPUT_SCHEMA: Rule = ObjectShape(
    {
        "watts_version": STRING,
        "action": STRING,
        "cred_state": STRING,
        "conf_params": ObjectShape(keys=PARAMETER_KEY),
        "params": ObjectShape(keys=PARAMETER_KEY),
        "user_info": ObjectShape({"iss": STRING, "sub": STRING}),
        "additional_logins": ArrayOf(ANY),
        "watts_userid": STRING,
    }
)

_ERROR_RESPONSE = ObjectShape(
    {
        "result": _result("error"),
        "user_msg": STRING,
        "log_msg": Optional(STRING),
    }
)

_PARAMETER_RESPONSE_V1 = ObjectShape(
    {
        "result": _result("ok"),
        "conf_params": ArrayOf(
            ObjectShape(
                {
                    "name": PARAMETER_KEY,
                    "type": STRING,
                    "default": ANY,
                    "description": STRING,
                }
            )
        ),
        "request_params": ArrayOf(
            ArrayOf(
                ObjectShape(
                    {
                        "key": PARAMETER_KEY,
                        "name": STRING,
                        "description": STRING,
                        "type": STRING,
                        "mandatory": Optional(BOOL),
                    }
                )
            )
        ),
        "version": STRING,
    }
)

_REQUEST_RESPONSE_V1 = OneOf(
    ObjectShape(
        {
            "result": _result("ok"),
            "credential": ArrayOf(
                ObjectShape({"name": STRING, "type": STRING, "value": ANY})
            ),
            "state": STRING,
        }
    ),
    _ERROR_RESPONSE,
    ObjectShape(
        {
            "result": _result("oidc_login"),
            "provider": STRING,
            "msg": STRING,
        }
    ),
)

_REVOKE_RESPONSE_V1 = OneOf(
    ObjectShape({"result": _result("ok")}),
    _ERROR_RESPONSE,
)

RESPONSE_SCHEMAS: Mapping[str, Mapping[Action, Rule]] = MappingProxyType(
    {
        "1.0.0": MappingProxyType(
            {
                Action.PARAMETER: _PARAMETER_RESPONSE_V1,
                Action.REQUEST: _REQUEST_RESPONSE_V1,
                Action.REVOKE: _REVOKE_RESPONSE_V1,
            }
        ),
    }
)

SUPPORTED_VERSIONS = tuple(RESPONSE_SCHEMAS)


def parse_version(raw: Any) -> str:
    """Strictly parse a watts_version value into a table key.

    Accepts "1.0.0" and "v1.0.0". Anything else, including non-strings,
    is unsupported.

    Raises:
        UnknownSchemaError: If raw is not a supported version string
    """
    if not isinstance(raw, str):
        raise UnknownSchemaError(raw)
    match = _VERSION_PATTERN.fullmatch(raw.strip())
    if match is None:
        raise UnknownSchemaError(raw)
    version = ".".join(str(int(part)) for part in match.groups())
    if version not in RESPONSE_SCHEMAS:
        raise UnknownSchemaError(raw)
    return version


def lookup(version: Any, action: Action | str) -> Rule:
    """Find the response schema for a (protocol version, action) pair.

    Raises:
        UnknownSchemaError: If the version or action has no schema
    """
    key = parse_version(version)
    table = RESPONSE_SCHEMAS[key]
    for candidate, rule in table.items():
        if candidate == action:
            return rule
    raise UnknownSchemaError(version, str(getattr(action, "value", action)))
