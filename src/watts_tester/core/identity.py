# src/watts_tester/core/identity.py
"""Derivation of the WaTTS user id from OIDC issuer and subject.

The derived id must be bit-identical to what WaTTS computes:

    base64url( web_escape( canonical_json({"issuer": iss, "subject": sub}) ) )

WaTTS serializes with Go's encoding/json, which writes `&` `<` `>` as
`\\u0026` `\\u003c` `\\u003e` and U+2028/U+2029 as `\\u2028`/`\\u2029`, then
escapes every `/` as `\\/`. The base64url encoding carries no padding.
"""

import base64
import copy
from collections.abc import Mapping
from typing import Any

from watts_tester.contracts import InvalidPluginInputError, JsonObject
from watts_tester.core.canonical import canonical_bytes

# Applied to serialized bytes; none of these appear in an escape sequence
_WEB_ESCAPES = (
    (b"/", b"\\/"),
    (b"&", b"\\u0026"),
    (b"<", b"\\u003c"),
    (b">", b"\\u003e"),
    ("\u2028".encode(), b"\\u2028"),
    ("\u2029".encode(), b"\\u2029"),
)


def _web_escape(serialized: bytes) -> bytes:
    for raw, escaped in _WEB_ESCAPES:
        serialized = serialized.replace(raw, escaped)
    return serialized


def derive_user_id(user_info: Mapping[str, Any]) -> str:
    """Derive the watts_userid for a user_info object.

    Raises:
        InvalidPluginInputError: If iss or sub is missing or not a string
    """
    for claim in ("iss", "sub"):
        if not isinstance(user_info.get(claim), str):
            raise InvalidPluginInputError(
                ("user_info", claim), "required string claim is missing"
            )

    reduced = {"issuer": user_info["iss"], "subject": user_info["sub"]}
    escaped = _web_escape(canonical_bytes(reduced))
    return base64.urlsafe_b64encode(escaped).rstrip(b"=").decode("ascii")


def stamp_identity(plugin_input: JsonObject) -> JsonObject:
    """Return a copy of plugin_input with watts_userid recomputed.

    Any watts_userid already present is overwritten.

    Raises:
        InvalidPluginInputError: If user_info is not an object
    """
    user_info = plugin_input.get("user_info")
    if not isinstance(user_info, dict):
        raise InvalidPluginInputError(("user_info",), "expected object")

    stamped = copy.deepcopy(plugin_input)
    stamped["watts_userid"] = derive_user_id(user_info)
    return stamped
