"""
Cadence argument and script encoding.

Converts native Python values into JSON-Cadence typed values
(``{"type": ..., "value": ...}``) and then into the base64 strings the
Flow REST API expects in a transaction's ``arguments`` list.

Dispatch table (first match wins):

    bool                    -> Bool        (before int: bool is an int)
    Int64                   -> Int64       string-encoded
    int                     -> Int         string-encoded
    float, integral         -> Int         "2.0" encodes as "2"
    float, fractional       -> Fix64       string-encoded
    Decimal, integral       -> Int
    Decimal, fractional     -> Fix64
    str                     -> String
    Mapping                 -> Dictionary  [{key, value}, ...] in order
    list / tuple            -> Array       [typed value, ...]
    anything else           -> String      str(value)

``encode`` never raises. Non-finite floats and decimals take the
``String`` arm. Fix64 values are emitted as given: callers round to the
network's eight fractional digits before encoding.

Everything here is pure. No I/O.
"""

from __future__ import annotations

import base64
import json
import math
from collections.abc import Iterable, Mapping
from decimal import Decimal
from enum import StrEnum
from typing import Any


class ValueType(StrEnum):
    """Cadence type tags produced by :func:`encode`."""

    STRING = "String"
    BOOL = "Bool"
    INT64 = "Int64"
    INT = "Int"
    FIX64 = "Fix64"
    DICTIONARY = "Dictionary"
    ARRAY = "Array"


class Int64(int):
    """Marks an integer that must be sent as a Cadence ``Int64``.

    Python ints are already arbitrary precision, so the explicit wrapper is
    how a caller asks for the ``Int64`` tag instead of ``Int``.
    """


def _typed(kind: ValueType, value: Any) -> dict[str, Any]:
    return {"type": str(kind), "value": value}


def _encode_number(value: float | Decimal) -> dict[str, Any]:
    if isinstance(value, float):
        if not math.isfinite(value):
            return _typed(ValueType.STRING, str(value))
        # repr() is the shortest round-tripping form; Decimal keeps it
        # out of exponent notation ("1e-05" -> "0.00001").
        value = Decimal(repr(value))
    elif not value.is_finite():
        return _typed(ValueType.STRING, str(value))
    if value == value.to_integral_value():
        return _typed(ValueType.INT, str(int(value)))
    return _typed(ValueType.FIX64, format(value, "f"))


def encode(value: Any) -> dict[str, Any]:
    """Encode a native value as a JSON-Cadence typed value.

    Args:
        value: Any Python object. Supported categories are listed in the
            module docstring; everything else is stringified.

    Returns:
        A ``{"type", "value"}`` dict. Nested containers are encoded
        recursively, so every reachable value is itself a typed value.
    """
    if isinstance(value, bool):
        return _typed(ValueType.BOOL, value)
    if isinstance(value, Int64):
        return _typed(ValueType.INT64, str(int(value)))
    if isinstance(value, int):
        return _typed(ValueType.INT, str(value))
    if isinstance(value, (float, Decimal)):
        return _encode_number(value)
    if isinstance(value, str):
        return _typed(ValueType.STRING, value)
    if isinstance(value, Mapping):
        return _typed(
            ValueType.DICTIONARY,
            [{"key": encode(k), "value": encode(v)} for k, v in value.items()],
        )
    if isinstance(value, (list, tuple)):
        return _typed(ValueType.ARRAY, [encode(item) for item in value])
    try:
        return _typed(ValueType.STRING, str(value))
    except Exception:
        return _typed(ValueType.STRING, object.__repr__(value))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def argument_bytes(value: Any) -> bytes:
    """Serialize ``encode(value)`` to compact JSON bytes.

    These are the bytes that get base64-encoded for the REST API and the
    bytes that go into the RLP transaction payload for signing.
    """
    return json.dumps(encode(value), separators=(",", ":")).encode("ascii")


def build_arguments(values: Iterable[Any]) -> list[str]:
    """Encode transaction arguments, one base64 string per value.

    Order is positional and must match the script's parameter list.
    """
    return [_b64(argument_bytes(v)) for v in values]


def build_script(source: str) -> str:
    """Base64-encode Cadence source text. No JSON wrapping."""
    return _b64(source.encode("utf-8"))


def decode_argument(encoded: str) -> dict[str, Any]:
    """Inverse of one :func:`build_arguments` entry: base64 then JSON.

    Also used for event payloads, which share the JSON-Cadence format.

    Raises:
        ValueError: If the input is not base64 of a JSON object.
    """
    try:
        decoded = json.loads(base64.b64decode(encoded, validate=True))
    except (ValueError, TypeError) as exc:
        raise ValueError(f"not a base64 JSON-Cadence value: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ValueError(f"expected a JSON object, got {type(decoded).__name__}")
    return decoded
