"""
Scalar encoding for writes and strict typed decoding for reads.

Decoders take the raw value returned by the store (``bytes``, or ``str``
when the client was built with ``decode_responses=True``) and raise
``ValueError`` when it cannot be coerced.
"""

import math
import re
import struct
from datetime import timedelta
from typing import Optional, Union

from .store import StoredValue

TTL = Optional[Union[int, float, timedelta]]

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def encode_value(value) -> bytes:
    """Encode a scalar for SET. Raises TypeError for unsupported types."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return b"1" if value else b"0"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, float):
        return repr(value).encode("ascii")
    raise TypeError(f"unsupported value type {type(value).__name__}")


def to_bytes(raw: StoredValue) -> bytes:
    """Normalise a stored value to bytes."""
    if isinstance(raw, str):
        return raw.encode("utf-8")
    return bytes(raw)


def decode_string(raw: StoredValue) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"invalid utf-8: {exc}") from exc


def decode_bytes(raw: StoredValue) -> bytes:
    return to_bytes(raw)


def decode_bool(raw: StoredValue) -> bool:
    text = decode_string(raw)
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid bool literal {text!r}")


def decode_int64(raw: StoredValue) -> int:
    text = decode_string(raw)
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer literal {text!r}")
    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer {text!r} out of int64 range")
    return value


# Python ints are unbounded; int keeps the 64-bit store range like int64.
decode_int = decode_int64


def decode_float64(raw: StoredValue) -> float:
    text = decode_string(raw)
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid float literal {text!r}")
    value = float(text)
    if math.isinf(value) and "inf" not in text.lower():
        raise ValueError(f"float {text!r} out of float64 range")
    return value


def decode_float32(raw: StoredValue) -> float:
    value = decode_float64(raw)
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError as exc:
        raise ValueError(f"float {value!r} out of float32 range") from exc


def ttl_to_ms(ttl: TTL) -> Optional[int]:
    """Convert a TTL to PX milliseconds. ``None`` means no expiration."""
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    else:
        seconds = float(ttl)
    if not math.isfinite(seconds):
        raise ValueError(f"ttl must be finite, got {ttl!r}")
    if seconds <= 0:
        return None
    return max(1, math.ceil(round(seconds * 1000, 6)))
