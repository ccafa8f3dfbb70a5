"""
Field Kinds and Text Coercion

Defines the closed set of declared field kinds the binder understands,
the marker types used to declare integer and float widths, and the
functions that turn environment text into native values.

Supported kinds:
    - bool (friendly vocabulary: yes/no, true/false, on/off, t/f, y/n, 1/0)
    - signed integers of 8, 16, 32 and 64 bits
    - unsigned integers of 8, 16, 32 and 64 bits
    - floats of 32 and 64 bits
    - str
    - sequence of str (":" separated)
    - nested records (dataclasses)

Anything else is UNSUPPORTED and only becomes an error when a field of
that kind is actually annotated with a source variable.

Width markers:
    Python has a single ``int`` and a single ``float``. Declare a narrower
    width with the markers below:

        @dataclass
        class Server:
            port: Uint16 = env_field("PORT", default=8080)
            ratio: Float32 = env_field("RATIO", default=0.5)

    A plain ``int`` is a signed 64-bit integer and a plain ``float`` is a
    64-bit float.
"""

import math
import re
import struct
from enum import Enum
from typing import Callable, Dict, List, NewType, Union

Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
Uint8 = NewType("Uint8", int)
Uint16 = NewType("Uint16", int)
Uint32 = NewType("Uint32", int)
Uint64 = NewType("Uint64", int)
Float32 = NewType("Float32", float)
Float64 = NewType("Float64", float)

TRUE_WORDS = frozenset({"yes", "true", "on", "t", "y", "1"})
FALSE_WORDS = frozenset({"no", "false", "off", "f", "n", "0"})

LIST_SEPARATOR = ":"

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_INF_WORDS = frozenset({"inf", "infinity"})


class FieldKind(Enum):
    """
    Declared kind of a record field.

    This is a closed enumeration: the binder dispatches on it and
    nothing else. Widths and signedness are properties of the kind.
    """

    BOOL = "bool"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "str"
    STRING_LIST = "list[str]"
    RECORD = "record"
    UNSUPPORTED = "unsupported"

    @property
    def bits(self) -> int:
        """Return the width in bits for numeric kinds, 0 otherwise."""
        return _BITS.get(self, 0)

    @property
    def is_signed(self) -> bool:
        return self in _SIGNED_KINDS

    @property
    def is_unsigned(self) -> bool:
        return self in _UNSIGNED_KINDS

    @property
    def is_float(self) -> bool:
        return self in (FieldKind.FLOAT32, FieldKind.FLOAT64)

    @property
    def is_leaf(self) -> bool:
        """Return whether a field of this kind is bound to a variable."""
        return self not in (FieldKind.RECORD, FieldKind.UNSUPPORTED)


_BITS: Dict[FieldKind, int] = {
    FieldKind.INT8: 8,
    FieldKind.UINT8: 8,
    FieldKind.INT16: 16,
    FieldKind.UINT16: 16,
    FieldKind.INT32: 32,
    FieldKind.UINT32: 32,
    FieldKind.FLOAT32: 32,
    FieldKind.INT64: 64,
    FieldKind.UINT64: 64,
    FieldKind.FLOAT64: 64,
}

_SIGNED_KINDS = frozenset({FieldKind.INT8, FieldKind.INT16, FieldKind.INT32, FieldKind.INT64})
_UNSIGNED_KINDS = frozenset({FieldKind.UINT8, FieldKind.UINT16, FieldKind.UINT32, FieldKind.UINT64})

# Marker types and builtins that map directly onto a kind.
# bool must be looked up before int (bool is an int subclass).
SCALAR_KINDS: Dict[object, FieldKind] = {
    bool: FieldKind.BOOL,
    int: FieldKind.INT64,
    float: FieldKind.FLOAT64,
    str: FieldKind.STRING,
    Int8: FieldKind.INT8,
    Int16: FieldKind.INT16,
    Int32: FieldKind.INT32,
    Int64: FieldKind.INT64,
    Uint8: FieldKind.UINT8,
    Uint16: FieldKind.UINT16,
    Uint32: FieldKind.UINT32,
    Uint64: FieldKind.UINT64,
    Float32: FieldKind.FLOAT32,
    Float64: FieldKind.FLOAT64,
}


def parse_friendly_bool(text: str) -> bool:
    """
    Parse a boolean case-insensitively from a friendly vocabulary.

    "yes"/"no", "true"/"false", "on"/"off", "t"/"f", "y"/"n" and "1"/"0"
    are accepted in any letter case.

    Raises:
        ValueError: If text is not in the vocabulary
    """
    lowered = text.lower()
    if lowered in TRUE_WORDS:
        return True
    if lowered in FALSE_WORDS:
        return False
    raise ValueError(f"expected boolean value, got: {text!r}")


def parse_int(text: str, bits: int) -> int:
    """Parse a base-10 signed integer that must fit in ``bits`` bits."""
    if not _SIGNED_RE.fullmatch(text):
        raise ValueError(f"invalid syntax for base-10 integer: {text!r}")
    value = int(text)
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= value <= high:
        raise ValueError(f"value {text} out of range for int{bits} [{low}, {high}]")
    return value


def parse_uint(text: str, bits: int) -> int:
    """Parse a base-10 unsigned integer that must fit in ``bits`` bits."""
    if not _UNSIGNED_RE.fullmatch(text):
        raise ValueError(f"invalid syntax for unsigned base-10 integer: {text!r}")
    value = int(text)
    high = (1 << bits) - 1
    if value > high:
        raise ValueError(f"value {text} out of range for uint{bits} [0, {high}]")
    return value


def parse_float(text: str, bits: int) -> float:
    """
    Parse decimal or scientific float text.

    32-bit values are rounded to single precision. Finite text whose
    value does not fit the width is rejected.
    """
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid syntax for float: {text!r}")
    value = float(text)
    if math.isinf(value) and text.lstrip("+-").lower() not in _INF_WORDS:
        raise ValueError(f"value {text} out of range for float{bits}")
    if bits == 32:
        try:
            value = struct.unpack("<f", struct.pack("<f", value))[0]
        except OverflowError as exc:
            raise ValueError(f"value {text} out of range for float32") from exc
    return value


def split_list(text: str) -> List[str]:
    """Split text on ":" without trimming or removing duplicates."""
    return text.split(LIST_SEPARATOR)


def _coerce_bool(text: str, kind: FieldKind) -> bool:
    return parse_friendly_bool(text)


def _coerce_int(text: str, kind: FieldKind) -> int:
    return parse_int(text, kind.bits)


def _coerce_uint(text: str, kind: FieldKind) -> int:
    return parse_uint(text, kind.bits)


def _coerce_float(text: str, kind: FieldKind) -> float:
    return parse_float(text, kind.bits)


def _coerce_str(text: str, kind: FieldKind) -> str:
    return text


def _coerce_list(text: str, kind: FieldKind) -> List[str]:
    return split_list(text)


_COERCERS: Dict[FieldKind, Callable[[str, FieldKind], object]] = {
    FieldKind.BOOL: _coerce_bool,
    FieldKind.STRING: _coerce_str,
    FieldKind.STRING_LIST: _coerce_list,
}
_COERCERS.update({k: _coerce_int for k in _SIGNED_KINDS})
_COERCERS.update({k: _coerce_uint for k in _UNSIGNED_KINDS})
_COERCERS.update({k: _coerce_float for k in (FieldKind.FLOAT32, FieldKind.FLOAT64)})


def coerce(text: str, kind: FieldKind) -> Union[bool, int, float, str, List[str]]:
    """
    Convert non-empty environment text to the native value for ``kind``.

    Raises:
        ValueError: If the text is not valid for the kind
        TypeError: If the kind is not a leaf kind
    """
    try:
        coercer = _COERCERS[kind]
    except KeyError:
        raise TypeError(f"kind {kind.value} cannot be coerced from text")
    return coercer(text, kind)
