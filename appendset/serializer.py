"""
Canonical key format:
- Every value is encoded as tag(1) + payload_len(<Q, 8) + payload
- Containers concatenate the encodings of their members, so every encoding is
  self-delimiting and two different values can never share one
- Unordered containers (mappings, sets) sort member encodings bytewise
- The final key is the base64 text of the top-level encoding

Equal items must produce equal keys, so the encoding follows Python's own
equality: True == 1 == 1.0 share the integer form, set == frozenset share the
set form, and dict equality ignores insertion order.
"""

import base64
import dataclasses
import enum
import math
import struct
from collections.abc import Hashable, Mapping
from collections.abc import Set as AbstractSet
from typing import Any

from .exceptions import SerializationError

LENGTH_STRUCT = struct.Struct("<Q")
FLOAT_STRUCT = struct.Struct("<d")

TAG_NONE = b"N"
TAG_INT = b"I"
TAG_FLOAT = b"F"
TAG_STR = b"S"
TAG_BYTES = b"B"
TAG_TUPLE = b"T"
TAG_LIST = b"L"
TAG_MAPPING = b"D"
TAG_SET = b"E"
TAG_ENUM = b"M"
TAG_DATACLASS = b"C"


def _frame(tag: bytes, payload: bytes) -> bytes:
    return tag + LENGTH_STRUCT.pack(len(payload)) + payload


def _qualified_name(cls: type) -> bytes:
    return encode(f"{cls.__module__}.{cls.__qualname__}")


def encode(item: Any) -> bytes:
    """
    Encode an item into its canonical byte form.

    Args:
        item: The value to encode

    Returns:
        The tagged, length-prefixed encoding of the item

    Raises:
        SerializationError: If the item (or anything nested in it) has no
            canonical form
    """
    if item is None:
        return _frame(TAG_NONE, b"")

    # bool and IntEnum are ints; hex avoids the int->str digit limit
    if isinstance(item, int):
        return _frame(TAG_INT, format(int(item), "x").encode("ascii"))

    if isinstance(item, float):
        if item.is_integer():
            return encode(int(item))
        if math.isnan(item):
            item = math.nan
        return _frame(TAG_FLOAT, FLOAT_STRUCT.pack(item))

    if isinstance(item, str):
        return _frame(TAG_STR, str.encode(item, "utf-8", "surrogatepass"))

    if isinstance(item, (bytes, bytearray)):
        return _frame(TAG_BYTES, bytes(item))

    if isinstance(item, enum.Enum):
        return _frame(TAG_ENUM, _qualified_name(type(item)) + encode(item.name))

    if isinstance(item, tuple):
        return _frame(TAG_TUPLE, b"".join(encode(member) for member in item))

    if isinstance(item, list):
        return _frame(TAG_LIST, b"".join(encode(member) for member in item))

    if isinstance(item, Mapping):
        entries = sorted(encode(key) + encode(value) for key, value in item.items())
        return _frame(TAG_MAPPING, b"".join(entries))

    if isinstance(item, AbstractSet):
        members = sorted(encode(member) for member in item)
        return _frame(TAG_SET, b"".join(members))

    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        if not item.__dataclass_params__.eq:
            raise SerializationError(
                f"{type(item).__qualname__} compares by identity (eq=False)"
            )
        values = tuple(
            getattr(item, field.name)
            for field in dataclasses.fields(item)
            if field.compare
        )
        return _frame(TAG_DATACLASS, _qualified_name(type(item)) + encode(values))

    raise SerializationError(f"Cannot canonically encode {type(item).__qualname__}")


def serialize(item: Any) -> str:
    """Return the canonical text key of an item. Every NaN maps to one key."""
    try:
        raw = encode(item)
    except RecursionError as e:
        raise SerializationError(
            f"{type(item).__qualname__} is self-referencing or nested too deeply"
        ) from e
    return base64.b64encode(raw).decode("ascii")


@dataclasses.dataclass(frozen=True)
class CanonicalKey:
    """Hashable stand-in for an item that has no hash of its own."""

    key: str


# Shared by every NaN reaching freeze(), so the in-memory store treats all NaNs
# as one member, the same way their single serialized key does after a spill
CANONICAL_NAN = float("nan")


def freeze(item: Any) -> Hashable:
    """
    Map an item to a hashable value with the same equality semantics.

    Hashable items come back unchanged, except that NaN becomes CANONICAL_NAN
    and tuples are rebuilt from their frozen members. Unhashable sets become
    frozensets and bytearrays become bytes, since both compare equal to their
    frozen forms. Anything else unhashable (lists, dicts, mutable dataclasses)
    is wrapped in a CanonicalKey built from its serialized form.

    NaNs nested inside sets or frozensets keep Python's identity semantics in
    memory and still collapse into one key once serialized.
    """
    if isinstance(item, float) and math.isnan(item):
        return CANONICAL_NAN
    if isinstance(item, bytearray):
        return bytes(item)
    if isinstance(item, tuple):
        # (1, {2}) and (1, frozenset({2})) are equal, so both need one key
        return tuple(freeze(member) for member in item)
    try:
        hash(item)
    except TypeError:
        if isinstance(item, AbstractSet):
            return frozenset(item)
        return CanonicalKey(serialize(item))
    return item
