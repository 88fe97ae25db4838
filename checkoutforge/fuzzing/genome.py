"""
Payload genomes and their rendering.

A genome pairs a semantic candidate value with the metadata that decides how
it is rendered into the outbound request: an encoding for string values, a
structural wrapper, and the injection layer that produced its current shape.
"""

import copy
import json
import math
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from checkoutforge.utils.encoding import Encoder


class _Undefined:
    """A value that is absent rather than null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "undefined"

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNDEFINED = _Undefined()


class ValueKind(Enum):
    """Tagged view over the values a genome can carry."""
    NULL = "null"
    UNDEFINED = "undefined"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class Encoding(Enum):
    RAW = "raw"
    URL = "url"
    BASE64 = "base64"
    UNICODE = "unicode"
    DOUBLE_URL = "double_url"


class Wrapper(Enum):
    NONE = "none"
    ARRAY = "array"
    OBJECT = "object"
    STRING = "string"
    NESTED_ARRAY = "nested_array"


class InjectionLayer(Enum):
    NONE = "none"
    SQL = "sql"
    NOSQL = "nosql"
    TEMPLATE = "template"
    COMMAND = "command"


def value_kind(value: Any) -> ValueKind:
    """Classify a value. Anything unrecognised is treated as a string."""
    if value is None:
        return ValueKind.NULL
    if value is UNDEFINED:
        return ValueKind.UNDEFINED
    # bool first, it is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return ValueKind.STRING


def _json_default(obj: Any) -> Any:
    if obj is UNDEFINED:
        return None
    return str(obj)


def _number_text(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def to_text(value: Any) -> str:
    """String form of a value, as it would appear on the wire."""
    kind = value_kind(value)
    if kind is ValueKind.NULL:
        return "null"
    if kind is ValueKind.UNDEFINED:
        return "undefined"
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        return _number_text(value)
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        return json.dumps(value, separators=(",", ":"), default=_json_default)
    return str(value)


def to_json_safe(value: Any) -> Any:
    """Strip undefined values the way JSON serialisation drops them."""
    kind = value_kind(value)
    if kind is ValueKind.ARRAY:
        return [None if item is UNDEFINED else to_json_safe(item) for item in value]
    if kind is ValueKind.OBJECT:
        return {k: to_json_safe(v) for k, v in value.items() if v is not UNDEFINED}
    return value


def new_payload_id(rng: random.Random) -> str:
    """UUID4 drawn from the given random source."""
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


@dataclass(frozen=True)
class Payload:
    """One candidate input under search."""
    id: str
    value: Any
    encoding: Encoding = Encoding.RAW
    wrapper: Wrapper = Wrapper.NONE
    injection_layer: InjectionLayer = InjectionLayer.NONE
    mutations: list[str] = field(default_factory=list)
    generation: int = 0

    @property
    def kind(self) -> ValueKind:
        return value_kind(self.value)

    def render(self) -> Any:
        return render(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "value": to_text(self.value),
            "kind": self.kind.value,
            "rendered": to_text(self.render()),
            "encoding": self.encoding.value,
            "wrapper": self.wrapper.value,
            "injection_layer": self.injection_layer.value,
            "mutations": list(self.mutations),
            "generation": self.generation,
        }


def render(payload: Payload) -> Any:
    """
    Turn a genome into the concrete value placed in the request.

    Encoding applies to string values only, then the wrapper is applied.
    The genome itself is never modified.
    """
    value = payload.value
    kind = value_kind(value)

    if kind is ValueKind.STRING:
        value = Encoder.encode(str(value), payload.encoding.value)
    elif kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        value = copy.deepcopy(value)

    if payload.wrapper is Wrapper.ARRAY:
        return [value]
    if payload.wrapper is Wrapper.OBJECT:
        return {"value": value}
    if payload.wrapper is Wrapper.NESTED_ARRAY:
        return [[value]]
    if payload.wrapper is Wrapper.STRING:
        return to_text(value)
    return value
