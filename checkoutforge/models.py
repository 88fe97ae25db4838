"""
Target description types shared by the fuzzing engine and its callers.

Endpoints and parameters are produced by reconnaissance and are read-only
from the engine's point of view.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ParameterType(Enum):
    """Declared type of a request parameter."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


class ParameterLocation(Enum):
    """Where a parameter travels in the request."""
    BODY = "body"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    PATH = "path"


@dataclass
class Parameter:
    """A single request field."""
    name: str
    value: Any = None
    type: ParameterType = ParameterType.UNKNOWN
    location: ParameterLocation = ParameterLocation.BODY
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.type.value,
            "location": self.location.value,
            "required": self.required,
        }


@dataclass
class Endpoint:
    """An HTTP endpoint and the parameters it accepts."""
    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    parameters: list[Parameter] = field(default_factory=list)
    endpoint_type: str = "unknown"  # cart, checkout, payment, order, product, api
    requires_auth: bool = False

    def get_parameter(self, name: str) -> Parameter | None:
        """Find a declared parameter by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": self.headers,
            "parameters": [p.to_dict() for p in self.parameters],
            "endpoint_type": self.endpoint_type,
            "requires_auth": self.requires_auth,
        }
