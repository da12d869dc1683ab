"""Internal models for the parsed schema and resolved requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ParamSpec:
    name: str
    location: str
    required: bool = False
    type: str = "string"
    description: Optional[str] = None
    default: Any = None


@dataclass(frozen=True)
class BodyProperty:
    name: str
    type: str = "string"
    description: Optional[str] = None
    enum: Tuple[str, ...] = ()
    default: Any = None


@dataclass(frozen=True)
class BodySchema:
    properties: Tuple[BodyProperty, ...] = ()
    required: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class EndpointSpec:
    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = None
    parameters: Tuple[ParamSpec, ...] = ()
    body: Optional[BodySchema] = None

    def path_parameters(self) -> List[ParamSpec]:
        return [param for param in self.parameters if param.location == "path"]


@dataclass(frozen=True)
class SchemaDocument:
    paths: Mapping[str, Mapping[str, EndpointSpec]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def endpoint(self, path: str, method: str) -> Optional[EndpointSpec]:
        return (self.paths.get(path) or {}).get(method.lower())


@dataclass(frozen=True)
class Option:
    name: str
    value: str
    description: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        data = {"name": self.name, "value": self.value}
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class OperationRecord:
    id: str
    display_name: str
    path: str
    method: str


@dataclass(frozen=True)
class ParamFieldSpec:
    name: str
    type: str
    required: bool
    default: Any
    description: str
    location: str
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedMapping:
    method: str
    url: str
    properties: Tuple[ParamFieldSpec, ...]

    def get_property(self, name: str) -> Optional[ParamFieldSpec]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    url: str
    query: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"method": self.method, "url": self.url}
        if self.query:
            data["query"] = dict(self.query)
        if self.body:
            data["body"] = dict(self.body)
        return data
