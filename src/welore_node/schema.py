"""OpenAPI schema loader and parser."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional

import yaml

from .errors import SchemaLoadError
from .models import BodyProperty, BodySchema, EndpointSpec, ParamSpec, SchemaDocument


logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete")
_PARAMETER_LOCATIONS = {"path", "query"}
_NUMERIC_TYPES = {"number", "integer"}
_MAX_REF_DEPTH = 16


class SchemaLoader:
    """Reads the OpenAPI document once and keeps the parsed result.

    Nothing is stored when reading or parsing fails, so a later call starts
    over from the file.
    """

    def __init__(self, source: Path) -> None:
        self.source = Path(source)
        self._document: Optional[SchemaDocument] = None

    def load(self) -> SchemaDocument:
        if self._document is not None:
            return self._document

        try:
            text = self.source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SchemaLoadError(f"Failed to read OpenAPI schema {self.source}: {exc}") from exc

        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaLoadError(f"Failed to parse OpenAPI schema {self.source}: {exc}") from exc

        try:
            document = parse_schema(raw)
        except SchemaLoadError:
            raise
        except Exception as exc:
            raise SchemaLoadError(f"Malformed OpenAPI schema {self.source}: {exc}") from exc
        logger.info("Loaded OpenAPI schema %s (%s paths)", self.source, len(document.paths))
        self._document = document
        return document

    @property
    def loaded(self) -> bool:
        return self._document is not None


def parse_schema(raw: Any) -> SchemaDocument:
    """Build a SchemaDocument from a decoded OpenAPI mapping."""
    if not isinstance(raw, dict):
        raise SchemaLoadError("OpenAPI schema must be a mapping")
    paths = raw.get("paths")
    if not isinstance(paths, dict):
        raise SchemaLoadError("OpenAPI schema has no 'paths' mapping")

    parsed: Dict[str, Any] = {}
    for path, path_item in paths.items():
        path_item = _resolve_ref(raw, path_item)
        if not isinstance(path_item, dict):
            continue
        shared_parameters = path_item.get("parameters") or []
        methods: Dict[str, EndpointSpec] = {}
        for method, operation in path_item.items():
            method = str(method).lower()
            if method not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            methods[method] = _parse_endpoint(raw, operation, shared_parameters)
        parsed[str(path)] = MappingProxyType(methods)

    return SchemaDocument(paths=MappingProxyType(parsed))


def _parse_endpoint(
    raw: Dict[str, Any], operation: Dict[str, Any], shared_parameters: List[Any]
) -> EndpointSpec:
    parameters = [*shared_parameters, *(operation.get("parameters") or [])]
    return EndpointSpec(
        summary=operation.get("summary"),
        description=operation.get("description"),
        operation_id=operation.get("operationId"),
        parameters=tuple(_parse_parameters(raw, parameters)),
        body=_parse_body(raw, operation.get("requestBody")),
    )


def _parse_parameters(raw: Dict[str, Any], parameters: List[Any]) -> List[ParamSpec]:
    result: List[ParamSpec] = []
    for parameter in parameters:
        parameter = _resolve_ref(raw, parameter)
        if not isinstance(parameter, dict):
            continue
        name = parameter.get("name")
        location = parameter.get("in")
        if not name or location not in _PARAMETER_LOCATIONS:
            continue
        schema = _resolve_ref(raw, parameter.get("schema")) or {}
        result.append(
            ParamSpec(
                name=str(name),
                location=location,
                required=bool(parameter.get("required", False)),
                type=_schema_to_type(schema),
                description=parameter.get("description"),
                default=schema.get("default"),
            )
        )
    return result


def _parse_body(raw: Dict[str, Any], request_body: Any) -> Optional[BodySchema]:
    request_body = _resolve_ref(raw, request_body)
    if not isinstance(request_body, dict):
        return None
    content = request_body.get("content") or {}
    json_body = content.get("application/json") or {}
    schema = _resolve_ref(raw, json_body.get("schema"))
    if not isinstance(schema, dict):
        return None

    properties: List[BodyProperty] = []
    for name, prop in (schema.get("properties") or {}).items():
        prop = _resolve_ref(raw, prop) or {}
        properties.append(
            BodyProperty(
                name=str(name),
                type=_schema_to_type(prop),
                description=prop.get("description"),
                enum=tuple(value for value in prop.get("enum") or [] if isinstance(value, str)),
                default=prop.get("default"),
            )
        )
    return BodySchema(properties=tuple(properties), required=frozenset(schema.get("required") or []))


def _schema_to_type(schema: Dict[str, Any]) -> str:
    if schema.get("type") in _NUMERIC_TYPES:
        return "number"
    return "string"


def _resolve_ref(raw: Dict[str, Any], node: Any) -> Any:
    # Only local references ("#/components/...") are followed.
    depth = 0
    while isinstance(node, dict) and isinstance(node.get("$ref"), str):
        ref = node["$ref"]
        if not ref.startswith("#/") or depth >= _MAX_REF_DEPTH:
            return None
        target: Any = raw
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, dict) or part not in target:
                logger.debug("Unresolvable OpenAPI reference %s", ref)
                return None
            target = target[part]
        node = target
        depth += 1
    return node
