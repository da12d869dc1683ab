"""OpenAPI-driven mapping from node selections to weLore requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import MappingResolutionError, OperationNotFoundError
from .models import (
    EndpointSpec,
    OperationRecord,
    Option,
    ParamFieldSpec,
    RequestDescriptor,
    ResolvedMapping,
    SchemaDocument,
)
from .schema import SchemaLoader


logger = logging.getLogger(__name__)

ACCOUNT_PREFIX = "/api/{account}/"
MANAGER_SEGMENT = "manager"
EXCLUDED_RESOURCE_SUFFIXES = ("download", "fields", "upload")

# The upstream schema spells this placeholder with three "c"s on some paths.
ACCOUNT_PLACEHOLDERS = ("{acccount}", "{account}")


def parameter_placeholder(name: str) -> str:
    return f"{{{{$parameter.{name}}}}}"


class MappingEngine:
    """Derives resources, operations and requests from the weLore schema.

    The parsed document is owned by ``loader``; operation records are cached
    per resource on this instance and rebuilt whenever a lookup misses.
    Instances are not thread safe.
    """

    def __init__(self, loader: SchemaLoader, api_origin: str) -> None:
        self.loader = loader
        self.api_origin = api_origin.rstrip("/")
        self._operations: Dict[str, Dict[str, OperationRecord]] = {}

    def schema(self) -> SchemaDocument:
        return self.loader.load()

    def extract_resources(self) -> List[Option]:
        resources: Dict[str, Option] = {}
        for path in self.schema().paths:
            name = resource_name(path)
            if not name or name in resources:
                continue
            if name.endswith(EXCLUDED_RESOURCE_SUFFIXES):
                continue
            resources[name] = Option(name=name[:1].upper() + name[1:], value=name)
        return list(resources.values())

    def extract_operations(self, resource: str) -> List[Option]:
        records: Dict[str, OperationRecord] = {}
        prefixes = (
            f"{ACCOUNT_PREFIX}{resource}",
            f"{ACCOUNT_PREFIX}{MANAGER_SEGMENT}/{resource}",
        )

        for path, methods in self.schema().paths.items():
            if not path.startswith(prefixes):
                continue
            for method, endpoint in methods.items():
                operation_id = endpoint.operation_id or _fallback_operation_id(method, path)
                display_name = endpoint.summary or f"{method.upper()} {path}"
                records[operation_id] = OperationRecord(
                    id=operation_id,
                    display_name=display_name,
                    path=path,
                    method=method,
                )

        self._operations[resource] = records
        logger.debug("Extracted %s operations for resource=%s", len(records), resource)
        return [Option(name=record.display_name, value=record.id) for record in records.values()]

    def generate_properties(self, resource: str, operation_id: str) -> List[ParamFieldSpec]:
        if resource not in self._operations:
            self.extract_operations(resource)
        record = self._cached_operation(resource, operation_id)
        if record is None:
            raise OperationNotFoundError(resource, operation_id)

        endpoint = self._endpoint(record)
        fields: List[ParamFieldSpec] = []

        for param in endpoint.parameters:
            if param.location == "path" and f"{{{param.name}}}" in ACCOUNT_PLACEHOLDERS:
                continue
            fields.append(
                ParamFieldSpec(
                    name=param.name,
                    type=param.type,
                    required=param.required,
                    default=_default(param.default),
                    description=param.description or "",
                    location=param.location,
                )
            )

        if endpoint.body is not None:
            for prop in endpoint.body.properties:
                fields.append(
                    ParamFieldSpec(
                        name=prop.name,
                        type=prop.type,
                        required=prop.name in endpoint.body.required,
                        default=_default(prop.default),
                        description=prop.description or "",
                        location="body",
                        options=prop.enum,
                    )
                )

        return fields

    def resolve_mapping(self, resource: str, operation_id: str, account: str) -> ResolvedMapping:
        try:
            record = self._cached_operation(resource, operation_id)
            if record is None:
                self.extract_operations(resource)
                record = self._cached_operation(resource, operation_id)
            if record is None:
                raise OperationNotFoundError(resource, operation_id)

            endpoint = self._endpoint(record)
            properties = self.generate_properties(resource, operation_id)

            path = record.path
            for placeholder in ACCOUNT_PLACEHOLDERS:
                path = path.replace(placeholder, account)
            for param in endpoint.path_parameters():
                path = path.replace(f"{{{param.name}}}", parameter_placeholder(param.name))

            return ResolvedMapping(
                method=record.method.upper(),
                url=f"{self.api_origin}{path}",
                properties=tuple(properties),
            )
        except OperationNotFoundError:
            raise
        except Exception as exc:
            raise MappingResolutionError(
                f"Failed to resolve mapping for {resource}.{operation_id}: {exc}"
            ) from exc

    def finalize_request(
        self, mapping: ResolvedMapping, entries: Iterable[Mapping[str, Any]]
    ) -> RequestDescriptor:
        """Fill one item's values into a resolved mapping.

        Values whose placeholder is still in the URL replace it; the rest go to
        the query string or the JSON body. Names the operation does not declare
        are ignored.
        """
        url = mapping.url
        query: Dict[str, Any] = {}
        body: Dict[str, Any] = {}

        for entry in entries:
            name = entry.get("name")
            if not name:
                continue
            field = mapping.get_property(name)
            if field is None:
                logger.debug("Skipping unknown parameter %s", name)
                continue

            value = entry.get("value")
            placeholder = parameter_placeholder(name)
            if placeholder in url:
                url = url.replace(placeholder, "" if value is None else str(value))
            elif _is_query_field(field):
                query[name] = value
            else:
                body[name] = value

        return RequestDescriptor(
            method=mapping.method,
            url=url,
            query=query or None,
            body=body or None,
        )

    def _cached_operation(self, resource: str, operation_id: str) -> Optional[OperationRecord]:
        return self._operations.get(resource, {}).get(operation_id)

    def _endpoint(self, record: OperationRecord) -> EndpointSpec:
        endpoint = self.schema().endpoint(record.path, record.method)
        if endpoint is None:
            raise MappingResolutionError(
                f"Schema has no {record.method.upper()} {record.path} endpoint"
            )
        return endpoint


def resource_name(path: str) -> Optional[str]:
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) < 3:
        return None
    if segments[2] == MANAGER_SEGMENT and len(segments) > 3:
        return segments[3]
    return segments[2]


def _fallback_operation_id(method: str, path: str) -> str:
    return f"{method}_{path.replace('/', '_')}"


def _default(value: Any) -> Any:
    return "" if value is None else value


def _is_query_field(field: ParamFieldSpec) -> bool:
    if field.location == "query":
        return True
    if "query" in field.name.lower():
        return True
    description = field.description.lower()
    return "query parameter" in description or "in: query" in description
