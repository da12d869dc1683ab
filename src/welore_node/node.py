"""weLore API node: options loading and per-item execution."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .config import Settings
from .credentials import CREDENTIAL_NAME
from .errors import RequestExecutionError
from .executors import RequestExecutor
from .host import HttpExecutor, ParameterSource
from .mapping import MappingEngine
from .models import ParamFieldSpec
from .schema import SchemaLoader

logger = logging.getLogger(__name__)


class ParameterEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    value: Any = None


class WeLoreNode:
    """
    Node exposing the weLore REST API.

    The host calls the load-options methods while the user picks a resource,
    an operation and its fields, then ``execute`` once per run. One mapping is
    resolved per run and one request is sent per input item.
    """

    type = "weLoreApi"
    version = 1

    description: Dict[str, Any] = {
        "displayName": "weLore API",
        "name": "weLoreApi",
        "group": ["transform"],
        "version": 1,
        "subtitle": '={{ $parameter["operation"] + ": " + $parameter["resource"] }}',
        "description": "Interact with the weLore REST API",
        "defaults": {"name": "weLore API"},
        "inputs": ["main"],
        "outputs": ["main"],
    }

    properties: Dict[str, Any] = {
        "credentials": [
            {"name": CREDENTIAL_NAME, "required": True},
        ],
        "parameters": [
            {
                "displayName": "Account",
                "name": "account",
                "type": "string",
                "default": "",
                "required": True,
                "description": "weLore account slug used in the request path",
            },
            {
                "displayName": "Resource",
                "name": "resource",
                "type": "options",
                "typeOptions": {"loadOptionsMethod": "getResources"},
                "default": "",
                "required": True,
                "noDataExpression": True,
            },
            {
                "displayName": "Operation",
                "name": "operation",
                "type": "options",
                "typeOptions": {
                    "loadOptionsMethod": "getOperations",
                    "loadOptionsDependsOn": ["resource"],
                },
                "default": "",
                "required": True,
                "noDataExpression": True,
            },
            {
                "displayName": "Parameters",
                "name": "parameters",
                "type": "fixedCollection",
                "typeOptions": {"multipleValues": True},
                "default": {},
                "options": [
                    {
                        "displayName": "Parameter",
                        "name": "parameter",
                        "values": [
                            {
                                "displayName": "Name",
                                "name": "name",
                                "type": "options",
                                "typeOptions": {
                                    "loadOptionsMethod": "getAdditionalFields",
                                    "loadOptionsDependsOn": ["account", "resource", "operation"],
                                },
                                "default": "",
                            },
                            {
                                "displayName": "Value",
                                "name": "value",
                                "type": "string",
                                "default": "",
                            },
                        ],
                    },
                ],
            },
        ],
    }

    def __init__(self, engine: MappingEngine, executor: HttpExecutor) -> None:
        self.engine = engine
        self.executor = executor

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "WeLoreNode":
        loader = SchemaLoader(settings.schema_path())
        engine = MappingEngine(loader, settings.api_origin())
        executor = RequestExecutor(
            timeout_seconds=settings.welore_http_timeout_seconds,
            verify_ssl=settings.welore_verify_ssl,
            transport=transport,
        )
        return cls(engine, executor)

    @classmethod
    def get_definition(cls) -> Dict[str, Any]:
        return {
            "type": cls.type,
            "version": cls.version,
            "description": cls.description,
            "properties": cls.properties,
        }

    # ==== Load options ====

    def get_resources(self) -> List[Dict[str, str]]:
        return [option.as_dict() for option in self.engine.extract_resources()]

    def get_operations(self, resource: str) -> List[Dict[str, str]]:
        if not resource:
            return []
        return [option.as_dict() for option in self.engine.extract_operations(resource)]

    def get_additional_fields(
        self, account: str, resource: str, operation: str
    ) -> List[Dict[str, str]]:
        if not resource or not operation:
            return []
        mapping = self.engine.resolve_mapping(resource, operation, account or "")
        return [
            {"name": _field_label(prop), "value": prop.name, "description": _field_description(prop)}
            for prop in mapping.properties
        ]

    def load_options(self, method: str, context: ParameterSource) -> List[Dict[str, str]]:
        resource = context.get_node_parameter("resource", 0, "")
        if method == "getResources":
            return self.get_resources()
        if method == "getOperations":
            return self.get_operations(resource)
        if method == "getAdditionalFields":
            return self.get_additional_fields(
                context.get_node_parameter("account", 0, ""),
                resource,
                context.get_node_parameter("operation", 0, ""),
            )
        raise ValueError(f"Unknown load options method: {method}")

    # ==== Execution ====

    async def execute(self, context: ParameterSource) -> List[Any]:
        items = context.get_input_data()
        account = context.get_node_parameter("account", 0, "")
        resource = context.get_node_parameter("resource", 0, "")
        operation = context.get_node_parameter("operation", 0, "")

        mapping = self.engine.resolve_mapping(resource, operation, account)
        lookup = context.get_credentials(CREDENTIAL_NAME)
        credentials = lookup.credentials if lookup.has_credentials else None
        if credentials is None:
            logger.info("Running %s.%s without credentials", resource, operation)
        elif credentials.origin():
            mapping = replace(
                mapping, url=_rebase(mapping.url, self.engine.api_origin, credentials.origin())
            )

        results: List[Any] = []
        for index in range(len(items)):
            entries = _parameter_entries(context.get_node_parameter("parameters", index, {}))
            descriptor = self.engine.finalize_request(
                mapping, [entry.model_dump() for entry in entries]
            )
            try:
                results.append(await self.executor.execute(descriptor, credentials))
            except RequestExecutionError as exc:
                if not context.continue_on_fail:
                    raise
                logger.warning("Item %s failed: %s", index, exc)
                results.append({"error": str(exc)})

        return results


def _parameter_entries(value: Any) -> List[ParameterEntry]:
    if isinstance(value, dict):
        value = value.get("parameter") or []
    if not isinstance(value, list):
        return []
    entries: List[ParameterEntry] = []
    for position, entry in enumerate(value):
        try:
            entries.append(ParameterEntry.model_validate(entry))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed parameter entry %s (%s errors)", position, exc.error_count()
            )
    return entries


def _rebase(url: str, configured_origin: str, origin: str) -> str:
    if url.startswith(configured_origin):
        return origin + url[len(configured_origin):]
    return url


def _field_label(prop: ParamFieldSpec) -> str:
    if prop.required:
        return f"{prop.name} (required)"
    return prop.name


def _field_description(prop: ParamFieldSpec) -> str:
    if prop.description:
        return prop.description
    return f"{prop.location.capitalize()} parameter of type {prop.type}"
