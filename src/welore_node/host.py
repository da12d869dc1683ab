"""Capabilities the node needs from its host runtime."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from .credentials import CredentialLookup, WeLoreCredentials
from .models import RequestDescriptor


logger = logging.getLogger(__name__)


class ParameterSource(Protocol):
    continue_on_fail: bool

    def get_node_parameter(self, name: str, item_index: int = 0, default: Any = None) -> Any:
        ...

    def get_input_data(self) -> List[Dict[str, Any]]:
        ...

    def get_credentials(self, name: str) -> CredentialLookup:
        ...


class HttpExecutor(Protocol):
    async def execute(
        self,
        descriptor: RequestDescriptor,
        credentials: Optional[WeLoreCredentials] = None,
    ) -> Any:
        ...


class ExecutionContext:
    """In-memory ``ParameterSource`` for running the node outside a host.

    A parameter value may be a callable; it is called with the item's JSON
    data, standing in for the host's per-item expression evaluation.
    """

    def __init__(
        self,
        parameters: Dict[str, Any],
        credentials: Optional[Dict[str, Dict[str, Any]]] = None,
        input_data: Optional[List[Dict[str, Any]]] = None,
        continue_on_fail: bool = False,
    ) -> None:
        self._parameters = parameters
        self._credentials = credentials or {}
        self._input_data = input_data if input_data is not None else [{"json": {}}]
        self.continue_on_fail = continue_on_fail

    def get_node_parameter(self, name: str, item_index: int = 0, default: Any = None) -> Any:
        value = self._parameters.get(name, default)
        if callable(value):
            return value(self._item_json(item_index))
        return value

    def get_input_data(self) -> List[Dict[str, Any]]:
        return self._input_data

    def get_credentials(self, name: str) -> CredentialLookup:
        data = self._credentials.get(name)
        if data is None:
            logger.debug("No credentials configured for %s", name)
            return CredentialLookup.missing()
        return CredentialLookup.found(data)

    def _item_json(self, item_index: int) -> Dict[str, Any]:
        if 0 <= item_index < len(self._input_data):
            return self._input_data[item_index].get("json") or {}
        return {}
