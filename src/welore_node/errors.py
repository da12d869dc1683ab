"""Error types raised by the weLore node."""

from __future__ import annotations

from typing import Optional


class WeLoreError(Exception):
    pass


class SchemaLoadError(WeLoreError):
    pass


class MappingResolutionError(WeLoreError):
    pass


class OperationNotFoundError(MappingResolutionError):
    def __init__(self, resource: str, operation_id: str) -> None:
        self.resource = resource
        self.operation_id = operation_id
        super().__init__(f"No operation '{operation_id}' found for resource '{resource}'")


class RequestExecutionError(WeLoreError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class CredentialsError(WeLoreError):
    pass
