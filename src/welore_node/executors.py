"""Execution layer for resolved weLore requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .credentials import WeLoreCredentials
from .errors import RequestExecutionError
from .logging import redact_payload
from .models import RequestDescriptor

logger = logging.getLogger(__name__)


class CredentialInjector:
    def __init__(self, credentials: Optional[WeLoreCredentials]) -> None:
        self.credentials = credentials

    def build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.credentials is not None:
            headers.update(self.credentials.auth_headers())
        return headers


class RequestExecutor:
    """Sends one request descriptor and returns the decoded JSON response.

    Failures are not retried; a non-2xx status or transport error is raised
    as ``RequestExecutionError``.
    """

    def __init__(
        self,
        timeout_seconds: float = 30,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.transport = transport

    async def execute(
        self,
        descriptor: RequestDescriptor,
        credentials: Optional[WeLoreCredentials] = None,
    ) -> Any:
        headers = CredentialInjector(credentials).build_headers()
        logger.info(
            "Sending %s %s query=%s body=%s",
            descriptor.method,
            descriptor.url,
            redact_payload(descriptor.query or {}),
            redact_payload(descriptor.body or {}),
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
                transport=self.transport,
            ) as client:
                response = await client.request(
                    descriptor.method,
                    descriptor.url,
                    headers=headers,
                    params=descriptor.query,
                    json=descriptor.body,
                )
        except httpx.HTTPError as exc:
            raise RequestExecutionError(
                f"Request {descriptor.method} {descriptor.url} failed: {exc}"
            ) from exc

        if not response.is_success:
            raise RequestExecutionError(
                f"Request failed with status code {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RequestExecutionError(
                f"Response from {descriptor.url} is not valid JSON",
                status_code=response.status_code,
                response_text=response.text,
            ) from exc
