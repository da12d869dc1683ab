"""weLore API credential type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CredentialsError


CREDENTIAL_NAME = "weLoreCredentialsApi"

CREDENTIAL_DEFINITION: Dict[str, Any] = {
    "name": CREDENTIAL_NAME,
    "displayName": "weLore API",
    "documentationUrl": "https://api-weafinity.madfenix.com/docs",
    "properties": [
        {
            "displayName": "Base URL",
            "name": "baseUrl",
            "type": "string",
            "default": "",
            "placeholder": "https://api-weafinity.madfenix.com/api",
        },
        {
            "displayName": "Token",
            "name": "token",
            "type": "string",
            "typeOptions": {"password": True},
            "default": "",
        },
    ],
}


class WeLoreCredentials(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    base_url: str = Field(default="", alias="baseUrl")
    token: str = Field(default="")

    def origin(self) -> str:
        """Scheme and host from ``baseUrl``; a trailing ``/api`` is dropped since schema paths carry it."""
        origin = self.base_url.strip().rstrip("/")
        if origin.endswith("/api"):
            origin = origin[: -len("/api")]
        return origin

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


@dataclass(frozen=True)
class CredentialLookup:
    """Outcome of asking the host for credentials.

    ``has_credentials`` is False when the node runs without credentials
    configured; lookup failures are raised as ``CredentialsError`` instead.
    """

    has_credentials: bool
    credentials: Optional[WeLoreCredentials] = None

    @classmethod
    def found(cls, data: Dict[str, Any]) -> "CredentialLookup":
        try:
            credentials = WeLoreCredentials.model_validate(data)
        except ValidationError as exc:
            raise CredentialsError(f"Invalid {CREDENTIAL_NAME} credentials: {exc}") from exc
        return cls(has_credentials=True, credentials=credentials)

    @classmethod
    def missing(cls) -> "CredentialLookup":
        return cls(has_credentials=False)
