"""Thin HTTP client for the HCP resource-manager and network APIs."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

import requests
from pydantic import BaseModel, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

if TYPE_CHECKING:
    from hcp_provisioner.core.location import Location

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "api.cloud.hashicorp.com"
DEFAULT_AUTH_URL = "https://auth.idp.hashicorp.com/oauth2/token"

_RESOURCE_MANAGER = "/resource-manager/2019-12-10"
_NETWORK = "/network/2020-09-07"


class APIError(Exception):
    """Raised when the HCP API returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(APIError):
    """Raised when the requested object does not exist (HTTP 404)."""


def _validated(schema: Any, data: Any, what: str) -> Any:
    """Validate *data* against *schema*, reporting a malformed body as ``APIError``."""
    try:
        return TypeAdapter(schema).validate_python(data)
    except PydanticValidationError as e:
        raise APIError(f"malformed {what} in HCP response: {e}") from e


def _member(payload: dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise APIError(f"HCP response has no {key!r} member")
    return payload[key]


class Organization(BaseModel):
    id: str
    name: str = ""


class Project(BaseModel):
    """A project as returned by the resource manager.

    The API nests the owning organization under ``parent``; it is flattened to
    ``organization_id`` here.
    """

    id: str
    name: str = ""
    created_at: datetime
    organization_id: str = ""

    @model_validator(mode="before")
    @classmethod
    def _flatten_parent(cls, data: Any) -> Any:
        if isinstance(data, dict) and "parent" in data:
            data = dict(data)
            parent = data.pop("parent") or {}
            data.setdefault("organization_id", parent.get("id", ""))
        return data


class _Token(BaseModel):
    access_token: str
    expires_in: float = 3600.0
    obtained_at: float = Field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.obtained_at + self.expires_in


class HCPClient:
    """Typed access to the HCP endpoints used by the provisioner.

    Authenticates with an OAuth2 client-credentials exchange and reuses the
    bearer token until shortly before it expires. No retries are performed.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        api_host: str = DEFAULT_API_HOST,
        auth_url: str = DEFAULT_AUTH_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = api_host if "://" in api_host else f"https://{api_host}"
        self._auth_url = auth_url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._token: _Token | None = None

    # -- transport ---------------------------------------------------------

    def _bearer_token(self) -> str:
        if self._token is not None and self._token.expires_at > time.time() + 60:
            return self._token.access_token

        resp = self._session.post(
            self._auth_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "audience": "https://api.hashicorp.cloud",
            },
            timeout=self._timeout,
        )
        if not resp.ok:
            raise APIError(
                f"unable to obtain access token: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        payload = self._json(resp, "POST", self._auth_url)
        self._token = _validated(_Token, payload, "access token")
        logger.debug("Obtained access token for client %s", self._client_id)
        return self._token.access_token

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self._base_url + path
        logger.debug("%s %s", method, url)
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self._bearer_token()}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise APIError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(f"{method} {path}: not found", status_code=404)
        if not resp.ok:
            try:
                detail = resp.json().get("message", resp.text)
            except ValueError:
                detail = resp.text
            raise APIError(
                f"{method} {path} failed with HTTP {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        return self._json(resp, method, path)

    @staticmethod
    def _json(resp: requests.Response, method: str, path: str) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as e:
            raise APIError(
                f"{method} {path} returned a non-JSON body", status_code=resp.status_code
            ) from e
        if not isinstance(payload, dict):
            raise APIError(
                f"{method} {path} returned {type(payload).__name__}, expected an object",
                status_code=resp.status_code,
            )
        return payload

    # -- resource manager --------------------------------------------------

    def get_project(self, project_id: str) -> Project:
        payload = self._request("GET", f"{_RESOURCE_MANAGER}/projects/{project_id}")
        return _validated(Project, _member(payload, "project"), "project")

    def list_organizations(self) -> list[Organization]:
        payload = self._request("GET", f"{_RESOURCE_MANAGER}/organizations")
        organizations = payload.get("organizations", [])
        return _validated(list[Organization], organizations, "organization list")

    def list_projects(self, scope_id: str, scope_type: str = "ORGANIZATION") -> list[Project]:
        payload = self._request(
            "GET",
            f"{_RESOURCE_MANAGER}/projects",
            params={"scope.id": scope_id, "scope.type": scope_type},
        )
        return _validated(list[Project], payload.get("projects", []), "project list")

    # -- network -----------------------------------------------------------

    @staticmethod
    def _networks_path(location: Location) -> str:
        return (
            f"{_NETWORK}/organizations/{location.organization_id}"
            f"/projects/{location.project_id}/networks"
        )

    def get_hvn(self, location: Location, hvn_id: str) -> dict[str, Any]:
        payload = self._request("GET", f"{self._networks_path(location)}/{hvn_id}")
        return _member(payload, "network")

    def create_hvn(self, location: Location, network: dict[str, Any]) -> dict[str, Any]:
        payload = self._request(
            "POST", self._networks_path(location), json={"network": network}
        )
        return payload.get("network", network)

    def delete_hvn(self, location: Location, hvn_id: str) -> None:
        self._request("DELETE", f"{self._networks_path(location)}/{hvn_id}")

    def get_peering(self, location: Location, hvn_id: str, peering_id: str) -> dict[str, Any]:
        payload = self._request(
            "GET", f"{self._networks_path(location)}/{hvn_id}/peerings/{peering_id}"
        )
        return _member(payload, "peering")

    def create_peering(
        self, location: Location, hvn_id: str, peering: dict[str, Any]
    ) -> dict[str, Any]:
        payload = self._request(
            "POST",
            f"{self._networks_path(location)}/{hvn_id}/peerings",
            json={"peering": peering},
        )
        return payload.get("peering", peering)

    def delete_peering(self, location: Location, hvn_id: str, peering_id: str) -> None:
        self._request(
            "DELETE", f"{self._networks_path(location)}/{hvn_id}/peerings/{peering_id}"
        )
