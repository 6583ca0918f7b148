"""Shared fixtures for unit tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from hcp_provisioner.config import load
from hcp_provisioner.core.client import NotFoundError, Organization, Project

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from hcp_provisioner.config.schema import Config
    from hcp_provisioner.core.location import Location

ORG_ID = "11111111-1111-4111-8111-111111111111"
PROJECT_ID = "22222222-2222-4222-8222-222222222222"

_HCP_ENV_VARS = (
    "HCP_CLIENT_ID",
    "HCP_CLIENT_SECRET",
    "HCP_PROJECT_ID",
    "HCP_API_HOST",
    "HCP_LOG",
)


@pytest.fixture(autouse=True)
def _clean_hcp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove HCP_* env vars so unit tests don't leak host config."""
    for var in _HCP_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


class FakeHCPClient:
    """In-memory stand-in for ``HCPClient`` keyed by (project, object id)."""

    def __init__(self) -> None:
        self.projects = [
            Project(
                id=PROJECT_ID,
                name="default",
                created_at=datetime(2024, 1, 1, tzinfo=UTC),
                organization_id=ORG_ID,
            )
        ]
        self.networks: dict[tuple[str, str], dict[str, Any]] = {}
        self.peerings: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.calls: list[str] = []

    def get_project(self, project_id: str) -> Project:
        for p in self.projects:
            if p.id == project_id:
                return p
        raise NotFoundError(f"project {project_id} not found", status_code=404)

    def list_organizations(self) -> list[Organization]:
        return [Organization(id=ORG_ID, name="acme")]

    def list_projects(self, scope_id: str, scope_type: str = "ORGANIZATION") -> list[Project]:
        _ = scope_type
        return [p for p in self.projects if p.organization_id == scope_id]

    def get_hvn(self, location: Location, hvn_id: str) -> dict[str, Any]:
        try:
            return self.networks[(str(location.project_id), hvn_id)]
        except KeyError as e:
            raise NotFoundError(f"hvn {hvn_id} not found", status_code=404) from e

    def create_hvn(self, location: Location, network: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(f"create_hvn:{network['id']}")
        stored = {**network, "state": "STABLE", "created_at": "2024-01-01T00:00:00Z"}
        self.networks[(str(location.project_id), network["id"])] = stored
        return stored

    def delete_hvn(self, location: Location, hvn_id: str) -> None:
        self.calls.append(f"delete_hvn:{hvn_id}")
        if self.networks.pop((str(location.project_id), hvn_id), None) is None:
            raise NotFoundError(f"hvn {hvn_id} not found", status_code=404)

    def get_peering(self, location: Location, hvn_id: str, peering_id: str) -> dict[str, Any]:
        try:
            return self.peerings[(str(location.project_id), hvn_id, peering_id)]
        except KeyError as e:
            raise NotFoundError(f"peering {peering_id} not found", status_code=404) from e

    def create_peering(
        self, location: Location, hvn_id: str, peering: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(f"create_peering:{peering['id']}")
        stored = {**peering, "state": "ACTIVE"}
        self.peerings[(str(location.project_id), hvn_id, peering["id"])] = stored
        return stored

    def delete_peering(self, location: Location, hvn_id: str, peering_id: str) -> None:
        self.calls.append(f"delete_peering:{peering_id}")
        if self.peerings.pop((str(location.project_id), hvn_id, peering_id), None) is None:
            raise NotFoundError(f"peering {peering_id} not found", status_code=404)


@pytest.fixture
def fake_client() -> FakeHCPClient:
    return FakeHCPClient()
