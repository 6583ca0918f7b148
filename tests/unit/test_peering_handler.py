"""Tests for the HvnPeeringConnectionHandler."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from hcp_provisioner.core import HCPProvider, ResourceInstance
from hcp_provisioner.core.client import NotFoundError
from hcp_provisioner.core.errors import MalformedIDError, TypeMismatchError
from hcp_provisioner.core.location import Location
from hcp_provisioner.core.scope import ProviderScope
from hcp_provisioner.engine.handlers import EngineContext
from hcp_provisioner.engine.peering_handler import HvnPeeringConnectionHandler
from hcp_provisioner.resources.base import ResourceRef
from hcp_provisioner.resources.peering import HvnPeeringConnectionResource

ORG = "11111111-1111-4111-8111-111111111111"
PRJ = "22222222-2222-4222-8222-222222222222"
OTHER = "33333333-3333-4333-8333-333333333333"
LOC = Location(organization_id=ORG, project_id=PRJ)

HVN_A = f"/project/{PRJ}/hashicorp.network.hvn/hvn-a"
HVN_B = f"/project/{PRJ}/hashicorp.network.hvn/hvn-b"
PEERING_LINK = f"/project/{PRJ}/hashicorp.network.peering/peer-1"


def _hvn_ref(hvn_id: str, project_id: str = PRJ) -> dict[str, Any]:
    return {
        "id": hvn_id,
        "type": "hashicorp.network.hvn",
        "location": {"organization_id": ORG, "project_id": project_id},
    }


def _peering() -> dict[str, Any]:
    return {
        "id": "peer-1",
        "hvn": _hvn_ref("hvn-a"),
        "target": {"hvn_target": {"hvn": _hvn_ref("hvn-b")}},
        "state": "ACTIVE",
        "created_at": "2024-01-01T00:00:00Z",
        "expires_at": "",
    }


def _prior(link: str = PEERING_LINK, hvn_1: str = HVN_A) -> ResourceInstance:
    return ResourceInstance(
        address="hcp_hvn_peering_connection.ab",
        resource_type="hcp_hvn_peering_connection",
        name="ab",
        id=link,
        attributes={"peering_id": "peer-1", "hvn_1": hvn_1, "hvn_2": HVN_B},
    )


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.get_peering.return_value = _peering()
    return client


@pytest.fixture
def ctx(mock_client: MagicMock) -> EngineContext:
    provider = HCPProvider.from_client(mock_client)
    return EngineContext(provider=provider, scope=ProviderScope(organization_id=ORG, project_id=PRJ))


@pytest.fixture
def handler() -> HvnPeeringConnectionHandler:
    return HvnPeeringConnectionHandler()


class TestResource:
    def test_references_match_hvn_ids(self) -> None:
        r = HvnPeeringConnectionResource(name="ab", peering_id="peer-1", hvn_1="hvn-a", hvn_2=HVN_B)
        assert r.references() == [
            ResourceRef("hcp_hvn", "hvn_id", "hvn-a"),
            ResourceRef("hcp_hvn", "hvn_id", "hvn-b", PRJ),
        ]

    def test_rejects_bad_peering_id(self) -> None:
        with pytest.raises(PydanticValidationError):
            HvnPeeringConnectionResource(name="ab", peering_id="x", hvn_1="a", hvn_2="b")


class TestValidate:
    def test_same_hvn_rejected(
        self, handler: HvnPeeringConnectionHandler, ctx: EngineContext
    ) -> None:
        r = HvnPeeringConnectionResource(name="ab", peering_id="peer-1", hvn_1="hvn-a", hvn_2=HVN_A)
        errors = handler.validate(ctx, r)
        assert errors == ["hcp_hvn_peering_connection.ab: hvn_1 and hvn_2 must be different networks"]

    def test_bad_link_reported(
        self, handler: HvnPeeringConnectionHandler, ctx: EngineContext
    ) -> None:
        r = HvnPeeringConnectionResource(
            name="ab", peering_id="peer-1", hvn_1="/project/x/hvn-a", hvn_2=HVN_B
        )
        errors = handler.validate(ctx, r)
        assert len(errors) == 1
        assert "invalid link URL" in errors[0]

    def test_planned_attributes_normalise_links(
        self, handler: HvnPeeringConnectionHandler, ctx: EngineContext
    ) -> None:
        r = HvnPeeringConnectionResource(name="ab", peering_id="peer-1", hvn_1="hvn-a", hvn_2=HVN_B)
        planned = handler.planned_attributes(ctx, r)
        assert planned["hvn_1"] == HVN_A
        assert planned["hvn_2"] == HVN_B

    def test_project_id_must_match_owning_hvn(
        self, handler: HvnPeeringConnectionHandler, ctx: EngineContext
    ) -> None:
        r = HvnPeeringConnectionResource(
            name="ab",
            peering_id="peer-1",
            project_id=PRJ,
            hvn_1=f"/project/{OTHER}/hashicorp.network.hvn/hvn-a",
            hvn_2=HVN_B,
        )
        errors = handler.validate(ctx, r)
        assert len(errors) == 1
        assert "does not match the project of hvn_1" in errors[0]


class TestCRUD:
    def test_create(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        r = HvnPeeringConnectionResource(name="ab", peering_id="peer-1", hvn_1="hvn-a", hvn_2="hvn-b")

        attrs = handler.create(ctx, r)

        location, hvn_id, body = mock_client.create_peering.call_args.args
        assert location == LOC
        assert hvn_id == "hvn-a"
        assert body["target"]["hvn_target"]["hvn"]["id"] == "hvn-b"
        assert attrs["self_link"] == PEERING_LINK
        assert attrs["hvn_1"] == HVN_A
        assert attrs["hvn_2"] == HVN_B

    def test_create_in_project_of_owning_hvn(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        other_loc = Location(organization_id=ORG, project_id=OTHER)
        peering = _peering()
        peering["hvn"] = _hvn_ref("hvn-a", OTHER)
        mock_client.get_peering.return_value = peering
        r = HvnPeeringConnectionResource(
            name="ab",
            peering_id="peer-1",
            hvn_1=f"/project/{OTHER}/hashicorp.network.hvn/hvn-a",
            hvn_2=HVN_B,
        )
        assert handler.validate(ctx, r) == []

        attrs = handler.create(ctx, r)

        location, hvn_id, body = mock_client.create_peering.call_args.args
        assert location == other_loc
        assert body["hvn"]["location"]["project_id"] == OTHER
        assert body["target"]["hvn_target"]["hvn"]["location"]["project_id"] == PRJ
        assert mock_client.get_peering.call_args.args == (other_loc, "hvn-a", "peer-1")
        assert attrs["project_id"] == OTHER
        assert attrs["self_link"] == f"/project/{OTHER}/hashicorp.network.peering/peer-1"

    def test_read(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        attrs = handler.read(ctx, _prior())
        assert attrs is not None
        assert mock_client.get_peering.call_args.args == (LOC, "hvn-a", "peer-1")

    def test_read_missing(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        mock_client.get_peering.side_effect = NotFoundError("gone", status_code=404)
        assert handler.read(ctx, _prior()) is None

    def test_delete_with_mismatched_link_makes_no_call(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        with pytest.raises(TypeMismatchError):
            handler.delete(ctx, _prior(link=HVN_A))
        mock_client.delete_peering.assert_not_called()

    def test_delete(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        handler.delete(ctx, _prior())
        mock_client.delete_peering.assert_called_once_with(LOC, "hvn-a", "peer-1")


class TestImport:
    def test_two_part_uses_provider_project(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        attrs = handler.import_resource(ctx, "ab", "hvn-a:peer-1")
        assert attrs is not None
        assert mock_client.get_peering.call_args.args == (LOC, "hvn-a", "peer-1")

    def test_three_part_uses_given_project(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        handler.import_resource(ctx, "ab", f"{OTHER}:hvn-a:peer-1")
        location = mock_client.get_peering.call_args.args[0]
        assert location == Location(organization_id=ORG, project_id=OTHER)

    def test_malformed_makes_no_call(
        self,
        handler: HvnPeeringConnectionHandler,
        ctx: EngineContext,
        mock_client: MagicMock,
    ) -> None:
        with pytest.raises(MalformedIDError, match="hvn_id"):
            handler.import_resource(ctx, "ab", "a:b:c:d")
        mock_client.get_peering.assert_not_called()
