"""Plan/apply/refresh/import against the HCP handlers with an in-memory client."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from hcp_provisioner.config.registry import default_registry
from hcp_provisioner.core import HCPProvider
from hcp_provisioner.core.state import State
from hcp_provisioner.engine import HCPEngine
from hcp_provisioner.engine.errors import ApplyError, ResourceImportError, ValidationError
from hcp_provisioner.engine.types import Action
from hcp_provisioner.resources import HvnPeeringConnectionResource, HvnResource

if TYPE_CHECKING:
    from pathlib import Path

    from tests.unit.conftest import FakeHCPClient

ORG = "11111111-1111-4111-8111-111111111111"
PRJ = "22222222-2222-4222-8222-222222222222"
HVN_A_LINK = f"/project/{PRJ}/hashicorp.network.hvn/hvn-a"


def _engine(tmp_path: Path, client: FakeHCPClient) -> HCPEngine:
    provider = HCPProvider.from_client(client)  # type: ignore[arg-type]
    return HCPEngine(
        provider=provider,
        state_path=tmp_path / "state.json",
        registry=default_registry(),
    )


def _network() -> list[HvnPeeringConnectionResource | HvnResource]:
    return [
        HvnPeeringConnectionResource(name="ab", peering_id="peer-ab", hvn_1="hvn-a", hvn_2="hvn-b"),
        HvnResource(name="b", hvn_id="hvn-b", cloud_provider="aws", region="us-west-2"),
        HvnResource(
            name="a",
            hvn_id="hvn-a",
            cloud_provider="aws",
            region="us-west-2",
            cidr_block="10.0.0.0/16",
        ),
    ]


def test_hvns_created_before_peering(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)

    plan = engine.plan(_network())

    assert [c.address for c in plan.changes] == [
        "hcp_hvn.a",
        "hcp_hvn.b",
        "hcp_hvn_peering_connection.ab",
    ]
    peering_change = plan.changes[-1]
    assert peering_change.desired is not None
    assert peering_change.desired["depends_on"] == ["hcp_hvn.a", "hcp_hvn.b"]

    engine.apply(plan)

    state = State.load(engine.state_path)
    assert state.organization_id == ORG
    assert state.resources["hcp_hvn.a"].id == HVN_A_LINK
    peering = state.resources["hcp_hvn_peering_connection.ab"]
    assert peering.id == f"/project/{PRJ}/hashicorp.network.peering/peer-ab"
    assert peering.attributes["hvn_1"] == HVN_A_LINK
    assert fake_client.calls == ["create_hvn:hvn-a", "create_hvn:hvn-b", "create_peering:peer-ab"]


def test_second_plan_is_noop(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))

    plan = engine.plan(_network())

    assert {c.action for c in plan.changes} == {Action.NOOP}


def test_changed_cidr_replaces_hvn(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))
    changed = _network()
    changed[2] = HvnResource(
        name="a", hvn_id="hvn-a", cloud_provider="aws", region="us-west-2", cidr_block="10.1.0.0/16"
    )

    plan = engine.plan(changed)
    update = next(c for c in plan.changes if c.address == "hcp_hvn.a")
    assert update.action == Action.UPDATE
    assert update.diff == {"cidr_block": {"from": "10.0.0.0/16", "to": "10.1.0.0/16"}}

    fake_client.calls.clear()
    engine.apply(plan)
    assert fake_client.calls == ["delete_hvn:hvn-a", "create_hvn:hvn-a"]


def test_destroy_removes_peering_first(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))
    fake_client.calls.clear()

    engine.apply(engine.plan(_network(), destroy=True))

    assert fake_client.calls[0] == "delete_peering:peer-ab"
    assert sorted(fake_client.calls[1:]) == ["delete_hvn:hvn-a", "delete_hvn:hvn-b"]
    assert State.load(engine.state_path).resources == {}


def test_refresh_drops_deleted_objects(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))
    fake_client.peerings.clear()

    state = engine.refresh()
    assert "hcp_hvn_peering_connection.ab" not in state.resources
    # Not persisted unless asked.
    assert "hcp_hvn_peering_connection.ab" in State.load(engine.state_path).resources

    engine.refresh(persist=True)
    assert "hcp_hvn_peering_connection.ab" not in State.load(engine.state_path).resources


def test_refresh_picks_up_remote_changes(tmp_path: Path, fake_client: FakeHCPClient) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))
    fake_client.networks[(PRJ, "hvn-b")]["cidr_block"] = "192.168.0.0/24"

    plan = engine.plan(_network())

    change = next(c for c in plan.changes if c.address == "hcp_hvn.b")
    assert change.action == Action.UPDATE
    assert change.diff == {"cidr_block": {"from": "192.168.0.0/24", "to": "172.25.16.0/20"}}


def test_missing_default_project_fails_validation(
    tmp_path: Path, fake_client: FakeHCPClient
) -> None:
    engine = _engine(tmp_path, fake_client)
    bad = HvnResource(
        name="x", hvn_id="hvn-x", cloud_provider="aws", region="us-west-2", project_id="nope"
    )

    with pytest.raises(ValidationError, match="Project ID"):
        engine.plan([bad])
    assert fake_client.calls == []


def test_apply_failure_keeps_applied_in_state(
    tmp_path: Path, fake_client: FakeHCPClient
) -> None:
    engine = _engine(tmp_path, fake_client)
    plan = engine.plan(_network())

    def _boom(*_args: object) -> None:
        raise RuntimeError("quota exceeded")

    fake_client.create_peering = _boom  # type: ignore[method-assign]
    with pytest.raises(ApplyError, match="quota exceeded") as exc_info:
        engine.apply(plan)

    assert exc_info.value.result.summary()["create"] == 2
    assert set(State.load(engine.state_path).resources) == {"hcp_hvn.a", "hcp_hvn.b"}


def test_failed_replacement_drops_deleted_object_from_state(
    tmp_path: Path, fake_client: FakeHCPClient
) -> None:
    engine = _engine(tmp_path, fake_client)
    engine.apply(engine.plan(_network()))
    changed = _network()
    changed[1] = HvnResource(
        name="b", hvn_id="hvn-b", cloud_provider="aws", region="us-west-2", cidr_block="10.9.0.0/16"
    )
    plan = engine.plan(changed)
    serial = State.load(engine.state_path).serial

    def _boom(*_args: object) -> None:
        raise RuntimeError("quota exceeded")

    fake_client.create_hvn = _boom  # type: ignore[method-assign]
    with pytest.raises(ApplyError, match="quota exceeded"):
        engine.apply(plan)

    state = State.load(engine.state_path)
    assert "hcp_hvn.b" not in state.resources
    assert state.serial == serial + 1
    assert (PRJ, "hvn-b") not in fake_client.networks

    # The next plan recreates it instead of planning an update.
    change = next(c for c in engine.plan(changed).changes if c.address == "hcp_hvn.b")
    assert change.action == Action.CREATE


def test_peering_link_only_depends_on_hvn_in_its_project(
    tmp_path: Path, fake_client: FakeHCPClient
) -> None:
    engine = _engine(tmp_path, fake_client)
    other = "33333333-3333-4333-8333-333333333333"
    resources = _network()
    resources[0] = HvnPeeringConnectionResource(
        name="ab",
        peering_id="peer-ab",
        hvn_1="hvn-a",
        hvn_2=f"/project/{other}/hashicorp.network.hvn/hvn-b",
    )

    plan = engine.plan(resources)

    peering_change = next(c for c in plan.changes if c.address == "hcp_hvn_peering_connection.ab")
    assert peering_change.desired is not None
    assert peering_change.desired["depends_on"] == ["hcp_hvn.a"]


class TestImport:
    def test_import_hvn_by_id(self, tmp_path: Path, fake_client: FakeHCPClient) -> None:
        engine = _engine(tmp_path, fake_client)
        engine.apply(engine.plan(_network()[1:]))
        State(organization_id=ORG).save(engine.state_path)

        inst = engine.import_resource("hcp_hvn", "a", "hvn-a")

        assert inst.id == HVN_A_LINK
        assert inst.attributes["cidr_block"] == "10.0.0.0/16"
        assert "hcp_hvn.a" in State.load(engine.state_path).resources

    def test_import_peering_by_composite_id(
        self, tmp_path: Path, fake_client: FakeHCPClient
    ) -> None:
        engine = _engine(tmp_path, fake_client)
        engine.apply(engine.plan(_network()))
        State(organization_id=ORG).save(engine.state_path)

        inst = engine.import_resource("hcp_hvn_peering_connection", "ab", f"{PRJ}:hvn-a:peer-ab")

        assert inst.attributes["hvn_2"] == f"/project/{PRJ}/hashicorp.network.hvn/hvn-b"
        plan = engine.plan(_network())
        peering = next(c for c in plan.changes if c.address == "hcp_hvn_peering_connection.ab")
        assert peering.action == Action.NOOP

    def test_import_missing(self, tmp_path: Path, fake_client: FakeHCPClient) -> None:
        engine = _engine(tmp_path, fake_client)
        with pytest.raises(ResourceImportError, match="no remote object"):
            engine.import_resource("hcp_hvn", "a", "hvn-a")

    def test_import_already_managed(self, tmp_path: Path, fake_client: FakeHCPClient) -> None:
        engine = _engine(tmp_path, fake_client)
        engine.apply(engine.plan(_network()))
        with pytest.raises(ResourceImportError, match="already managed"):
            engine.import_resource("hcp_hvn", "a", "hvn-a")
