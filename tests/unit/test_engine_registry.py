from typing import ClassVar

import pytest

from hcp_provisioner.engine.errors import UnknownResourceTypeError
from hcp_provisioner.engine.handlers import ResourceHandler
from hcp_provisioner.engine.registry import ResourceTypeRegistry
from hcp_provisioner.resources.base import Resource


class DummyResource(Resource):
    resource_type: ClassVar[str] = "test_dummy"
    link_type: ClassVar[str] = "test.dummy"
    plan_priority: ClassVar[int] = 20


class EarlyResource(Resource):
    resource_type: ClassVar[str] = "test_early"
    link_type: ClassVar[str] = "test.early"
    plan_priority: ClassVar[int] = 5


class SameLinkResource(Resource):
    resource_type: ClassVar[str] = "test_same_link"
    link_type: ClassVar[str] = "test.dummy"


class NoLinkResource(Resource):
    resource_type: ClassVar[str] = "test_no_link"


class DummyHandler(ResourceHandler["DummyResource"]):
    pass


def test_register_and_get() -> None:
    registry = ResourceTypeRegistry()
    handler = DummyHandler()

    registry.register(DummyResource, handler)
    reg = registry.get("test_dummy")

    assert reg.model is DummyResource
    assert reg.handler is handler
    assert reg.link_type == "test.dummy"
    assert reg.priority == 20
    assert "test_dummy" in registry


def test_unknown_type() -> None:
    with pytest.raises(UnknownResourceTypeError, match="test_missing"):
        ResourceTypeRegistry().get("test_missing")


def test_duplicate_resource_type_rejected() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyResource, DummyHandler())
    with pytest.raises(ValueError, match="Resource type already registered"):
        registry.register(DummyResource, DummyHandler())


def test_duplicate_link_type_rejected() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyResource, DummyHandler())
    with pytest.raises(ValueError, match="Link type already registered"):
        registry.register(SameLinkResource, DummyHandler())
    assert "test_same_link" not in registry


def test_missing_link_type_rejected() -> None:
    with pytest.raises(ValueError, match="link_type"):
        ResourceTypeRegistry().register(NoLinkResource, DummyHandler())


def test_iteration_follows_priority() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyResource, DummyHandler())
    registry.register(EarlyResource, DummyHandler())

    assert registry.resource_types() == ["test_early", "test_dummy"]
