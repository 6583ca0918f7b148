"""Plan and apply engine for HCP resources."""

from hcp_provisioner.engine.engine import HCPEngine, ProgressCallback
from hcp_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    ResourceImportError,
    StalePlanError,
    StateLockError,
    StateOrganizationMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from hcp_provisioner.engine.handlers import EngineContext, ResourceHandler
from hcp_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from hcp_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "HCPEngine",
    "Plan",
    "PlanMetadata",
    "ProgressCallback",
    "ResourceChange",
    "ResourceHandler",
    "ResourceImportError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateLockError",
    "StateOrganizationMismatchError",
    "UnknownResourceTypeError",
    "ValidationError",
]
