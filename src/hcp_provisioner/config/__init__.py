"""YAML configuration loading and convenience plan/apply API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import SecretStr

from hcp_provisioner.config.loader import ConfigError, load_config
from hcp_provisioner.config.registry import default_registry
from hcp_provisioner.config.schema import Config, ProviderConfig
from hcp_provisioner.core.provider import ClientCredentials, HCPProvider
from hcp_provisioner.core.state import State
from hcp_provisioner.engine.data_sources import read_hvn
from hcp_provisioner.engine.engine import HCPEngine, ProgressCallback
from hcp_provisioner.engine.handlers import EngineContext
from hcp_provisioner.engine.lock import state_lock
from hcp_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from hcp_provisioner.core.scope import Diagnostic, ProviderScope
    from hcp_provisioner.core.state import ResourceInstance
    from hcp_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "import_resource",
    "load",
    "load_config",
    "lookup_hvn",
    "plan",
    "plan_and_apply",
    "provider_from_config",
    "refresh",
    "save_state",
    "scope",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def provider_from_config(config: Config) -> HCPProvider:
    """Return the ``HCPProvider`` for the provider section of *config*.

    The provider is built once per loaded config and reused, so the default
    scope is resolved (and any warning emitted) only once.
    """
    if config._provider is not None:
        return config._provider
    if not config.provider.client_id:
        raise ConfigError("provider.client_id is required (set in YAML or HCP_CLIENT_ID env var)")
    if not config.provider.client_secret:
        raise ConfigError("provider.client_secret is required (set HCP_CLIENT_SECRET env var)")
    credentials = ClientCredentials(
        client_id=config.provider.client_id,
        client_secret=SecretStr(config.provider.client_secret),
    )
    config._provider = HCPProvider(
        credentials=credentials,
        project_id=config.provider.project_id,
        api_host=config.provider.api_host,
    )
    return config._provider


def _engine_from_config(config: Config) -> HCPEngine:
    return HCPEngine(
        provider=provider_from_config(config),
        state_path=config.state_path,
        registry=default_registry(),
    )


def scope(config: Config) -> tuple[ProviderScope, list[Diagnostic]]:
    """Resolve the provider's default organization/project and any warnings."""
    provider = provider_from_config(config)
    return provider.scope, provider.diagnostics


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    """Plan changes for the given configuration."""
    return _engine_from_config(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    """Apply a previously computed plan."""
    return _engine_from_config(config).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    """Plan and apply in one step."""
    engine = _engine_from_config(config)
    plan_obj = engine.plan(config.resources, destroy=destroy, refresh=refresh)
    return engine.apply(plan_obj)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Refresh state from HCP (not persisted).

    Returns the list of drift changes and the new state. Call
    :func:`save_state` to persist the returned state to disk.
    """
    engine = _engine_from_config(config)
    new_state = engine.refresh()
    old_state = State.load_or_create(config.state_path, new_state.organization_id)
    return _build_drift_changes(old_state, new_state), new_state


def save_state(config: Config, state: State) -> None:
    """Persist state to disk."""
    with state_lock(config.state_path):
        state.serial += 1
        state.save(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    """Detect drift between the state file and HCP."""
    changes, _ = refresh(config)
    return changes


def import_resource(
    config: Config, resource_type: str, name: str, import_id: str
) -> ResourceInstance:
    """Import an existing HCP object into state."""
    return _engine_from_config(config).import_resource(resource_type, name, import_id)


def lookup_hvn(config: Config, hvn_id: str, project_id: str | None = None) -> dict[str, Any]:
    """Read an HVN without managing it."""
    provider = provider_from_config(config)
    return read_hvn(EngineContext(provider=provider, scope=provider.scope), hvn_id, project_id)


def _build_drift_changes(old_state: State, new_state: State) -> list[ResourceChange]:
    """Compare old vs new state and return a list of drift changes."""
    changes: list[ResourceChange] = []
    for addr, inst in new_state.resources.items():
        old = old_state.resources.get(addr)
        if old is None or old.attributes == inst.attributes:
            continue
        all_keys = set(old.attributes) | set(inst.attributes)
        diff = {
            k: {"from": old.attributes.get(k), "to": inst.attributes.get(k)}
            for k in sorted(all_keys)
            if old.attributes.get(k) != inst.attributes.get(k)
        }
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=inst.resource_type,
                action=Action.UPDATE,
                prior=dict(old.attributes),
                planned=dict(inst.attributes),
                diff=diff,
            )
        )
    for addr in sorted(set(old_state.resources) - set(new_state.resources)):
        old = old_state.resources[addr]
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=old.resource_type,
                action=Action.DELETE,
                prior=dict(old.attributes),
            )
        )
    return changes
