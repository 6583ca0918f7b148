"""Plan/apply engine."""

from __future__ import annotations

import contextlib
import heapq
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from hcp_provisioner import __version__
from hcp_provisioner.core.state import (
    ResourceInstance,
    State,
    compute_attributes_hash,
    compute_state_digest,
)
from hcp_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    ResourceImportError,
    StalePlanError,
    StateOrganizationMismatchError,
    ValidationError,
)
from hcp_provisioner.engine.handlers import EngineContext
from hcp_provisioner.engine.lock import state_lock
from hcp_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from hcp_provisioner.core import HCPProvider
    from hcp_provisioner.engine.handlers import ResourceHandler
    from hcp_provisioner.engine.registry import ResourceTypeRegistry
    from hcp_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def _values_differ(desired: Any, prior: Any) -> bool:
    """Compare a desired value against the stored one.

    For dicts only keys present in *desired* are compared, so attributes the
    remote side adds (computed fields) never show up as drift.
    """
    if isinstance(desired, dict) and isinstance(prior, dict):
        return any(_values_differ(v, prior.get(k)) for k, v in desired.items())
    return desired != prior


def _topological_order(
    nodes: Iterable[str],
    dependencies: Mapping[str, Iterable[str]],
    sort_key: Callable[[str], tuple[int, str]],
) -> list[str]:
    """Dependencies first; ties broken by *sort_key* (priority, then address)."""
    indegree: dict[str, int] = dict.fromkeys(nodes, 0)
    dependents: dict[str, list[str]] = {n: [] for n in indegree}
    for node in indegree:
        for dep in set(dependencies.get(node, [])):
            if dep in indegree and dep != node:
                indegree[node] += 1
                dependents[dep].append(node)

    ready = [(sort_key(n), n) for n, deg in indegree.items() if deg == 0]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for child in dependents[node]:
            indegree[child] -= 1
            if indegree[child] == 0:
                heapq.heappush(ready, (sort_key(child), child))

    if len(order) != len(indegree):
        raise DependencyCycleError(sorted(set(indegree) - set(order)))
    return order


class HCPEngine:
    """Terraform-like plan/apply engine for HCP resources."""

    def __init__(
        self,
        *,
        provider: HCPProvider,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._state_path = state_path
        self._registry = registry

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider, scope=self._provider.scope)

    def _load_state(self) -> State:
        org_id = self._provider.scope.organization_id
        state = State.load_or_create(self._state_path, organization_id=org_id)
        if state.organization_id != org_id:
            raise StateOrganizationMismatchError(org_id, state.organization_id)
        logger.debug("State loaded: serial=%d, %d resources", state.serial, len(state.resources))
        return state

    def _load_state_for_apply(self, plan: Plan) -> State:
        if self._state_path.exists():
            return self._load_state()
        org_id = self._provider.scope.organization_id
        if plan.metadata.organization_id != org_id:
            raise StateOrganizationMismatchError(org_id, plan.metadata.organization_id)
        # No state on disk yet: start from the lineage the plan was made against.
        return State(
            organization_id=org_id,
            lineage=plan.metadata.state_lineage,
            serial=plan.metadata.state_serial,
        )

    def _refresh_state_in_place(self, state: State) -> bool:
        logger.debug("Refreshing state from HCP")
        changed = False
        ctx = self._ctx()

        for address, inst in list(state.resources.items()):
            handler = self._registry.get(inst.resource_type).handler
            attrs = handler.read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists remotely; removing from state", address)
                del state.resources[address]
                changed = True
                continue

            new_hash = compute_attributes_hash(attrs)
            if new_hash != inst.attributes_hash:
                inst.attributes = attrs
                inst.attributes_hash = new_hash
                inst.updated_at = datetime.now(UTC)
                changed = True

        logger.debug("State refreshed, changed=%s", changed)
        return changed

    def refresh(self, *, persist: bool = False) -> State:
        """Refresh state from HCP and return it, optionally writing it back."""
        with state_lock(self._state_path) if persist else contextlib.nullcontext():
            state = self._load_state()
            changed = self._refresh_state_in_place(state)
            if changed and persist:
                state.serial += 1
                state.save(self._state_path)
        return state

    def _resolve_deps(
        self, desired_by_addr: dict[str, Resource], default_project_id: str | None
    ) -> dict[str, list[str]]:
        """Explicit ``depends_on`` plus implicit references to other desired resources.

        A reference only matches resources in the project it points at.
        """
        by_value: dict[tuple[str, str, Any], list[str]] = {}
        for addr, r in desired_by_addr.items():
            for field, value in r.model_dump(exclude={"address"}).items():
                if isinstance(value, str):
                    by_value.setdefault((r.resource_type, field, value), []).append(addr)

        def project_of(r: Resource) -> str | None:
            return r.project_id or default_project_id

        dep_map: dict[str, list[str]] = {}
        for addr, r in desired_by_addr.items():
            deps = list(r.depends_on)
            for ref in r.references():
                wanted = ref.project_id or project_of(r)
                for ref_addr in by_value.get((ref.resource_type, ref.attribute, ref.value), []):
                    if project_of(desired_by_addr[ref_addr]) != wanted:
                        continue
                    if ref_addr != addr and ref_addr not in deps:
                        deps.append(ref_addr)
            dep_map[addr] = deps
        return dep_map

    def _classify_change(
        self, ctx: EngineContext, resource: Resource, state: State, deps: list[str]
    ) -> ResourceChange:
        handler = self._registry.get(resource.resource_type).handler
        desired_dump = resource.model_dump(exclude_none=True, exclude={"address"})
        desired_dump["depends_on"] = deps
        planned = handler.planned_attributes(ctx, resource)

        prior_inst = state.resources.get(resource.address)
        if prior_inst is None:
            logger.debug("Classified %s as create", resource.address)
            return ResourceChange(
                address=resource.address,
                resource_type=resource.resource_type,
                action=Action.CREATE,
                desired=desired_dump,
                planned=planned,
            )

        prior = dict(prior_inst.attributes)
        diff = {
            k: {"from": prior.get(k), "to": v}
            for k, v in planned.items()
            if _values_differ(v, prior.get(k))
        }
        action = Action.UPDATE if diff else Action.NOOP
        logger.debug("Classified %s as %s", resource.address, action.value)
        return ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=action,
            desired=desired_dump,
            prior=prior,
            planned=planned,
            diff=diff or None,
        )

    def _sort_key(self, resource_type: str, address: str) -> tuple[int, str]:
        return self._registry.get(resource_type).priority, address

    def _plan_deletes(self, state: State, addrs: set[str]) -> list[ResourceChange]:
        """Plan deletes for *addrs*, dependents before their dependencies."""
        order = _topological_order(
            addrs,
            {a: state.resources[a].dependencies for a in addrs},
            lambda a: self._sort_key(state.resources[a].resource_type, a),
        )
        order.reverse()
        return [
            ResourceChange(
                address=addr,
                resource_type=state.resources[addr].resource_type,
                action=Action.DELETE,
                prior=dict(state.resources[addr].attributes),
            )
            for addr in order
        ]

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        ctx = self._ctx()
        # Only a refreshing plan writes state.
        with state_lock(self._state_path) if refresh else contextlib.nullcontext():
            state = self._load_state()
            if refresh and self._refresh_state_in_place(state):
                state.serial += 1
                state.save(self._state_path)

        desired_by_addr: dict[str, Resource] = {}
        for r in resources:
            if r.address in desired_by_addr:
                raise DuplicateAddressError(r.address)
            self._registry.get(r.resource_type)
            desired_by_addr[r.address] = r

        if not destroy:
            errors: list[str] = []
            for r in desired_by_addr.values():
                errors.extend(self._registry.get(r.resource_type).handler.validate(ctx, r))
                for dep in r.depends_on:
                    if dep not in desired_by_addr and dep not in state.resources:
                        errors.append(f"Resource '{r.address}' depends on unknown address '{dep}'")
            if errors:
                raise ValidationError(errors)

        state_addrs = set(state.resources)
        if destroy:
            changes = self._plan_deletes(state, state_addrs)
        else:
            dep_map = self._resolve_deps(desired_by_addr, ctx.scope.project_id)
            order = _topological_order(
                desired_by_addr,
                dep_map,
                lambda a: self._sort_key(desired_by_addr[a].resource_type, a),
            )
            changes = [
                self._classify_change(ctx, desired_by_addr[addr], state, dep_map[addr])
                for addr in order
            ]
            changes.extend(self._plan_deletes(state, state_addrs - set(desired_by_addr)))

        metadata = PlanMetadata(
            organization_id=ctx.scope.organization_id,
            project_id=ctx.scope.project_id,
            destroy=destroy,
            refresh=refresh,
            state_lineage=state.lineage,
            state_serial=state.serial,
            state_digest=compute_state_digest(state),
            engine_version=__version__,
        )
        return Plan(metadata=metadata, changes=changes)

    def _apply_change(self, ctx: EngineContext, change: ResourceChange, state: State) -> None:
        reg = self._registry.get(change.resource_type)
        handler = reg.handler

        if change.action == Action.DELETE:
            handler.delete(ctx, state.resources[change.address])
            del state.resources[change.address]
            return

        if change.desired is None:
            raise ValueError(f"Missing desired config for {change.action.value}: {change.address}")
        desired = reg.model.model_validate(
            {k: v for k, v in change.desired.items() if k != "depends_on"}
        )
        deps = list(change.desired.get("depends_on") or [])
        now = datetime.now(UTC)

        if change.action == Action.UPDATE and handler.replaces_on_update:
            # The old object is gone once delete returns; keep state in step
            # so a failing create does not leave it behind.
            handler.delete(ctx, state.resources[change.address])
            del state.resources[change.address]
            state.serial += 1
            state.save(self._state_path)
            logger.info("Deleted %s for replacement", change.address)

        if change.action == Action.CREATE or change.address not in state.resources:
            attrs = handler.create(ctx, desired)
            state.resources[change.address] = ResourceInstance(
                address=change.address,
                resource_type=change.resource_type,
                name=desired.name,
                id=attrs.get("self_link", ""),
                attributes=attrs,
                attributes_hash=compute_attributes_hash(attrs),
                dependencies=deps,
                created_at=now,
                updated_at=now,
            )
            return

        prior_inst = state.resources[change.address]
        attrs = handler.update(ctx, desired, prior_inst)
        prior_inst.id = attrs.get("self_link", prior_inst.id)
        prior_inst.attributes = attrs
        prior_inst.attributes_hash = compute_attributes_hash(attrs)
        prior_inst.dependencies = deps
        prior_inst.updated_at = now

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        with state_lock(self._state_path):
            return self._apply_locked(plan, progress)

    def _apply_locked(self, plan: Plan, progress: ProgressCallback | None) -> ApplyResult:
        state = self._load_state_for_apply(plan)

        if state.lineage != plan.metadata.state_lineage:
            raise StalePlanError("State lineage changed; re-run plan")
        if state.serial != plan.metadata.state_serial:
            raise StalePlanError("State serial changed; re-run plan")
        if compute_state_digest(state) != plan.metadata.state_digest:
            raise StalePlanError("State digest changed; re-run plan")

        ctx = self._ctx()
        actionable = [c for c in plan.changes if c.action != Action.NOOP]
        logger.info("Applying %d changes", len(actionable))

        applied: list[ResourceChange] = []
        address = ""
        try:
            for change in actionable:
                address = change.address
                logger.debug("Applying %s: %s", address, change.action.value)
                if progress:
                    progress(change, "start")
                self._apply_change(ctx, change, state)
                state.serial += 1
                state.save(self._state_path)
                applied.append(change)
                if progress:
                    progress(change, "done")
        except KeyboardInterrupt as e:  # pragma: no cover
            raise ApplyCanceled("Apply canceled") from e
        except Exception as e:
            raise ApplyError(applied=applied, address=address, message=str(e)) from e

        return ApplyResult(applied=applied)

    def import_resource(self, resource_type: str, name: str, import_id: str) -> ResourceInstance:
        """Adopt an existing remote object into state under ``resource_type.name``."""
        reg = self._registry.get(resource_type)
        with state_lock(self._state_path):
            return self._import_locked(reg.handler, resource_type, name, import_id)

    def _import_locked(
        self, handler: ResourceHandler[Any], resource_type: str, name: str, import_id: str
    ) -> ResourceInstance:
        address = f"{resource_type}.{name}"
        state = self._load_state()
        if address in state.resources:
            raise ResourceImportError(f"{address} is already managed; remove it from state first")

        attrs = handler.import_resource(self._ctx(), name, import_id)
        if attrs is None:
            raise ResourceImportError(
                f"Cannot import {address}: no remote object found for ID {import_id!r}"
            )

        inst = ResourceInstance(
            address=address,
            resource_type=resource_type,
            name=name,
            id=attrs.get("self_link", ""),
            attributes=attrs,
            attributes_hash=compute_attributes_hash(attrs),
        )
        state.resources[address] = inst
        state.serial += 1
        state.save(self._state_path)
        logger.info("Imported %s (%s)", address, inst.id)
        return inst
