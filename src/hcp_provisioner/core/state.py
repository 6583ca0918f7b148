"""State management for tracking deployed resources."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    """Compute a stable hash for a resource's stored attributes."""
    return hashlib.sha256(_canonical_json(attrs).encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(UTC)


class ResourceInstance(BaseModel):
    """A tracked resource instance in the state file.

    Attributes:
        address: Unique resource address (e.g., "hcp_hvn.main")
        resource_type: Type of the resource (e.g., "hcp_hvn")
        name: Resource name (e.g., "main")
        id: Persisted remote identifier, the resource's canonical link URL
        attributes: Current attribute values
        attributes_hash: SHA256 hash for change detection
        dependencies: Addresses of dependencies
    """

    address: str
    resource_type: str
    name: str
    id: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class State(BaseModel):
    """Terraform-style state file.

    A state file belongs to a single organization; resources inside it may
    live in different projects of that organization.
    """

    version: int = 1
    organization_id: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    def save(self, path: Path) -> None:
        """Write atomically, keeping the previous content in ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)

        backup_path = Path(str(path) + ".backup")
        with contextlib.suppress(FileNotFoundError):
            backup_path.write_bytes(path.read_bytes())

        content = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_file = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            tmp_file.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_file.unlink()
        logger.debug("State saved: serial=%d path=%s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> State:
        state = cls.model_validate_json(path.read_text(encoding="utf-8"))
        logger.debug("State loaded from %s", path)
        return state

    @classmethod
    def load_or_create(cls, path: Path, organization_id: str) -> State:
        if path.exists():
            return cls.load(path)
        logger.debug("Created new state for organization %s", organization_id)
        return cls(organization_id=organization_id)


def compute_state_digest(state: State) -> str:
    """Digest of state content used for stale-plan detection.

    Timestamps are excluded.
    """
    resources = [
        {
            "address": address,
            "resource_type": inst.resource_type,
            "id": inst.id,
            "attributes_hash": inst.attributes_hash,
            "dependencies": sorted(inst.dependencies),
        }
        for address, inst in sorted(state.resources.items())
    ]
    digestable = {
        "version": state.version,
        "organization_id": state.organization_id,
        "lineage": state.lineage,
        "serial": state.serial,
        "resources": resources,
    }
    return hashlib.sha256(_canonical_json(digestable).encode("utf-8")).hexdigest()
