"""Inventory source backed by node lists in the configuration file."""

from __future__ import annotations

import logging
from typing import Any

from ..config import InventoryConfig
from ..exceptions import ConfigError
from .models import FleetNode
from .tag_filter import TagFilter

logger = logging.getLogger(__name__)


class StaticInventory:
    """Resolves roles from ``inventory.nodes`` (role -> list of node mappings)."""

    def __init__(self, inventory_config: InventoryConfig, tag_filter: TagFilter | None = None):
        self._tag_filter = tag_filter or TagFilter(inventory_config)
        self._nodes: dict[str, list[FleetNode]] = {
            role: [self._parse_node(role, raw) for raw in (entries or [])]
            for role, entries in inventory_config.nodes.items()
        }

    def resolve_nodes(self, role: str) -> list[FleetNode]:
        nodes = self._tag_filter.apply(self._nodes.get(role, []))
        logger.debug("Static inventory resolved %d nodes for role %s", len(nodes), role)
        return nodes

    @staticmethod
    def _parse_node(role: str, raw: Any) -> FleetNode:
        if not isinstance(raw, dict) or not raw.get("instance_id"):
            raise ConfigError(f"inventory.nodes.{role}: every node needs an instance_id")
        instance_id = str(raw["instance_id"])
        return FleetNode(
            instance_id=instance_id,
            lifecycle_state=str(raw.get("state", "unknown")),
            display_identity=str(raw.get("name") or instance_id),
            role=role,
            tags={str(k): str(v) for k, v in (raw.get("tags") or {}).items()},
        )
