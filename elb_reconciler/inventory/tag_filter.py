"""Tag-based allowlist / denylist filtering for inventory nodes."""

from __future__ import annotations

import logging

from ..config import InventoryConfig
from .models import FleetNode

logger = logging.getLogger(__name__)


class TagFilter:
    """Filters nodes based on tag allowlist (AND) and denylist (OR)."""

    def __init__(self, inventory_config: InventoryConfig):
        self._allowlist = inventory_config.allowlist
        self._denylist = inventory_config.denylist

    def apply(self, nodes: list[FleetNode]) -> list[FleetNode]:
        if not self._allowlist and not self._denylist:
            return nodes
        before = len(nodes)
        result = [node for node in nodes if self._matches(node)]
        filtered = before - len(result)
        if filtered:
            logger.info("Tag filter removed %d of %d nodes", filtered, before)
        return result

    def _matches(self, node: FleetNode) -> bool:
        tags = node.tags

        # Denylist: excluded if ANY condition matches (OR)
        for key, value in self._denylist.items():
            if tags.get(key) == value:
                logger.debug("Node %s denied by tag %s=%s", node.identity, key, value)
                return False

        # Allowlist: must match ALL conditions (AND)
        for key, value in self._allowlist.items():
            if tags.get(key) != value:
                logger.debug("Node %s does not match allowlist tag %s=%s", node.identity, key, value)
                return False

        return True
