"""Fleet inventory package: role resolution Protocol and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..config import AppConfig
    from .models import FleetNode


@runtime_checkable
class InventoryResolver(Protocol):
    """Protocol that every fleet inventory source must satisfy."""

    def resolve_nodes(self, role: str) -> list[FleetNode]:
        """Return the nodes that carry the given role."""
        ...


def build_inventory(config: AppConfig) -> InventoryResolver:
    """Instantiate the inventory source selected in config."""
    from .tag_filter import TagFilter

    tag_filter = TagFilter(config.inventory)
    if config.inventory.source == "static":
        from .static import StaticInventory
        return StaticInventory(config.inventory, tag_filter)

    from .ec2_tags import EC2TagInventory  # lazy import keeps boto3 out of static setups
    return EC2TagInventory(config.aws, config.inventory, tag_filter)
