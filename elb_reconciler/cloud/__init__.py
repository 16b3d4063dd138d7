"""Cloud access package: provider-agnostic Protocols for the load balancer and compute services."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import LoadBalancerState


@runtime_checkable
class LoadBalancerService(Protocol):
    """Protocol that every load balancer client must satisfy."""

    def describe_load_balancers(self) -> list[LoadBalancerState]:
        """Return every load balancer with its registered instances and enabled zones."""
        ...

    def register_instances(self, instance_ids: Iterable[str], load_balancer: str) -> None:
        ...

    def deregister_instances(self, instance_ids: Iterable[str], load_balancer: str) -> None:
        ...

    def enable_zones(self, zones: Iterable[str], load_balancer: str) -> None:
        ...

    def disable_zones(self, zones: Iterable[str], load_balancer: str) -> None:
        ...


@runtime_checkable
class ComputeInventory(Protocol):
    """Protocol for looking up where an instance runs."""

    def get_instance_availability_zone(self, instance_id: str) -> str:
        """Return the instance's availability zone. Raises InstanceNotFound if it no longer exists."""
        ...
