"""Live state reads: one describe listing per snapshot, memoized zone lookups per pass."""

from __future__ import annotations

import logging

from ..exceptions import InstanceNotFound
from . import ComputeInventory, LoadBalancerService
from .models import LiveSnapshot

logger = logging.getLogger(__name__)


class CloudStateReader:
    """Captures the membership and zone configuration of every load balancer."""

    def __init__(self, service: LoadBalancerService):
        self._service = service

    def fetch_live_state(self) -> LiveSnapshot:
        """Return a snapshot built from a single describe listing.

        Load balancers with nothing registered are kept with an empty instance set.
        """
        snapshot = LiveSnapshot.from_states(self._service.describe_load_balancers())
        for name, lb in snapshot.load_balancers.items():
            logger.debug(
                "Load balancer %s: %d instances, zones %s",
                name, len(lb.instance_ids), ", ".join(sorted(lb.zones)) or "-",
            )
        return snapshot


class ZoneCache:
    """Instance id -> availability zone, valid for a single reconciliation pass."""

    def __init__(self) -> None:
        self._zones: dict[str, str] = {}

    def get(self, instance_id: str) -> str | None:
        return self._zones.get(instance_id)

    def put(self, instance_id: str, zone: str) -> None:
        self._zones[instance_id] = zone

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._zones


class ZoneResolver:
    """Resolves instance zones through the compute service, at most once per instance."""

    def __init__(self, compute: ComputeInventory, cache: ZoneCache | None = None):
        self._compute = compute
        self._cache = cache if cache is not None else ZoneCache()
        self.lookups = 0

    @property
    def cache(self) -> ZoneCache:
        return self._cache

    def resolve(self, instance_id: str, load_balancer: str | None = None) -> str:
        """Return the zone of instance_id. Raises InstanceNotFound if it no longer exists."""
        cached = self._cache.get(instance_id)
        if cached is not None:
            return cached

        try:
            zone = self._compute.get_instance_availability_zone(instance_id)
        except InstanceNotFound as exc:
            if load_balancer and exc.load_balancer is None:
                raise InstanceNotFound(instance_id, load_balancer) from exc
            raise

        self.lookups += 1
        self._cache.put(instance_id, zone)
        return zone

    __call__ = resolve
