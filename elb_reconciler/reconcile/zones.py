"""Zone diff: which availability zones to enable on / disable from a load balancer."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .models import ZoneOps


def compute_zone_ops(
    load_balancer: str,
    live_instances: Iterable[str],
    live_zones: Iterable[str],
    resolve_zone: Callable[[str], str],
) -> ZoneOps:
    """Compare the zones the registered instances run in against the enabled zones.

    A load balancer with no registered instances is skipped so that a
    temporarily empty pool never loses all of its zones. InstanceNotFound
    from resolve_zone propagates; no partial result is returned.
    """
    instances = frozenset(live_instances)
    current = frozenset(live_zones)
    if not instances:
        return ZoneOps(load_balancer=load_balancer, skipped=True)

    required = frozenset(resolve_zone(instance_id) for instance_id in sorted(instances))
    return ZoneOps(
        load_balancer=load_balancer,
        to_enable=required - current,
        to_disable=current - required,
        required_zones=required,
    )
