"""Data models for live load balancer state."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LoadBalancerState:
    """One load balancer as returned by a single describe listing."""

    name: str
    instance_ids: frozenset[str] = field(default_factory=frozenset)
    zones: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class LiveSnapshot:
    """Membership and zone configuration of every load balancer, captured together.

    Both views are derived from the same listing, so a load balancer's
    registered instances and its configured zones always describe the same
    point in time.
    """

    load_balancers: dict[str, LoadBalancerState] = field(default_factory=dict)

    @classmethod
    def from_states(cls, states: list[LoadBalancerState]) -> LiveSnapshot:
        return cls(load_balancers={lb.name: lb for lb in states})

    @property
    def membership(self) -> dict[str, frozenset[str]]:
        """Load balancer name -> registered instance ids (empty set when nothing is registered)."""
        return {name: lb.instance_ids for name, lb in self.load_balancers.items()}

    @property
    def zones(self) -> dict[str, frozenset[str]]:
        """Load balancer name -> enabled availability zones."""
        return {name: lb.zones for name, lb in self.load_balancers.items()}
