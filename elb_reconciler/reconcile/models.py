"""Operation sets and decision records produced by the reconcilers."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..inventory.models import FleetNode, format_identity

# Decision actions
REGISTER = "register"
DEREGISTER = "deregister"
SATISFIED = "satisfied"
IGNORED = "ignored"
NOT_READY = "not_ready"


@dataclass(frozen=True)
class MembershipDecision:
    """Why a single instance was (or was not) queued for a load balancer."""

    load_balancer: str
    instance_id: str
    action: str
    reason: str


@dataclass
class DesiredState:
    """Desired membership derived from inventory for one pass."""

    mapping: dict[str, list[FleetNode]] = field(default_factory=dict)  # load balancer -> nodes
    care_about: frozenset[str] = field(default_factory=frozenset)
    identities: dict[str, str] = field(default_factory=dict)  # instance id -> display identity

    def identity(self, instance_id: str) -> str:
        return format_identity(instance_id, self.identities.get(instance_id))

    def describe(self, instance_ids: set[str] | frozenset[str]) -> str:
        """Comma-separated identities, e.g. 'web1 (i-1), web2 (i-2)'."""
        return ", ".join(self.identity(i) for i in sorted(instance_ids))


@dataclass(frozen=True)
class MembershipOps:
    """Register / deregister sets for one load balancer."""

    load_balancer: str
    to_register: frozenset[str] = field(default_factory=frozenset)
    to_deregister: frozenset[str] = field(default_factory=frozenset)
    decisions: tuple[MembershipDecision, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.to_register or self.to_deregister)


@dataclass(frozen=True)
class ZoneOps:
    """Enable / disable sets for one load balancer."""

    load_balancer: str
    to_enable: frozenset[str] = field(default_factory=frozenset)
    to_disable: frozenset[str] = field(default_factory=frozenset)
    required_zones: frozenset[str] = field(default_factory=frozenset)
    skipped: bool = False  # nothing registered, zone configuration left alone

    @property
    def has_changes(self) -> bool:
        return bool(self.to_enable or self.to_disable)

