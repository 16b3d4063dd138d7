"""Membership diff: which instances to register to / deregister from each load balancer."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ..inventory import InventoryResolver
from ..inventory.models import FleetNode
from .models import (
    DEREGISTER,
    IGNORED,
    NOT_READY,
    REGISTER,
    SATISFIED,
    DesiredState,
    MembershipDecision,
    MembershipOps,
)

logger = logging.getLogger(__name__)


def build_desired_state(elbs: Mapping[str, str | None], inventory: InventoryResolver) -> DesiredState:
    """Resolve every configured role into the desired load balancer membership.

    Every resolved node joins the care-about set, including nodes of roles mapped
    to no load balancer: those are wanted in none and get deregistered wherever
    they are found. Roles sharing a load balancer contribute the union of their nodes.
    """
    mapping: dict[str, list[FleetNode]] = {}
    care_about: set[str] = set()
    identities: dict[str, str] = {}

    for role, lb_name in elbs.items():
        nodes = inventory.resolve_nodes(role)
        for node in nodes:
            care_about.add(node.instance_id)
            identities[node.instance_id] = node.display_identity
        if lb_name is None:
            logger.debug("Role %s maps to no load balancer (%d nodes)", role, len(nodes))
            continue
        mapping.setdefault(lb_name, []).extend(nodes)

    return DesiredState(mapping=mapping, care_about=frozenset(care_about), identities=identities)


def compute_membership_ops(
    live_membership: Mapping[str, frozenset[str] | set[str]],
    desired_mapping: Mapping[str, list[FleetNode]],
    care_about: frozenset[str] | set[str],
    ready_state: str = "available",
) -> dict[str, MembershipOps]:
    """Return register/deregister sets for every load balancer in live_membership.

    Instances outside care_about are never touched. A desired node is only
    registered once its lifecycle state equals ready_state.
    """
    result: dict[str, MembershipOps] = {}
    for lb_name, live in live_membership.items():
        result[lb_name] = _compute_for_load_balancer(
            lb_name, live, desired_mapping.get(lb_name), care_about, ready_state,
        )
    return result


def _compute_for_load_balancer(
    lb_name: str,
    live: frozenset[str] | set[str],
    desired: list[FleetNode] | None,
    care_about: frozenset[str] | set[str],
    ready_state: str,
) -> MembershipOps:
    desired_ids = {node.instance_id for node in desired or []}
    decisions: list[MembershipDecision] = []
    satisfied: set[str] = set()
    to_deregister: set[str] = set()

    for instance_id in sorted(live):
        if instance_id not in care_about:
            decisions.append(MembershipDecision(lb_name, instance_id, IGNORED, "not managed by any role"))
        elif instance_id not in desired_ids:
            reason = "in a load balancer no role maps to" if desired is None else "in the wrong load balancer"
            decisions.append(MembershipDecision(lb_name, instance_id, DEREGISTER, reason))
            to_deregister.add(instance_id)
        else:
            decisions.append(MembershipDecision(lb_name, instance_id, SATISFIED, "already registered"))
            satisfied.add(instance_id)

    to_register: set[str] = set()
    for node in desired or []:
        if node.instance_id in satisfied or node.instance_id in to_register:
            continue
        if node.is_ready(ready_state):
            decisions.append(MembershipDecision(lb_name, node.instance_id, REGISTER, "missing and ready"))
            to_register.add(node.instance_id)
        else:
            decisions.append(MembershipDecision(
                lb_name, node.instance_id, NOT_READY, f"missing but state is {node.lifecycle_state!r}",
            ))

    return MembershipOps(
        load_balancer=lb_name,
        to_register=frozenset(to_register),
        to_deregister=frozenset(to_deregister),
        decisions=tuple(decisions),
    )
