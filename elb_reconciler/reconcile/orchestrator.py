"""One reconciliation pass: membership first, then zones on a fresh snapshot."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping

from ..cloud import ComputeInventory, LoadBalancerService
from ..cloud.reader import CloudStateReader, ZoneCache, ZoneResolver
from ..exceptions import ConfigurationMissingError
from ..inventory import InventoryResolver
from .membership import build_desired_state, compute_membership_ops
from .models import (
    DEREGISTER,
    NOT_READY,
    REGISTER,
    DesiredState,
    MembershipOps,
    ZoneOps,
)
from .zones import compute_zone_ops

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], LoadBalancerService | None]


def _empty_summary() -> dict[str, int]:
    return {"registered": 0, "deregistered": 0, "zones_enabled": 0, "zones_disabled": 0}


class Orchestrator:
    """Runs the membership pass and the zone pass against live load balancer state.

    The client factory is called once per pass. The client it returns must
    also satisfy ComputeInventory unless a separate compute client is given.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        inventory: InventoryResolver,
        elbs: Mapping[str, str | None],
        ready_state: str = "available",
        dry_run: bool = False,
        compute: ComputeInventory | None = None,
    ):
        self._client_factory = client_factory
        self._inventory = inventory
        self._elbs = dict(elbs)
        self._ready_state = ready_state
        self._dry_run = dry_run
        self._compute = compute
        self._summary = _empty_summary()

    def reconcile(self) -> bool:
        """Execute one pass. Returns True if any membership operation was applied."""
        start = time.monotonic()
        client = self._client_factory()
        if client is None:
            raise ConfigurationMissingError("No load balancer client available")
        compute = self._compute if self._compute is not None else client
        if not isinstance(compute, ComputeInventory):
            raise ConfigurationMissingError("No compute inventory client available")

        reader = CloudStateReader(client)
        self._summary = _empty_summary()

        updated = self.update_instances(client, reader)
        self.update_zones(client, reader, compute)

        logger.info(
            "Reconciliation pass complete",
            extra={
                "elapsed_seconds": round(time.monotonic() - start, 2),
                "updated": updated,
                "dry_run": self._dry_run,
                "summary": dict(self._summary),
            },
        )
        return updated

    # ── Membership pass ─────────────────────────────────────────────

    def update_instances(self, client: LoadBalancerService, reader: CloudStateReader) -> bool:
        snapshot = reader.fetch_live_state()
        desired = build_desired_state(self._elbs, self._inventory)

        for lb_name in sorted(set(desired.mapping) - set(snapshot.load_balancers)):
            logger.warning(
                "Load balancer %s is configured but does not exist, skipping",
                lb_name, extra={"load_balancer": lb_name},
            )

        plan = compute_membership_ops(
            snapshot.membership, desired.mapping, desired.care_about, self._ready_state,
        )

        updated = False
        for lb_name in sorted(plan):
            ops = plan[lb_name]
            self._log_decisions(ops, desired)
            if self._apply_membership(client, ops, desired):
                updated = True
        return updated

    def _log_decisions(self, ops: MembershipOps, desired: DesiredState) -> None:
        for decision in ops.decisions:
            identity = desired.identity(decision.instance_id)
            extra = {"load_balancer": decision.load_balancer, "instance_id": decision.instance_id}
            if decision.action == DEREGISTER:
                logger.info(
                    "Node %s is %s - queueing for deregistration from %s",
                    identity, decision.reason, decision.load_balancer, extra=extra,
                )
            elif decision.action == REGISTER:
                logger.info(
                    "Node %s is %s - queueing for registration to %s",
                    identity, decision.reason, decision.load_balancer, extra=extra,
                )
            elif decision.action == NOT_READY:
                logger.info("Node %s is %s, not registering yet", identity, decision.reason, extra=extra)
            else:
                logger.debug("Node %s in %s: %s", identity, decision.load_balancer, decision.reason, extra=extra)

    def _apply_membership(self, client: LoadBalancerService, ops: MembershipOps, desired: DesiredState) -> bool:
        if not ops.has_changes:
            return False

        lb_name = ops.load_balancer
        verb = "Would register" if self._dry_run else "Registering"
        if ops.to_register:
            logger.info(
                "%s the following instances to %s: %s",
                verb, lb_name, desired.describe(ops.to_register),
                extra={"load_balancer": lb_name, "instances": sorted(ops.to_register)},
            )
            self._summary["registered"] += len(ops.to_register)
            if not self._dry_run:
                client.register_instances(ops.to_register, lb_name)

        verb = "Would deregister" if self._dry_run else "Deregistering"
        if ops.to_deregister:
            logger.info(
                "%s the following instances from %s: %s",
                verb, lb_name, desired.describe(ops.to_deregister),
                extra={"load_balancer": lb_name, "instances": sorted(ops.to_deregister)},
            )
            self._summary["deregistered"] += len(ops.to_deregister)
            if not self._dry_run:
                client.deregister_instances(ops.to_deregister, lb_name)
        return True

    # ── Zone pass ───────────────────────────────────────────────────

    def update_zones(
        self,
        client: LoadBalancerService,
        reader: CloudStateReader,
        compute: ComputeInventory,
    ) -> dict[str, ZoneOps]:
        """Bring enabled zones in line with where registered instances run.

        Re-reads live state so the just-applied membership changes are seen.
        Every plan is computed before any zone call is issued, so a vanished
        instance aborts the pass without touching any zone configuration.
        In dry-run mode nothing was changed above, so the plan reflects the
        current membership rather than the one a real pass would leave.
        """
        snapshot = reader.fetch_live_state()
        resolver = ZoneResolver(compute, ZoneCache())

        plans: dict[str, ZoneOps] = {}
        for lb_name in sorted(snapshot.load_balancers):
            lb = snapshot.load_balancers[lb_name]
            ops = compute_zone_ops(
                lb_name, lb.instance_ids, lb.zones,
                lambda instance_id, _lb=lb_name: resolver.resolve(instance_id, _lb),
            )
            if ops.skipped:
                logger.debug("Load balancer %s has no instances registered, leaving zones alone", lb_name)
            else:
                logger.debug(
                    "Instances of %s run in %s; configured for %s",
                    lb_name, ", ".join(sorted(ops.required_zones)), ", ".join(sorted(lb.zones)) or "-",
                )
            plans[lb_name] = ops

        logger.debug("Resolved zones of %d instances", resolver.lookups)

        if self._dry_run and any(ops.has_changes for ops in plans.values()):
            logger.info(
                "Dry run: zone changes below are computed from current membership, "
                "not from the membership changes listed above",
                extra={"dry_run": True},
            )

        for lb_name, ops in plans.items():
            self._apply_zones(client, ops)
        return plans

    def _apply_zones(self, client: LoadBalancerService, ops: ZoneOps) -> None:
        if not ops.has_changes:
            return
        lb_name = ops.load_balancer
        if ops.to_enable:
            logger.info(
                "%s the following zones on %s: %s",
                "Would enable" if self._dry_run else "Enabling",
                lb_name, ", ".join(sorted(ops.to_enable)),
                extra={"load_balancer": lb_name, "zones": sorted(ops.to_enable)},
            )
            self._summary["zones_enabled"] += len(ops.to_enable)
            if not self._dry_run:
                client.enable_zones(ops.to_enable, lb_name)
        if ops.to_disable:
            logger.info(
                "%s the following zones on %s: %s",
                "Would disable" if self._dry_run else "Disabling",
                lb_name, ", ".join(sorted(ops.to_disable)),
                extra={"load_balancer": lb_name, "zones": sorted(ops.to_disable)},
            )
            self._summary["zones_disabled"] += len(ops.to_disable)
            if not self._dry_run:
                client.disable_zones(ops.to_disable, lb_name)
