"""AWS boto3 client for Classic Load Balancers and EC2 instance placement."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoRegionError, ProfileNotFound

from ..config import AWSConfig
from ..exceptions import ConfigurationMissingError, InstanceNotFound, RemoteCallError
from .models import LoadBalancerState

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed")


class AWSClient:
    """Reads and mutates Classic ELB state, and resolves instance zones through EC2."""

    def __init__(self, aws_config: AWSConfig):
        self._config = aws_config

        session_kwargs: dict[str, Any] = {"region_name": aws_config.region}
        if aws_config.credential_profile:
            session_kwargs["profile_name"] = aws_config.credential_profile

        try:
            session = boto3.Session(**session_kwargs)
            self._elb = session.client("elb")
            self._ec2 = session.client("ec2")
        except (NoRegionError, ProfileNotFound) as exc:
            raise ConfigurationMissingError(f"Cannot build AWS clients: {exc}") from exc

    # ── Load balancer state ──────────────────────────────────────────

    def describe_load_balancers(self) -> list[LoadBalancerState]:
        """List every load balancer with its registered instances and enabled zones."""
        states: list[LoadBalancerState] = []
        try:
            paginator = self._elb.get_paginator("describe_load_balancers")
            for page in paginator.paginate():
                for raw in page.get("LoadBalancerDescriptions", []):
                    states.append(self._parse_load_balancer(raw))
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("describe_load_balancers", exc) from exc

        logger.debug("Described %d load balancers", len(states))
        return states

    @staticmethod
    def _parse_load_balancer(raw: dict[str, Any]) -> LoadBalancerState:
        return LoadBalancerState(
            name=raw["LoadBalancerName"],
            instance_ids=frozenset(i["InstanceId"] for i in raw.get("Instances", []) if i.get("InstanceId")),
            zones=frozenset(raw.get("AvailabilityZones", [])),
        )

    # ── Membership ───────────────────────────────────────────────────

    def register_instances(self, instance_ids: Iterable[str], load_balancer: str) -> None:
        self._call(
            "register_instances_with_load_balancer",
            load_balancer,
            LoadBalancerName=load_balancer,
            Instances=[{"InstanceId": iid} for iid in sorted(instance_ids)],
        )

    def deregister_instances(self, instance_ids: Iterable[str], load_balancer: str) -> None:
        self._call(
            "deregister_instances_from_load_balancer",
            load_balancer,
            LoadBalancerName=load_balancer,
            Instances=[{"InstanceId": iid} for iid in sorted(instance_ids)],
        )

    # ── Zones ────────────────────────────────────────────────────────

    def enable_zones(self, zones: Iterable[str], load_balancer: str) -> None:
        self._call(
            "enable_availability_zones_for_load_balancer",
            load_balancer,
            LoadBalancerName=load_balancer,
            AvailabilityZones=sorted(zones),
        )

    def disable_zones(self, zones: Iterable[str], load_balancer: str) -> None:
        self._call(
            "disable_availability_zones_for_load_balancer",
            load_balancer,
            LoadBalancerName=load_balancer,
            AvailabilityZones=sorted(zones),
        )

    # ── Compute inventory ────────────────────────────────────────────

    def get_instance_availability_zone(self, instance_id: str) -> str:
        """Return the availability zone of instance_id, e.g. "us-east-1a".

        Raises InstanceNotFound if EC2 no longer knows the instance.
        """
        try:
            response = self._ec2.describe_instances(InstanceIds=[instance_id])
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise InstanceNotFound(instance_id) from exc
            raise _remote_error("describe_instances", exc) from exc
        except BotoCoreError as exc:
            raise _remote_error("describe_instances", exc) from exc

        for reservation in response.get("Reservations", []):
            for raw in reservation.get("Instances", []):
                if raw.get("InstanceId") != instance_id:
                    continue
                zone = raw.get("Placement", {}).get("AvailabilityZone")
                if zone:
                    return zone

        raise InstanceNotFound(instance_id)

    # ── Internal helpers ─────────────────────────────────────────────

    def _call(self, operation: str, load_balancer: str, **kwargs) -> dict[str, Any]:
        logger.debug("%s on %s: %s", operation, load_balancer, kwargs)
        try:
            return getattr(self._elb, operation)(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error(operation, exc, load_balancer) from exc


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _remote_error(operation: str, exc: Exception, load_balancer: str | None = None) -> RemoteCallError:
    code = _error_code(exc) if isinstance(exc, ClientError) else None
    target = f" on {load_balancer}" if load_balancer else ""
    return RemoteCallError(
        f"{operation}{target} failed: {exc}",
        operation=operation,
        load_balancer=load_balancer,
        error_code=code,
    )
