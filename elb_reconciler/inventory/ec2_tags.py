"""Inventory source that resolves roles from EC2 instance tags."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoRegionError, ProfileNotFound

from ..config import AWSConfig, InventoryConfig
from ..exceptions import ConfigurationMissingError, RemoteCallError
from .models import FleetNode
from .tag_filter import TagFilter

logger = logging.getLogger(__name__)

# Terminated instances cannot be registered and are skipped outright.
_LIVE_STATES = ["pending", "running", "stopping", "stopped"]


class EC2TagInventory:
    """Finds the instances tagged ``<role_tag>=<role>``.

    The lifecycle state comes from the ``state_tag`` value while the instance is
    running. Any other EC2 state (or a missing tag) reports the EC2 state name,
    so a stopped instance never looks ready. The display identity comes from
    ``name_tag``, then the private DNS name, then the instance id.
    """

    def __init__(self, aws_config: AWSConfig, inventory_config: InventoryConfig, tag_filter: TagFilter | None = None):
        self._config = inventory_config
        self._tag_filter = tag_filter or TagFilter(inventory_config)

        session_kwargs: dict[str, Any] = {"region_name": aws_config.region}
        if aws_config.credential_profile:
            session_kwargs["profile_name"] = aws_config.credential_profile

        try:
            session = boto3.Session(**session_kwargs)
            self._ec2 = session.client("ec2")
        except (NoRegionError, ProfileNotFound) as exc:
            raise ConfigurationMissingError(f"Cannot build EC2 client: {exc}") from exc

    def resolve_nodes(self, role: str) -> list[FleetNode]:
        nodes: list[FleetNode] = []

        paginator = self._ec2.get_paginator("describe_instances")
        pages = paginator.paginate(
            Filters=[
                {"Name": f"tag:{self._config.role_tag}", "Values": [role]},
                {"Name": "instance-state-name", "Values": _LIVE_STATES},
            ]
        )

        try:
            for page in pages:
                for reservation in page.get("Reservations", []):
                    for raw in reservation.get("Instances", []):
                        nodes.append(self._parse_instance(raw, role))
        except (ClientError, BotoCoreError) as exc:
            raise RemoteCallError(
                f"describe_instances for role {role} failed: {exc}",
                operation="describe_instances",
            ) from exc

        nodes = self._tag_filter.apply(nodes)
        logger.info("Role %s resolved to %d nodes", role, len(nodes))
        return nodes

    def _parse_instance(self, raw: dict[str, Any], role: str) -> FleetNode:
        tags = {t["Key"]: t["Value"] for t in raw.get("Tags", [])}
        instance_id = raw["InstanceId"]

        ec2_state = raw.get("State", {}).get("Name", "unknown")
        state = ec2_state
        if ec2_state == "running":
            state = tags.get(self._config.state_tag) or ec2_state
        identity = tags.get(self._config.name_tag) or raw.get("PrivateDnsName") or instance_id

        return FleetNode(
            instance_id=instance_id,
            lifecycle_state=state,
            display_identity=identity,
            role=role,
            tags=tags,
        )
