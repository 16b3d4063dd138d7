"""Tests for the fleet inventory sources."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from elb_reconciler.config import AppConfig, AWSConfig, InventoryConfig
from elb_reconciler.exceptions import ConfigError, RemoteCallError
from elb_reconciler.inventory import InventoryResolver, build_inventory
from elb_reconciler.inventory.ec2_tags import EC2TagInventory
from elb_reconciler.inventory.static import StaticInventory
from elb_reconciler.inventory.tag_filter import TagFilter
from elb_reconciler.reconcile import compute_membership_ops
from elb_reconciler.reconcile.models import NOT_READY

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raw_instance(instance_id="i-abc123", state="running", tags=None, private_dns="ip-10-0-0-1.ec2.internal") -> dict:
    """Build a minimal EC2 instance dict as returned by describe_instances."""
    default_tags = [
        {"Key": "Fleet:Role", "Value": "web"},
        {"Key": "Fleet:State", "Value": "available"},
        {"Key": "Name", "Value": f"web-{instance_id}"},
    ]
    return {
        "InstanceId": instance_id,
        "State": {"Name": state},
        "PrivateDnsName": private_dns,
        "Tags": tags if tags is not None else default_tags,
    }


def _paginator(*instances):
    mock_paginator = MagicMock()
    mock_paginator.paginate.return_value = iter([{"Reservations": [{"Instances": list(instances)}]}])
    return mock_paginator


def _ec2_inventory(ec2_mock, inventory_config: InventoryConfig | None = None) -> EC2TagInventory:
    cfg = inventory_config or InventoryConfig()
    inventory = EC2TagInventory.__new__(EC2TagInventory)
    inventory._config = cfg
    inventory._tag_filter = TagFilter(cfg)
    inventory._ec2 = ec2_mock
    return inventory


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestEC2TagInventory:
    def test_resolves_tagged_instances(self):
        ec2 = MagicMock()
        ec2.get_paginator.return_value = _paginator(_raw_instance("i-1"))
        nodes = _ec2_inventory(ec2).resolve_nodes("web")

        assert len(nodes) == 1
        node = nodes[0]
        assert node.instance_id == "i-1"
        assert node.lifecycle_state == "available"
        assert node.display_identity == "web-i-1"
        assert node.role == "web"

    def test_filters_on_role_tag(self):
        ec2 = MagicMock()
        ec2.get_paginator.return_value = _paginator()
        _ec2_inventory(ec2, InventoryConfig(role_tag="Role")).resolve_nodes("api")

        filters = ec2.get_paginator.return_value.paginate.call_args.kwargs["Filters"]
        assert {"Name": "tag:Role", "Values": ["api"]} in filters
        state_filter = next(f for f in filters if f["Name"] == "instance-state-name")
        assert "terminated" not in state_filter["Values"]

    def test_state_falls_back_to_ec2_state(self):
        ec2 = MagicMock()
        raw = _raw_instance("i-1", state="pending", tags=[{"Key": "Fleet:Role", "Value": "web"}])
        ec2.get_paginator.return_value = _paginator(raw)
        node = _ec2_inventory(ec2).resolve_nodes("web")[0]
        assert node.lifecycle_state == "pending"
        assert node.display_identity == "ip-10-0-0-1.ec2.internal"

    @pytest.mark.parametrize("ec2_state", ["stopped", "pending", "stopping"])
    def test_state_tag_ignored_unless_running(self, ec2_state):
        ec2 = MagicMock()
        ec2.get_paginator.return_value = _paginator(_raw_instance("i-1", state=ec2_state))
        node = _ec2_inventory(ec2).resolve_nodes("web")[0]
        assert node.lifecycle_state == ec2_state
        assert not node.is_ready("available")

    def test_stopped_instance_tagged_available_not_registered(self):
        ec2 = MagicMock()
        ec2.get_paginator.return_value = _paginator(
            _raw_instance("i-stopped", state="stopped"), _raw_instance("i-running"),
        )
        nodes = _ec2_inventory(ec2).resolve_nodes("web")
        ops = compute_membership_ops(
            {"lb-web": frozenset()}, {"lb-web": nodes}, {n.instance_id for n in nodes},
        )["lb-web"]
        assert ops.to_register == frozenset({"i-running"})
        decision = next(d for d in ops.decisions if d.instance_id == "i-stopped")
        assert decision.action == NOT_READY

    def test_identity_falls_back_to_instance_id(self):
        ec2 = MagicMock()
        raw = _raw_instance("i-1", tags=[], private_dns="")
        ec2.get_paginator.return_value = _paginator(raw)
        node = _ec2_inventory(ec2).resolve_nodes("web")[0]
        assert node.display_identity == "i-1"
        assert node.identity == "i-1"

    def test_tag_filter_applied(self):
        ec2 = MagicMock()
        skipped = _raw_instance("i-2", tags=[
            {"Key": "Fleet:Role", "Value": "web"},
            {"Key": "Fleet:Maintenance", "Value": "true"},
        ])
        ec2.get_paginator.return_value = _paginator(_raw_instance("i-1"), skipped)
        cfg = InventoryConfig(denylist={"Fleet:Maintenance": "true"})
        nodes = _ec2_inventory(ec2, cfg).resolve_nodes("web")
        assert [n.instance_id for n in nodes] == ["i-1"]

    def test_api_error_wrapped(self):
        def failing_pages():
            raise ClientError({"Error": {"Code": "RequestLimitExceeded"}}, "DescribeInstances")
            yield  # pragma: no cover

        ec2 = MagicMock()
        paginator = MagicMock()
        paginator.paginate.return_value = failing_pages()
        ec2.get_paginator.return_value = paginator
        with pytest.raises(RemoteCallError, match="role web"):
            _ec2_inventory(ec2).resolve_nodes("web")

    def test_session_uses_profile(self):
        with patch("boto3.Session") as MockSession:
            MockSession.return_value = MagicMock()
            EC2TagInventory(AWSConfig(region="us-east-1", credential_profile="ops"), InventoryConfig())
            MockSession.assert_called_once_with(region_name="us-east-1", profile_name="ops")


class TestStaticInventory:
    def _inventory(self, nodes, **kwargs) -> StaticInventory:
        return StaticInventory(InventoryConfig(source="static", nodes=nodes, **kwargs))

    def test_resolves_listed_nodes(self):
        inv = self._inventory({
            "web": [
                {"instance_id": "i-1", "state": "available", "name": "web1"},
                {"instance_id": "i-2", "state": "pending"},
            ],
        })
        nodes = inv.resolve_nodes("web")
        assert [n.instance_id for n in nodes] == ["i-1", "i-2"]
        assert nodes[0].identity == "web1 (i-1)"
        assert nodes[1].display_identity == "i-2"
        assert nodes[1].lifecycle_state == "pending"

    def test_unknown_role_resolves_empty(self):
        assert self._inventory({}).resolve_nodes("web") == []

    def test_missing_state_is_not_ready(self):
        node = self._inventory({"web": [{"instance_id": "i-1"}]}).resolve_nodes("web")[0]
        assert not node.is_ready("available")

    def test_node_without_instance_id_rejected(self):
        with pytest.raises(ConfigError, match="instance_id"):
            self._inventory({"web": [{"name": "web1"}]})

    def test_tags_filtered(self):
        inv = self._inventory(
            {"web": [
                {"instance_id": "i-1", "state": "available", "tags": {"skip": "true"}},
                {"instance_id": "i-2", "state": "available"},
            ]},
            denylist={"skip": "true"},
        )
        assert [n.instance_id for n in inv.resolve_nodes("web")] == ["i-2"]


class TestBuildInventory:
    def test_static_source(self):
        config = AppConfig(aws=AWSConfig(region="us-east-1"), inventory=InventoryConfig(source="static"))
        inv = build_inventory(config)
        assert isinstance(inv, StaticInventory)
        assert isinstance(inv, InventoryResolver)

    def test_ec2_tags_source(self):
        config = AppConfig(aws=AWSConfig(region="us-east-1"))
        with patch("boto3.Session") as MockSession:
            MockSession.return_value = MagicMock()
            assert isinstance(build_inventory(config), EC2TagInventory)
