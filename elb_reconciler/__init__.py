"""Reconciles load balancer membership and availability zones against the fleet inventory."""

__version__ = "0.1.0"
