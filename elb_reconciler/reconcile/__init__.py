"""Reconciliation engine: membership and zone diffs plus the pass orchestrator."""

from .membership import build_desired_state, compute_membership_ops
from .orchestrator import Orchestrator
from .zones import compute_zone_ops

__all__ = ["Orchestrator", "build_desired_state", "compute_membership_ops", "compute_zone_ops"]
