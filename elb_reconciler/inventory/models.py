"""Data models for fleet inventory nodes."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FleetNode:
    """A fleet member resolved for a role."""

    instance_id: str
    lifecycle_state: str
    display_identity: str
    role: str = ""
    tags: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def identity(self) -> str:
        """Human-readable identity for log lines, e.g. 'web1.example.com (i-0abc)'."""
        return format_identity(self.instance_id, self.display_identity)

    def is_ready(self, ready_state: str) -> bool:
        return self.lifecycle_state == ready_state


def format_identity(instance_id: str, display_identity: str | None = None) -> str:
    if not display_identity or display_identity == instance_id:
        return instance_id
    return f"{display_identity} ({instance_id})"
