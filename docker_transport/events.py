"""Typed records for the daemon's ``/events`` feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DockerEventActor:
    """Object an event refers to."""

    id: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DockerEvent:
    """One entry of the daemon event feed."""

    type: str
    action: str
    actor: DockerEventActor
    time: int
    time_nano: int
    status: str | None = None
    id: str | None = None
    from_: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DockerEvent:
        """Build an event from the JSON object the daemon emits."""
        actor = data.get("Actor") or {}
        return cls(
            type=data["Type"],
            action=data["Action"],
            actor=DockerEventActor(
                id=actor.get("ID", ""),
                attributes=dict(actor.get("Attributes") or {}),
            ),
            time=int(data.get("time", 0)),
            time_nano=int(data.get("timeNano", 0)),
            status=data.get("status"),
            id=data.get("id"),
            from_=data.get("from"),
        )
