from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Event:
    """Read-only view of an event, owned by the event management side."""

    event_id: str
    title: str
    is_active: bool = True
