from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import RegistrationStatus


@dataclass(frozen=True)
class Participant:
    """A participant's registration for one event."""

    participant_id: str
    event_id: str
    full_name: str
    email: Optional[str] = None
    registration_status: RegistrationStatus = RegistrationStatus.PENDING

    @property
    def is_cancelled(self) -> bool:
        return self.registration_status == RegistrationStatus.CANCELLED
