from __future__ import annotations

from typing import Optional, Protocol

from .model import Participant


class ParticipantRepository(Protocol):
    def get_registration(self, participant_id: str, event_id: str) -> Optional[Participant]:
        raise NotImplementedError

    def count_registered(self, event_id: str) -> int:
        """Registrations for the event that are not cancelled."""

        raise NotImplementedError
