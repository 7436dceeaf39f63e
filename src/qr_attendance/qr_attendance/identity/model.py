from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class Principal:
    """Who is calling, as resolved from a bearer credential."""

    subject_id: str
    role: Role

    @property
    def is_participant(self) -> bool:
        return self.role == Role.PARTICIPANT
