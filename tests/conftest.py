from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tests.fakes import World, build_world


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 14, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def world(fixed_now) -> World:
    return build_world(fixed_now)
