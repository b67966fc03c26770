# tests/fixtures/clock.py

"""⏱️ Deterministic clock for watch-state stamps."""

from datetime import datetime, timedelta, timezone

import pytest

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


__all__ = ["FrozenClock", "EPOCH", "clock"]
