from __future__ import annotations

from datetime import datetime, timedelta, timezone


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
