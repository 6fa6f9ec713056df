"""Mini README: Shared pytest fixtures for the funds tracker suite.

Structure:
    * SteppingClock - deterministic clock advancing one minute per reading.
    * tracker / admin / agent_a / agent_b / book - a fresh tracker with an
      admin, two agents and an auto-activated 2025 book seeded with 1000.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pepitracker import FundsTracker
from pepitracker.agents import Agent, AgentRole
from pepitracker.books import Book
from pepitracker.configuration import TrackerSettings


class SteppingClock:
    """Return strictly increasing UTC timestamps."""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)) -> None:
        self.current = start
        self.step = timedelta(minutes=1)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def jump(self, moment: datetime) -> None:
        self.current = moment


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def settings() -> TrackerSettings:
    return TrackerSettings(seed_demo_data=False)


@pytest.fixture
def tracker(clock: SteppingClock, settings: TrackerSettings) -> FundsTracker:
    return FundsTracker(settings=settings, clock=clock)


@pytest.fixture
def admin(tracker: FundsTracker) -> Agent:
    return tracker.agents.register("Commander Reyes", role=AgentRole.ADMIN, identity="reyes@pepi.test")


@pytest.fixture
def agent_a(tracker: FundsTracker) -> Agent:
    return tracker.agents.register("Agent Alvarez", identity="alvarez@pepi.test", badge_number="1042")


@pytest.fixture
def agent_b(tracker: FundsTracker) -> Agent:
    return tracker.agents.register("Agent Brooks", identity="brooks@pepi.test", badge_number="1077")


@pytest.fixture
def book(tracker: FundsTracker, admin: Agent) -> Book:
    return tracker.books.create_book(2025, "1000.00", admin).record

