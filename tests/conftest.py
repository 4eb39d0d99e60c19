"""Shared fixtures: a fixed clock and input factories."""

from datetime import datetime, timedelta, timezone

import pytest

from config.settings import Settings
from engine.models import BehaviorSignals, LeadRecord, LostDeal
from orchestration.decision_engine import DecisionEngine

# Wednesday
FIXED_NOW = datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def engine(settings):
    return DecisionEngine(settings=settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_signals():
    """Build BehaviorSignals from days of silence plus overrides."""
    def _make(days_silent=10, **overrides):
        data = {"last_engagement": FIXED_NOW - timedelta(days=days_silent)}
        data.update(overrides)
        return BehaviorSignals(**data)
    return _make


@pytest.fixture
def make_lead():
    def _make(**overrides):
        data = {
            "id": "lead-1",
            "organization_id": "org-1",
            "email": "buyer@example.com",
            "phone": "555-0100",
        }
        data.update(overrides)
        return LeadRecord(**data)
    return _make


@pytest.fixture
def make_deal():
    def _make(days_since_loss=60, **overrides):
        data = {
            "id": "deal-1",
            "original_opportunity_value": 10000,
            "loss_date": FIXED_NOW - timedelta(days=days_since_loss),
        }
        data.update(overrides)
        return LostDeal(**data)
    return _make


@pytest.fixture
def event():
    """Engagement event dict `days_ago` days before now."""
    def _make(days_ago, depth, sentiment=0.5, type="email_open"):
        return {
            "type": type,
            "timestamp": FIXED_NOW - timedelta(days=days_ago),
            "depth": depth,
            "sentiment": sentiment,
        }
    return _make
