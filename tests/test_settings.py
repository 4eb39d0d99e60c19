"""Tests for the settings tree."""

import pytest

from config.settings import (
    DormancyWeights,
    ReversalSettings,
    RoutingSettings,
    Settings,
    StageThresholds,
    TimingSettings,
)
from engine.errors import ConfigurationError
from orchestration.decision_engine import DecisionEngine


class TestDefaults:

    def test_defaults_are_valid(self):
        validation = Settings().validate()
        assert validation["all_valid"]

    def test_default_values(self):
        settings = Settings()
        assert settings.stages.as_tuple() == (7, 30, 90, 180)
        assert settings.routing.sales_threshold == 70
        assert settings.routing.ear_max == 1000
        assert settings.timing.default_best_day == 2
        assert settings.reversal.value_haircut == 0.8

    def test_ensure_valid_returns_self(self):
        settings = Settings()
        assert settings.ensure_valid() is settings


class TestEnvironment:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("STAGE_COOLING", "3")
        monkeypatch.setenv("ROUTING_SALES_THRESHOLD", "80")
        assert StageThresholds().cooling == 3
        assert RoutingSettings().sales_threshold == 80

    def test_settings_are_independent(self):
        custom = Settings(stages=StageThresholds(cooling=3, dormant=14, deep_dormant=60, hibernating=120))
        assert custom.stages.cooling == 3
        assert Settings().stages.cooling == 7


class TestValidation:

    def test_bad_weights(self):
        assert not DormancyWeights(potential_reason=0.7).validate_weights()

    def test_delays_need_every_stage(self):
        timing = TimingSettings(stage_delays={"cooling": 2})
        assert not timing.validate_delays()

    def test_best_day_range(self):
        assert not TimingSettings(default_best_day=7).validate_delays()

    def test_reversal_ranges(self):
        assert not ReversalSettings(value_haircut=1.5).validate_reversal()

    def test_every_failure_listed(self):
        settings = Settings(
            stages=StageThresholds(cooling=0),
            routing=RoutingSettings(efficiency_floor=0),
        )
        with pytest.raises(ConfigurationError) as exc:
            settings.ensure_valid()
        assert "thresholds_valid" in exc.value.message
        assert "routing_valid" in exc.value.message
        assert exc.value.to_dict()["code"] == "configuration_error"


class TestReversalWindows:

    @pytest.mark.parametrize("overrides", [
        {"holiday_start_month": 2, "holiday_start_day": 30},
        {"holiday_start_month": 2, "holiday_start_day": 29},
        {"holiday_end_month": 13, "holiday_end_day": 1},
        {"holiday_end_month": 1, "holiday_end_day": 0},
        {"reentry_days": {"default": -500}},
        {"reentry_days": {"default": 90, "budget": -1}},
        {"cooling_off_days": -1},
    ])
    def test_rejected(self, overrides):
        assert not ReversalSettings(**overrides).validate_reversal()

    def test_custom_window_accepted(self):
        settings = ReversalSettings(
            holiday_start_month=11,
            holiday_start_day=25,
            holiday_end_month=11,
            holiday_end_day=30,
            reentry_days={"default": 0},
            cooling_off_days=0,
        )
        assert settings.validate_reversal()

    def test_engine_refuses_bad_holiday(self):
        settings = Settings(reversal=ReversalSettings(holiday_start_month=2, holiday_start_day=30))
        with pytest.raises(ConfigurationError) as exc:
            DecisionEngine(settings)
        assert exc.value.field == "reversal_valid"
