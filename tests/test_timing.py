"""Tests for re-entry windows and reversal timing."""

from datetime import datetime, timedelta, timezone

import pytest

from config.settings import ReversalSettings, TimingSettings
from engine.models import AbandonmentReason, DormancyStage, ResponsePattern
from engine.timing import (
    advance_to_day,
    avoid_periods,
    day_of_week,
    find_best_day,
    plan_reentry_window,
    plan_reversal_timing,
)

TIMING = TimingSettings()
REVERSAL = ReversalSettings()


def pattern(day, quality):
    return ResponsePattern(day_of_week=day, response_speed=1, engagement_quality=quality)


class TestDayHelpers:

    def test_sunday_is_zero(self):
        assert day_of_week(datetime(2024, 6, 2, tzinfo=timezone.utc)) == 0
        assert day_of_week(datetime(2024, 6, 8, tzinfo=timezone.utc)) == 6

    def test_best_day_by_engagement_quality(self):
        assert find_best_day([pattern(4, 0.5), pattern(6, 0.9)], default=2) == 6

    def test_best_day_tie_keeps_first(self):
        assert find_best_day([pattern(1, 0.9), pattern(5, 0.9)], default=2) == 1

    def test_best_day_default(self):
        assert find_best_day([], default=2) == 2

    @pytest.mark.parametrize("target", range(7))
    def test_advance_stays_within_a_week(self, now, target):
        moved = advance_to_day(now, target)
        assert day_of_week(moved) == target
        assert timedelta(0) <= moved - now < timedelta(days=7)


class TestReentryWindow:

    def test_delays_add_up(self, now):
        window = plan_reentry_window(
            DormancyStage.DORMANT, AbandonmentReason.TIMING_MISMATCH, (), TIMING, now
        )
        assert window.optimal_start == now + timedelta(days=19)
        assert window.optimal_end == window.optimal_start + timedelta(days=7)

    def test_peak_on_default_tuesday(self, now):
        window = plan_reentry_window(
            DormancyStage.DORMANT, AbandonmentReason.TIMING_MISMATCH, (), TIMING, now
        )
        # start lands on a Monday
        assert window.peak_moment == window.optimal_start + timedelta(days=1)
        assert day_of_week(window.peak_moment) == 2

    def test_reason_without_delay(self, now):
        window = plan_reentry_window(
            DormancyStage.COOLING, AbandonmentReason.PRICE_SHOCK, (), TIMING, now
        )
        assert window.optimal_start == now + timedelta(days=2)

    def test_peak_follows_best_pattern(self, now):
        window = plan_reentry_window(
            DormancyStage.HIBERNATING,
            AbandonmentReason.UNKNOWN,
            [pattern(5, 0.3), pattern(4, 0.8)],
            TIMING,
            now,
        )
        assert day_of_week(window.peak_moment) == 4
        assert window.optimal_start <= window.peak_moment < window.optimal_start + timedelta(days=7)

    def test_reasoning_names_stage_reason_and_day(self, now):
        window = plan_reentry_window(
            DormancyStage.DEEP_DORMANT, AbandonmentReason.LIFE_EVENT, [pattern(3, 0.7)], TIMING, now
        )
        assert "deep_dormant" in window.reasoning
        assert "life_event" in window.reasoning
        assert "Wednesday" in window.reasoning


class TestReversalTiming:

    def test_budget_loss_waits_for_new_budget(self, make_deal, now):
        deal = make_deal(days_since_loss=10, stated_loss_reason="Budget freeze")
        timing = plan_reversal_timing(deal, REVERSAL, now)
        assert timing.earliest_reentry == deal.loss_date + timedelta(days=30)
        assert timing.optimal_reentry == deal.loss_date + timedelta(days=120)
        assert timing.latest_reentry == deal.loss_date + timedelta(days=365)

    @pytest.mark.parametrize("overrides,offset", [
        ({"stated_loss_reason": "bad timing"}, 60),
        ({"competitor_won": "Acme"}, 180),
        ({"competitive_context": {"competitor_chosen": "Acme"}}, 180),
        ({"stated_loss_reason": "went quiet"}, 90),
    ])
    def test_offsets_by_reason(self, make_deal, now, overrides, offset):
        deal = make_deal(days_since_loss=5, **overrides)
        timing = plan_reversal_timing(deal, REVERSAL, now)
        assert timing.optimal_reentry == deal.loss_date + timedelta(days=offset)

    def test_old_loss_never_schedules_in_the_past(self, make_deal, now):
        timing = plan_reversal_timing(make_deal(days_since_loss=400), REVERSAL, now)
        assert timing.earliest_reentry == now
        assert timing.optimal_reentry == now

    def test_competitor_triggers(self, make_deal, now):
        timing = plan_reversal_timing(make_deal(competitor_won="Acme"), REVERSAL, now)
        assert timing.trigger_conditions[0] == "Competitor renewal period approaching"
        assert len(timing.trigger_conditions) == 6
        assert len(plan_reversal_timing(make_deal(), REVERSAL, now).trigger_conditions) == 4

    def test_avoid_periods(self, make_deal, now):
        deal = make_deal(days_since_loss=3)
        cooling_off, holidays = avoid_periods(deal, REVERSAL, now)
        assert cooling_off.start == deal.loss_date
        assert cooling_off.end == deal.loss_date + timedelta(days=14)
        assert holidays.start == datetime(2024, 12, 20, tzinfo=timezone.utc)
        assert holidays.end == datetime(2025, 1, 5, tzinfo=timezone.utc)
