"""
📅 TIMING PLANNER
=================
When to reach out again.

DORMANT LEADS:
    optimal_start = now + stage delay + reason delay
    optimal_end   = optimal_start + window
    peak_moment   = optimal_start moved forward to the lead's best day

LOST DEALS:
    earliest = max(now, loss + 30d), optimal = loss + reason offset,
    latest = loss + 365d, plus periods to avoid (cooling-off, holidays).
    Avoid periods are surfaced only; the planner never shifts dates around them.
"""

from datetime import datetime, timedelta
from typing import Sequence, Tuple

from config.settings import ReversalSettings, TimingSettings
from engine.models import (
    AbandonmentReason,
    DateRange,
    DormancyStage,
    LostDeal,
    ResponsePattern,
    ReversalTiming,
    TimeWindow,
)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def day_of_week(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def find_best_day(patterns: Sequence[ResponsePattern], default: int) -> int:
    """Day of the pattern with the highest engagement quality (first one wins ties)."""
    if not patterns:
        return default
    best = patterns[0]
    for pattern in patterns[1:]:
        if pattern.engagement_quality > best.engagement_quality:
            best = pattern
    return best.day_of_week


def advance_to_day(moment: datetime, target_day: int) -> datetime:
    """Move forward (0-6 days) to the next occurrence of target_day."""
    offset = (target_day - day_of_week(moment) + 7) % 7
    return moment + timedelta(days=offset)


def plan_reentry_window(
    stage: DormancyStage,
    reason: AbandonmentReason,
    patterns: Sequence[ResponsePattern],
    settings: TimingSettings,
    now: datetime,
) -> TimeWindow:
    """
    Re-entry window for a dormant lead.

    Args:
        stage: Current dormancy stage
        reason: Primary abandonment reason
        patterns: Historical response patterns
        settings: Delay tables
        now: Reference time

    Returns:
        TimeWindow with start, end, peak and a reasoning string
    """
    base_delay = timedelta(days=settings.stage_delays[stage.value])
    reason_delay = timedelta(days=settings.reason_delays.get(reason.value, 0))
    best_day = find_best_day(patterns, settings.default_best_day)

    optimal_start = now + base_delay + reason_delay
    optimal_end = optimal_start + timedelta(days=settings.window_days)
    peak_moment = advance_to_day(optimal_start, best_day)

    return TimeWindow(
        optimal_start=optimal_start,
        optimal_end=optimal_end,
        peak_moment=peak_moment,
        reasoning=(
            f"Based on {stage.value} stage and {reason.value} reason, "
            f"with historical response pattern preference for {DAY_NAMES[best_day]} (day {best_day})"
        ),
    )


def _reentry_offset_days(deal: LostDeal, settings: ReversalSettings) -> int:
    stated = deal.stated_loss_reason.lower()
    offsets = settings.reentry_days
    if "budget" in stated:
        # Wait for new budget cycle
        return offsets.get("budget", offsets["default"])
    if "timing" in stated:
        return offsets.get("timing", offsets["default"])
    if deal.competitor_chosen:
        # Wait for competitor issues to surface
        return offsets.get("competitor", offsets["default"])
    return offsets["default"]


def timing_triggers(deal: LostDeal) -> Tuple[str, ...]:
    triggers = []
    if deal.competitor_chosen:
        triggers.append("Competitor renewal period approaching")
        triggers.append("Public news of competitor issues")
    triggers.extend([
        "Fiscal year/quarter end",
        "Leadership changes announced",
        "Strategic initiative announcements",
        "Industry event participation",
    ])
    return tuple(triggers)


def avoid_periods(deal: LostDeal, settings: ReversalSettings, now: datetime) -> Tuple[DateRange, ...]:
    """Cooling-off period after the loss and this year's holiday window."""
    cooling_off = DateRange(
        start=deal.loss_date,
        end=deal.loss_date + timedelta(days=settings.cooling_off_days),
        reason="Too soon after loss - emotions still fresh",
    )

    year = now.year
    holiday_start = datetime(
        year, settings.holiday_start_month, settings.holiday_start_day, tzinfo=now.tzinfo
    )
    end_year = year + 1 if settings.holiday_end_month < settings.holiday_start_month else year
    holiday_end = datetime(
        end_year, settings.holiday_end_month, settings.holiday_end_day, tzinfo=now.tzinfo
    )
    holidays = DateRange(
        start=holiday_start,
        end=holiday_end,
        reason="Holiday period - low response rates",
    )
    return (cooling_off, holidays)


def plan_reversal_timing(
    deal: LostDeal,
    settings: ReversalSettings,
    now: datetime,
) -> ReversalTiming:
    """
    Re-entry timing for a lost deal, anchored on the loss date.

    Args:
        deal: The lost deal
        settings: Reversal offsets and avoid-period configuration
        now: Reference time

    Returns:
        ReversalTiming
    """
    optimal = deal.loss_date + timedelta(days=_reentry_offset_days(deal, settings))
    earliest = deal.loss_date + timedelta(days=settings.earliest_reentry_days)

    return ReversalTiming(
        earliest_reentry=max(now, earliest),
        optimal_reentry=max(now, optimal),
        latest_reentry=deal.loss_date + timedelta(days=settings.latest_reentry_days),
        trigger_conditions=timing_triggers(deal),
        avoid_periods=avoid_periods(deal, settings, now),
    )
