"""
⏳ STAGE CLASSIFIER
===================
Maps days of silence onto the ordered dormancy stages.

STAGES (default thresholds, inclusive):
- cooling:       0-7 days    still warm
- dormant:       8-30 days   disengaged but recoverable
- deep_dormant:  31-90 days  significant effort needed
- hibernating:   91-180 days requires special approach
- fossilized:    181+ days   very low probability
"""

from datetime import datetime
from typing import Sequence

from engine.models import DormancyStage, as_utc

SECONDS_PER_DAY = 86400

STAGE_ORDER = tuple(DormancyStage)


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days elapsed (floored, negative if moment is in the future)."""
    return int((as_utc(now) - as_utc(moment)).total_seconds() // SECONDS_PER_DAY)


def stage_severity(stage: DormancyStage) -> int:
    return STAGE_ORDER.index(stage)


def classify_stage(
    last_engagement: datetime,
    thresholds: Sequence[int],
    now: datetime,
) -> DormancyStage:
    """
    First threshold the elapsed days fit under wins.

    Args:
        last_engagement: Most recent engagement timestamp
        thresholds: (cooling, dormant, deep_dormant, hibernating) in days,
            strictly increasing
        now: Reference time

    Returns:
        DormancyStage, fossilized beyond the last threshold
    """
    elapsed = days_since(last_engagement, now)
    for stage, limit in zip(STAGE_ORDER, thresholds):
        if elapsed <= limit:
            return stage
    return DormancyStage.FOSSILIZED
