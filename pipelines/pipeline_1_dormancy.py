"""
😴 PIPELINE 1: LEAD DORMANCY CLASSIFIER
=======================================
Classifies cold leads and recommends how and when to re-engage them.

WHY THIS MATTERS:
- A lead that went quiet a week ago needs a nudge, not a re-introduction
- The reason they went quiet decides the angle (price, timing, trust...)
- Re-entering at the wrong moment burns the lead for good

ORDER OF OPERATIONS:
stage -> reasons -> depth/potential -> window -> risks -> approach
"""

from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

from config.settings import Settings
from engine.errors import InvalidInputError
from engine.models import BehaviorSignals, DormancyClassification, as_utc, parse_input
from engine.reasons import infer_reasons
from engine.risks import assess_dormancy_risks
from engine.scoring import (
    dormancy_depth,
    engagement_factor,
    reactivation_potential,
    response_factor,
)
from engine.stages import classify_stage
from engine.strategy import recommend_approach
from engine.timing import plan_reentry_window


def resolve_now(now: Optional[datetime]) -> datetime:
    """Reference time for a call: the injected value, or the current UTC time."""
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


def require_id(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{name} is required", field=name)
    return value


class DormancyPipeline:
    """
    Dormancy classification for a single lead.

    Usage:
        pipeline = DormancyPipeline()
        result = pipeline.classify("lead-123", signals)
        result.dormancy_stage       # DormancyStage.DORMANT
        result.recommended_approach # strategy, channel, tone, ...
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize with validated settings (raises ConfigurationError)."""
        self.settings = (settings or Settings()).ensure_valid()
        logger.info(
            f"😴 Dormancy pipeline initialized "
            f"(thresholds: {self.settings.stages.as_tuple()})"
        )

    def classify(
        self,
        lead_id: str,
        signals: Any,
        now: Optional[datetime] = None,
    ) -> DormancyClassification:
        """
        Classify one dormant lead.

        Args:
            lead_id: Lead identifier
            signals: BehaviorSignals or an equivalent dict
            now: Reference time (defaults to the current UTC time)

        Returns:
            DormancyClassification

        Raises:
            InvalidInputError: missing lead id or malformed signals
        """
        lead_id = require_id(lead_id, "lead_id")
        signals = parse_input(BehaviorSignals, signals, "signals")
        now = resolve_now(now)
        settings = self.settings

        stage = classify_stage(signals.last_engagement, settings.stages.as_tuple(), now)

        inference = infer_reasons(
            signals.price_reactions,
            signals.objection_history,
            signals.engagement_history,
        )
        primary = inference.primary

        engagement = engagement_factor(signals.engagement_history)
        response = response_factor(signals.response_patterns)
        depth = dormancy_depth(stage, engagement, response, settings.dormancy)
        potential = reactivation_potential(stage, primary, engagement, settings.dormancy)

        window = plan_reentry_window(
            stage, primary, signals.response_patterns, settings.timing, now
        )

        objection_count = len(signals.objection_history)
        risks = assess_dormancy_risks(stage, inference.ranked, objection_count)

        approach = recommend_approach(
            inference.ranked,
            stage,
            signals.communication_preferences,
            objection_count,
            potential,
            settings.outreach.min_channel_response_rate,
        )

        logger.debug(
            f"Lead {lead_id}: {stage.value}, reason {primary.value}, "
            f"depth {depth:.2f}, potential {potential:.2f}"
        )

        return DormancyClassification(
            lead_id=lead_id,
            dormancy_stage=stage,
            primary_reason=primary,
            secondary_reasons=inference.secondary,
            dormancy_depth=depth,
            reactivation_potential=potential,
            optimal_reentry_window=window,
            risk_factors=risks,
            recommended_approach=approach,
            classified_at=now,
        )
