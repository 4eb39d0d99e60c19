"""
🔄 PIPELINE 3: LOST-DEAL REVERSAL ANALYZER
==========================================
Estimates whether a lost deal can be won back, and how.

WHY THIS MATTERS:
- Deals lost on timing or budget often come back on their own schedule
- A competitor win is harder, but their first renewal is an opening
- Ranking the lost pipeline tells sales which doors to knock on first

OUTPUT: one ReversalOpportunity per deal with timing, strategies,
trigger events, a contact sequence and risks.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional

from loguru import logger

from config.settings import Settings
from engine.models import LostDeal, ReversalOpportunity, parse_input
from engine.reasons import infer_loss_reasons
from engine.risks import assess_reversal_risks
from engine.scoring import confidence_level, estimated_value, reversal_probability
from engine.strategy import (
    design_reentry_approach,
    generate_reversal_strategies,
    identify_trigger_events,
)
from engine.timing import plan_reversal_timing
from pipelines.pipeline_1_dormancy import resolve_now


class ReversalPipeline:
    """
    Reversal analysis for lost deals.

    Usage:
        pipeline = ReversalPipeline()
        opportunity = pipeline.analyze(deal)

        # Most valuable reversal opportunities first
        ranked = pipeline.rank_pipeline(deals)
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize with validated settings (raises ConfigurationError)."""
        self.settings = (settings or Settings()).ensure_valid()
        logger.info(
            f"🔄 Reversal pipeline initialized "
            f"(base probability {self.settings.reversal.base_probability})"
        )

    def analyze(self, deal: Any, now: Optional[datetime] = None) -> ReversalOpportunity:
        """
        Analyze one lost deal.

        Args:
            deal: LostDeal or an equivalent dict
            now: Reference time (defaults to the current UTC time)

        Returns:
            ReversalOpportunity

        Raises:
            InvalidInputError: malformed deal
        """
        deal = parse_input(LostDeal, deal, "deal")
        now = resolve_now(now)
        settings = self.settings.reversal

        probability = reversal_probability(deal, settings, now)
        inference = infer_loss_reasons(deal)
        timing = plan_reversal_timing(deal, settings, now)

        strategies = generate_reversal_strategies(deal)
        primary_strategy = strategies[0]
        triggers = identify_trigger_events(deal)
        reentry = design_reentry_approach(deal, primary_strategy)
        risks = assess_reversal_risks(deal)

        logger.debug(
            f"Deal {deal.id}: probability {probability:.2f}, "
            f"strategy {primary_strategy.approach.value}"
        )

        return ReversalOpportunity(
            deal_id=deal.id,
            reversal_probability=probability,
            primary_reason=inference.primary,
            optimal_timing=timing,
            primary_strategy=primary_strategy,
            alternative_strategies=strategies[1:],
            trigger_events=triggers,
            reentry_approach=reentry,
            risk_factors=risks,
            estimated_value=estimated_value(deal, probability, settings.value_haircut),
            confidence_level=confidence_level(deal),
            analyzed_at=now,
        )

    def rank_pipeline(
        self,
        deals: Iterable[Any],
        now: Optional[datetime] = None,
    ) -> List[ReversalOpportunity]:
        """
        Analyze many deals and keep the ones worth pursuing.

        Deals at or below the minimum probability are dropped; the rest
        are ordered by probability x estimated value, highest first.
        """
        now = resolve_now(now)
        return self.rank([self.analyze(deal, now=now) for deal in deals])

    def rank(self, opportunities: Iterable[ReversalOpportunity]) -> List[ReversalOpportunity]:
        """Filter and order already analyzed opportunities (stable on equal value)."""
        opportunities = list(opportunities)
        minimum = self.settings.reversal.pipeline_min_probability

        viable = [o for o in opportunities if o.reversal_probability > minimum]
        viable.sort(key=lambda o: o.reversal_probability * o.estimated_value, reverse=True)

        logger.info(f"📋 Reversal pipeline: {len(viable)}/{len(opportunities)} deals viable")
        return viable
