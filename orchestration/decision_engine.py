"""
🧠 LEAD/DEAL DECISION ENGINE
============================
One entry point per entity type, each a pure orchestration of the pipelines.

ENTRY POINTS:
- classify_dormant_lead:  cold lead -> DormancyClassification
- score_and_route_lead:   inbound lead -> ScoreResult (sales / nurture / reject)
- analyze_lost_deal:      lost deal -> ReversalOpportunity

Batch variants fan out over a thread pool. Every item in a batch is
evaluated against the same `now`, and results come back in input order.
"""

import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

from config.settings import Settings
from engine.errors import DecisionEngineError, InvalidInputError
from engine.models import (
    DormancyClassification,
    ReversalOpportunity,
    ScoreResult,
    as_utc,
)
from pipelines import DormancyPipeline, LeadScoringPipeline, ReversalPipeline

Clock = Callable[[], datetime]
ResultT = TypeVar("ResultT")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DormancyRequest:
    lead_id: str
    signals: Any


@dataclass(frozen=True)
class LeadScoringRequest:
    lead: Any
    website_diagnosis: Any = None
    activities: Sequence[Any] = ()


class DecisionEngine:
    """
    Facade over the dormancy, lead-scoring and reversal pipelines.

    The engine has no side effects: it never persists, sends or retries.
    Time comes from the injected clock unless a call passes `now`.

    Usage:
        engine = DecisionEngine()

        classification = engine.classify_dormant_lead("lead-123", signals)
        score = engine.score_and_route_lead(lead, activities=activities)
        opportunity = engine.analyze_lost_deal(deal)

        # Fixed clock for reproducible results
        engine = DecisionEngine(clock=lambda: datetime(2024, 6, 1, tzinfo=timezone.utc))
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        """
        Args:
            settings: Engine configuration (validated here, defaults from env)
            clock: Zero-argument callable returning the current time

        Raises:
            ConfigurationError: invalid settings
        """
        self.settings = (settings or Settings()).ensure_valid()
        self.clock = clock or utc_now

        self.dormancy = DormancyPipeline(self.settings)
        self.scoring = LeadScoringPipeline(self.settings)
        self.reversal = ReversalPipeline(self.settings)

        logger.info(f"DecisionEngine initialized (batch workers: {self.settings.batch.max_workers})")

    def _now(self, now: Optional[datetime] = None) -> datetime:
        return as_utc(now if now is not None else self.clock())

    # ===================================
    # SINGLE ENTITY
    # ===================================

    def classify_dormant_lead(
        self,
        lead_id: str,
        signals: Any,
        now: Optional[datetime] = None,
    ) -> DormancyClassification:
        return self.dormancy.classify(lead_id, signals, now=self._now(now))

    def score_and_route_lead(
        self,
        lead: Any,
        website_diagnosis: Any = None,
        activities: Sequence[Any] = (),
        now: Optional[datetime] = None,
    ) -> ScoreResult:
        return self.scoring.score(lead, website_diagnosis, activities, now=self._now(now))

    def analyze_lost_deal(self, deal: Any, now: Optional[datetime] = None) -> ReversalOpportunity:
        return self.reversal.analyze(deal, now=self._now(now))

    def rank_reversal_pipeline(
        self,
        deals: Iterable[Any],
        now: Optional[datetime] = None,
        skip_invalid: bool = True,
    ) -> List[ReversalOpportunity]:
        """Viable reversal opportunities, most valuable first."""
        opportunities = self.analyze_lost_deals(deals, now=now, skip_invalid=skip_invalid)
        return self.reversal.rank(opportunities)

    # ===================================
    # BATCHES
    # ===================================

    def _run_batch(
        self,
        label: str,
        evaluate: Callable[[Any, datetime], ResultT],
        items: Iterable[Any],
        now: Optional[datetime],
        skip_invalid: bool,
    ) -> List[ResultT]:
        """
        Evaluate items in parallel against one shared `now`.

        Items that raise DecisionEngineError are logged and left out when
        skip_invalid is set, otherwise the first such error is re-raised.
        Any other exception always propagates.
        """
        items = list(items)
        batch_now = self._now(now)

        with ThreadPoolExecutor(max_workers=self.settings.batch.max_workers) as executor:
            futures = [executor.submit(evaluate, item, batch_now) for item in items]

        results = []
        for index, future in enumerate(futures):
            try:
                results.append(future.result())
            except DecisionEngineError as e:
                if not skip_invalid:
                    raise
                logger.error(f"❌ {label} item {index} skipped: {e}")

        logger.info(f"✅ {label}: {len(results)}/{len(items)} processed")
        return results

    def _classify_item(self, item: Any, now: datetime) -> DormancyClassification:
        if isinstance(item, DormancyRequest):
            return self.dormancy.classify(item.lead_id, item.signals, now=now)
        if not isinstance(item, (tuple, list)) or len(item) != 2:
            raise InvalidInputError("Expected a (lead_id, signals) pair", field="items")
        lead_id, signals = item
        return self.dormancy.classify(lead_id, signals, now=now)

    def _score_item(self, item: Any, now: datetime) -> ScoreResult:
        if isinstance(item, LeadScoringRequest):
            return self.scoring.score(item.lead, item.website_diagnosis, item.activities, now=now)
        return self.scoring.score(item, now=now)

    def _analyze_item(self, item: Any, now: datetime) -> ReversalOpportunity:
        return self.reversal.analyze(item, now=now)

    def classify_dormant_leads(
        self,
        items: Iterable[Any],
        now: Optional[datetime] = None,
        skip_invalid: bool = True,
    ) -> List[DormancyClassification]:
        """
        Classify many leads.

        Args:
            items: DormancyRequest objects or (lead_id, signals) pairs
            now: Shared reference time (defaults to the clock)
            skip_invalid: Log and drop invalid items instead of raising
        """
        return self._run_batch("Dormancy batch", self._classify_item, items, now, skip_invalid)

    def score_and_route_leads(
        self,
        items: Iterable[Any],
        now: Optional[datetime] = None,
        skip_invalid: bool = True,
    ) -> List[ScoreResult]:
        """Score many leads (LeadScoringRequest objects or bare leads)."""
        return self._run_batch("Lead scoring batch", self._score_item, items, now, skip_invalid)

    def analyze_lost_deals(
        self,
        deals: Iterable[Any],
        now: Optional[datetime] = None,
        skip_invalid: bool = True,
    ) -> List[ReversalOpportunity]:
        return self._run_batch("Reversal batch", self._analyze_item, deals, now, skip_invalid)


def main():
    """Demo the engine with sample data."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        level="INFO"
    )

    now = utc_now()
    engine = DecisionEngine(clock=lambda: now)

    logger.info("=" * 60)
    logger.info("🧠 DECISION ENGINE DEMO")
    logger.info("=" * 60)

    # Example 1: lead that went quiet after a price shock
    classification = engine.classify_dormant_lead("lead-demo-1", {
        "last_engagement": now - timedelta(days=45),
        "price_reactions": [{"price_point": 4800, "reaction": "shock"}],
        "objection_history": ["too expensive", "need to think about it"],
        "engagement_history": [
            {"type": "email_open", "timestamp": now - timedelta(days=60), "depth": 0.9, "sentiment": 0.8},
            {"type": "call", "timestamp": now - timedelta(days=45), "depth": 0.2, "sentiment": 0.4},
        ],
    })
    logger.info(f"😴 Stage: {classification.dormancy_stage.value}")
    logger.info(f"   Reason: {classification.primary_reason.value}")
    logger.info(f"   Approach: {classification.recommended_approach.strategy.value} "
                f"via {classification.recommended_approach.channel.value}")
    logger.info(f"   Peak re-entry: {classification.optimal_reentry_window.peak_moment:%Y-%m-%d}")

    # Example 2: referral with pricing page visits
    score = engine.score_and_route_lead(
        {
            "id": "lead-demo-2",
            "email": "ops@example.com",
            "phone": "555-0100",
            "company": "Example Logistics",
            "source": "referral",
            "custom_fields": {"company_size": "enterprise", "budget": "30000"},
        },
        activities=[
            {"activity_type": "pricing_view", "created_at": now - timedelta(hours=5)},
            {"activity_type": "booking_attempted", "created_at": now - timedelta(hours=2)},
        ],
    )
    logger.info(f"🎯 EAR: {score.ear_score} -> {score.routing_decision.value.upper()}")
    logger.info(f"   {score.routing_reasoning}")

    # Example 3: deal lost on budget two months ago
    opportunity = engine.analyze_lost_deal({
        "id": "deal-demo-3",
        "original_opportunity_value": 50000,
        "loss_date": now - timedelta(days=60),
        "stated_loss_reason": "budget freeze",
        "relationship_strength": {"trust_level": "high", "champions_identified": True},
    })
    logger.info(f"🔄 Reversal probability: {opportunity.reversal_probability:.0%}")
    logger.info(f"   Strategy: {opportunity.primary_strategy.name}")
    logger.info(f"   Estimated value: ${opportunity.estimated_value:,.0f}")


if __name__ == "__main__":
    main()
