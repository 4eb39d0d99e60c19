"""
🎯 PIPELINE 2: EAR LEAD SCORING & ROUTING
=========================================
Scores inbound leads and routes them to sales, nurture or reject.

EAR = Intent x Capacity / Efficiency

- Intent:     How badly do they want change now?
- Capacity:   Can they buy at profitable levels?
- Efficiency: How much effort will this take? (higher = more effort)

ROUTING:
- 70+:   sales    Route to sales immediately
- 40-69: nurture  Enroll in nurture track (A/B/C), re-qualify in 14 days
- 0-39:  reject   Park and monitor
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Tuple

from loguru import logger

from config.settings import Settings
from engine.models import (
    Activity,
    LeadRecord,
    RoutingDecision,
    ScoreResult,
    WebsiteDiagnosis,
    parse_input,
)
from engine.scoring import (
    capacity_score,
    detect_risk_flags,
    ear_score,
    economic_potential,
    efficiency_score,
    extract_behavioral_signals,
    extract_identity_signals,
    extract_website_signals,
    intent_score,
    nurture_track,
    route_lead,
    source_trust_weight,
)
from pipelines.pipeline_1_dormancy import resolve_now


def parse_activities(activities: Optional[Iterable[Any]]) -> Tuple[Activity, ...]:
    if activities is None:
        return ()
    return tuple(
        parse_input(Activity, activity, f"activities[{i}]")
        for i, activity in enumerate(activities)
    )


class LeadScoringPipeline:
    """
    EAR scoring for a single lead.

    Usage:
        pipeline = LeadScoringPipeline()
        result = pipeline.score(lead, website_diagnosis=diagnosis, activities=activities)
        result.ear_score         # 280
        result.routing_decision  # RoutingDecision.SALES
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize with validated settings (raises ConfigurationError)."""
        self.settings = (settings or Settings()).ensure_valid()
        routing = self.settings.routing
        logger.info(
            f"🎯 Lead scoring pipeline initialized "
            f"(sales >= {routing.sales_threshold}, nurture >= {routing.nurture_threshold})"
        )

    def score(
        self,
        lead: Any,
        website_diagnosis: Any = None,
        activities: Optional[Iterable[Any]] = (),
        now: Optional[datetime] = None,
    ) -> ScoreResult:
        """
        Score and route one lead.

        Args:
            lead: LeadRecord or an equivalent dict
            website_diagnosis: Optional WebsiteDiagnosis (or dict)
            activities: Activity records (or dicts), any order
            now: Reference time (defaults to the current UTC time)

        Returns:
            ScoreResult

        Raises:
            InvalidInputError: malformed lead, diagnosis or activity
        """
        lead = parse_input(LeadRecord, lead, "lead")
        diagnosis = None
        if website_diagnosis is not None:
            diagnosis = parse_input(WebsiteDiagnosis, website_diagnosis, "website_diagnosis")
        activities = parse_activities(activities)
        now = resolve_now(now)
        routing = self.settings.routing

        identity = extract_identity_signals(lead)
        website = extract_website_signals(diagnosis)
        behavioral = extract_behavioral_signals(activities, routing, now)
        trust_weight = source_trust_weight(lead.source, routing)
        economics = economic_potential(lead, diagnosis, identity)
        risk_flags = detect_risk_flags(lead)

        intent = intent_score(behavioral, website, risk_flags)
        capacity = capacity_score(identity, website, economics)
        efficiency = efficiency_score(
            identity, website, risk_flags, trust_weight, floor=routing.efficiency_floor
        )

        ear = ear_score(intent, capacity, efficiency, routing)
        decision, reasoning = route_lead(ear, intent, capacity, efficiency, routing)

        track = None
        requalify_at = None
        if decision == RoutingDecision.NURTURE:
            track = nurture_track(risk_flags, intent, capacity)
            requalify_at = now + timedelta(days=routing.requalify_days)

        logger.debug(f"Lead {lead.id}: EAR {ear} -> {decision.value}")

        return ScoreResult(
            lead_id=lead.id,
            intent_score=intent,
            capacity_score=capacity,
            efficiency_score=efficiency,
            ear_score=ear,
            routing_decision=decision,
            routing_reasoning=reasoning,
            identity_signals=identity,
            website_signals=website,
            behavioral_signals=behavioral,
            source_trust_weight=trust_weight,
            economic_potential=economics,
            risk_flags=risk_flags,
            nurture_track=track,
            requalify_at=requalify_at,
            scored_at=now,
        )
