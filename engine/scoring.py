"""
🎯 COMPOSITE SCORER
===================
Weighted, clamped scores for all three pipelines.

DORMANCY:
    depth     = wS * stage_weight + wE * (1 - engagement) + wR * (1 - response)
    potential = wS * stage_potential + wR * recoverability + wE * (engagement * bonus_scale)

LEAD ROUTING (EAR):
    ear = round(intent * capacity / efficiency), efficiency floored at 10

    - 70+:   sales    Route to sales immediately
    - 40-69: nurture  Enroll in nurture sequence
    - 0-39:  reject   Park and monitor

REVERSAL:
    probability = 0.3 base, adjusted for relationship, loss reason,
                  competitor and time since loss

Every named computation clamps its own result before returning.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence, Tuple

from config.settings import DormancyWeights, ReversalSettings, RoutingSettings
from engine.models import (
    AbandonmentReason,
    Activity,
    BehavioralSignals,
    DormancyStage,
    EconomicPotential,
    EngagementEvent,
    IdentitySignals,
    LeadRecord,
    LostDeal,
    ResponsePattern,
    RoutingDecision,
    WebsiteDiagnosis,
    WebsiteSignals,
)
from engine.reasons import recoverability
from engine.stages import SECONDS_PER_DAY

STAGE_WEIGHT: Dict[DormancyStage, float] = {
    DormancyStage.COOLING: 0.2,
    DormancyStage.DORMANT: 0.4,
    DormancyStage.DEEP_DORMANT: 0.6,
    DormancyStage.HIBERNATING: 0.8,
    DormancyStage.FOSSILIZED: 1.0,
}

STAGE_POTENTIAL: Dict[DormancyStage, float] = {
    DormancyStage.COOLING: 0.9,
    DormancyStage.DORMANT: 0.7,
    DormancyStage.DEEP_DORMANT: 0.5,
    DormancyStage.HIBERNATING: 0.3,
    DormancyStage.FOSSILIZED: 0.15,
}

DEFAULT_ACV = 5000


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (no banker's rounding)."""
    return int(math.floor(value + 0.5))


# ===========================================
# DORMANCY
# ===========================================

def engagement_factor(history: Sequence[EngagementEvent]) -> float:
    """Mean of average depth and average sentiment (0 without events)."""
    if not history:
        return 0.0
    avg_depth = sum(e.depth for e in history) / len(history)
    avg_sentiment = sum(e.sentiment for e in history) / len(history)
    return clamp((avg_depth + avg_sentiment) / 2, 0.0, 1.0)


def response_factor(patterns: Sequence[ResponsePattern]) -> float:
    """Mean of average engagement quality and average speed score (0 without patterns)."""
    if not patterns:
        return 0.0
    avg_quality = sum(p.engagement_quality for p in patterns) / len(patterns)
    avg_speed = sum(min(1.0, 1 / (p.response_speed + 1)) for p in patterns) / len(patterns)
    return clamp((avg_quality + avg_speed) / 2, 0.0, 1.0)


def dormancy_depth(
    stage: DormancyStage,
    engagement: float,
    response: float,
    weights: DormancyWeights,
) -> float:
    depth = (
        weights.depth_stage * STAGE_WEIGHT[stage]
        + weights.depth_engagement * (1 - engagement)
        + weights.depth_response * (1 - response)
    )
    return clamp(depth, 0.0, 1.0)


def reactivation_potential(
    stage: DormancyStage,
    primary_reason: AbandonmentReason,
    engagement: float,
    weights: DormancyWeights,
) -> float:
    potential = (
        weights.potential_stage * STAGE_POTENTIAL[stage]
        + weights.potential_reason * recoverability(primary_reason)
        + weights.potential_engagement * (engagement * weights.engagement_bonus_scale)
    )
    return clamp(potential, 0.0, 1.0)


# ===========================================
# LEAD ROUTING (EAR)
# ===========================================

def extract_identity_signals(lead: LeadRecord) -> IdentitySignals:
    company_size = lead.custom_fields.get("company_size")
    return IdentitySignals(
        has_email=bool(lead.email),
        has_phone=bool(lead.phone),
        has_company=bool(lead.company),
        has_website=bool(lead.website_url),
        company_size=str(company_size) if company_size else None,
    )


def extract_website_signals(diagnosis: Optional[WebsiteDiagnosis]) -> WebsiteSignals:
    if diagnosis is None:
        return WebsiteSignals()
    return WebsiteSignals(
        offer_clarity=diagnosis.offer_clarity or 50,
        has_pricing=len(diagnosis.pricing_signals) > 0,
        authority_markers=len(diagnosis.authority_markers),
        friction_signals=len(diagnosis.friction_signals),
        sophistication_level=diagnosis.sophistication_level or "unknown",
    )


def extract_behavioral_signals(
    activities: Sequence[Activity],
    settings: RoutingSettings,
    now: datetime,
) -> BehavioralSignals:
    """
    Activity counts and velocity over the most recent activities.

    Only the newest `max_activities` activities are considered.
    """
    recent_first = sorted(activities, key=lambda a: a.created_at, reverse=True)
    window = recent_first[:settings.max_activities]

    recent_cutoff = now - timedelta(days=settings.recent_activity_days)
    recent = sum(1 for a in window if a.created_at >= recent_cutoff)

    high_intent_types = [t.lower() for t in settings.high_intent_types]
    high_intent = sum(
        1 for a in window
        if any(t in a.activity_type.lower() for t in high_intent_types)
    )

    avg_gap_hours = None
    velocity = None
    if len(window) >= 2:
        times = sorted(a.created_at for a in window)
        gaps = [(b - a).total_seconds() for a, b in zip(times, times[1:])]
        avg_gap_hours = sum(gaps) / len(gaps) / 3600
        if avg_gap_hours < 24:
            velocity = "high"
        elif avg_gap_hours < 72:
            velocity = "medium"
        else:
            velocity = "low"

    return BehavioralSignals(
        total_activities=len(window),
        recent_activities=recent,
        high_intent_activities=high_intent,
        avg_action_gap_hours=avg_gap_hours,
        engagement_velocity=velocity,
    )


def source_trust_weight(source: Optional[str], settings: RoutingSettings) -> float:
    weights = settings.source_weights
    default = weights.get("unknown", 0.5)
    key = (source or "unknown").lower()
    return clamp(weights.get(key, default), 0.0, 1.0)


def estimate_acv(lead: LeadRecord, diagnosis: Optional[WebsiteDiagnosis]) -> int:
    """
    Rough annual contract value.

    A numeric budget custom field wins; otherwise pricing signals on the
    lead's website decide between enterprise, premium and the default.
    """
    budget = lead.custom_fields.get("budget")
    if budget is not None:
        match = re.match(r"\s*(\d+)", str(budget).replace(",", ""))
        if match:
            return int(match.group(1))
        return DEFAULT_ACV

    pricing = diagnosis.pricing_signals if diagnosis else ()
    if any("enterprise" in s.lower() for s in pricing):
        return 25000
    if any("premium" in s.lower() for s in pricing):
        return 10000
    return DEFAULT_ACV


def economic_potential(
    lead: LeadRecord,
    diagnosis: Optional[WebsiteDiagnosis],
    identity: IdentitySignals,
) -> EconomicPotential:
    return EconomicPotential(
        estimated_acv=estimate_acv(lead, diagnosis),
        sales_cycle_estimate="standard",
        expansion_potential="high" if identity.company_size == "enterprise" else "medium",
    )


def detect_risk_flags(lead: LeadRecord) -> Tuple[str, ...]:
    flags = []
    notes = (lead.notes or "").lower()
    if "comparison" in notes or "competitor" in notes:
        flags.append("comparison_shopper")
    if "just curious" in notes or "exploring" in notes:
        flags.append("low_urgency")
    if not lead.email and not lead.phone:
        flags.append("no_contact_info")
    return tuple(flags)


def intent_score(
    behavioral: BehavioralSignals,
    website: WebsiteSignals,
    risk_flags: Sequence[str],
) -> float:
    """How badly do they want change now? (0-100)"""
    score = 50.0
    score += behavioral.high_intent_activities * 10
    if behavioral.engagement_velocity == "high":
        score += 15
    elif behavioral.engagement_velocity == "medium":
        score += 5
    if website.offer_clarity:
        score += (website.offer_clarity - 50) / 5
    if "low_urgency" in risk_flags:
        score -= 15
    return clamp(score, 0.0, 100.0)


def capacity_score(
    identity: IdentitySignals,
    website: WebsiteSignals,
    economics: EconomicPotential,
) -> float:
    """Can they buy at profitable levels? (0-100)"""
    score = 50.0
    if identity.has_company:
        score += 10
    if identity.company_size == "enterprise":
        score += 20
    elif identity.company_size == "mid-market":
        score += 10
    if website.has_pricing:
        score += 10
    if economics.estimated_acv > 10000:
        score += 15
    elif economics.estimated_acv > 5000:
        score += 5
    return clamp(score, 0.0, 100.0)


def efficiency_score(
    identity: IdentitySignals,
    website: WebsiteSignals,
    risk_flags: Sequence[str],
    trust_weight: float,
    floor: float = 10,
) -> float:
    """How much effort will this lead take? Higher means more effort (floor-100)."""
    score = 50.0
    score += len(risk_flags) * 10
    if not identity.has_email:
        score += 15
    if not identity.has_phone:
        score += 10
    if website.friction_signals > 3:
        score += 10
    if trust_weight > 0.7:
        # Referrals are easier
        score -= 10
    return clamp(score, floor, 100.0)


def ear_score(intent: float, capacity: float, efficiency: float, settings: RoutingSettings) -> int:
    """EAR = Intent x Capacity / Efficiency, clamped to [0, ear_max]."""
    divisor = max(efficiency, settings.efficiency_floor)
    return int(clamp(round_half_up(intent * capacity / divisor), 0, settings.ear_max))


def route_lead(
    ear: int,
    intent: float,
    capacity: float,
    efficiency: float,
    settings: RoutingSettings,
) -> Tuple[RoutingDecision, str]:
    """Routing decision plus a reasoning string citing all three sub-scores."""
    scores = f"intent {intent:g}, capacity {capacity:g}, effort {efficiency:g}"
    if ear >= settings.sales_threshold:
        return (
            RoutingDecision.SALES,
            f"High EAR ({ear}): strong {scores}. Route to sales immediately.",
        )
    if ear >= settings.nurture_threshold:
        return (
            RoutingDecision.NURTURE,
            f"Medium EAR ({ear}): moderate signals ({scores}). "
            f"Enroll in nurture sequence, re-evaluate on new signals.",
        )
    return (
        RoutingDecision.REJECT,
        f"Low EAR ({ear}): low intent or capacity, or high effort required ({scores}). "
        f"Park and monitor for signal changes.",
    )


def nurture_track(risk_flags: Sequence[str], intent: float, capacity: float) -> str:
    """
    Nurture track for leads routed to nurture.

    A: skeptical / comparison shopping
    B: unclear or early (default)
    C: low capacity
    """
    if "comparison_shopper" in risk_flags:
        return "A"
    if intent < 40:
        return "B"
    if capacity < 40:
        return "C"
    return "B"


# ===========================================
# REVERSAL
# ===========================================

def reversal_probability(deal: LostDeal, settings: ReversalSettings, now: datetime) -> float:
    probability = settings.base_probability

    relationship = deal.relationship_strength
    if relationship.trust_level == "high":
        probability += 0.15
    if relationship.champions_identified:
        probability += 0.10
    if relationship.executive_access:
        probability += 0.10

    stated = deal.stated_loss_reason.lower()
    if any(keyword in stated for keyword in settings.reversible_keywords):
        probability += 0.15

    if deal.competitor_chosen:
        # Competitor wins are harder to reverse
        probability -= 0.10

    days_since_loss = (now - deal.loss_date).total_seconds() / SECONDS_PER_DAY
    if days_since_loss < 30:
        probability += 0.10
    elif days_since_loss > 180:
        probability -= 0.15

    return clamp(probability, 0.0, 1.0)


def confidence_level(deal: LostDeal) -> float:
    """More data behind the analysis, more confidence in it."""
    confidence = 0.5
    if len(deal.interaction_history) > 5:
        confidence += 0.1
    if deal.proposal_details is not None:
        confidence += 0.1
    if deal.inferred_loss_reason:
        confidence += 0.1
    if len(deal.decision_makers) > 1:
        confidence += 0.1
    return clamp(confidence, 0.0, 1.0)


def estimated_value(deal: LostDeal, probability: float, haircut: float) -> float:
    """Expected recovered value, discounted for the concessions a win-back usually costs."""
    return deal.original_opportunity_value * probability * haircut
