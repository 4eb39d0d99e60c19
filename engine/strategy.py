"""
🧭 STRATEGY RECOMMENDER
=======================
Picks how to re-approach a lead or a lost deal.

The engine only selects strategy parameters (strategy, channel, tone,
intensity, framing, avoidances). Message text is written elsewhere.
"""

from typing import Dict, List, Sequence, Tuple

from engine.models import (
    AbandonmentReason,
    ApproachRecommendation,
    CommunicationChannel,
    CommunicationPreference,
    CommunicationTone,
    ContactStep,
    DormancyStage,
    EscalationStep,
    Intensity,
    LostDeal,
    ReentryApproach,
    ReentryStrategy,
    ReversalApproach,
    ReversalStrategy,
    StrategicMessaging,
    TriggerEvent,
    TriggerType,
)

STRATEGY_BY_REASON: Dict[AbandonmentReason, ReentryStrategy] = {
    AbandonmentReason.PRICE_SHOCK: ReentryStrategy.VALUE_REMINDER,
    AbandonmentReason.TIMING_MISMATCH: ReentryStrategy.SOFT_CHECK_IN,
    AbandonmentReason.TRUST_DEFICIT: ReentryStrategy.SOCIAL_PROOF_INJECTION,
    AbandonmentReason.IDENTITY_MISALIGNMENT: ReentryStrategy.NEW_ANGLE,
    AbandonmentReason.FEAR_OF_COMMITMENT: ReentryStrategy.PERMISSION_BASED,
    AbandonmentReason.DECISION_PARALYSIS: ReentryStrategy.DIRECT_ASK,
    AbandonmentReason.VALUE_UNCLEAR: ReentryStrategy.SUCCESS_STORY,
    AbandonmentReason.URGENCY_LACKING: ReentryStrategy.PROBLEM_RESURFACE,
}

STAGE_CHANNEL: Dict[DormancyStage, CommunicationChannel] = {
    DormancyStage.COOLING: CommunicationChannel.EMAIL,
    DormancyStage.DORMANT: CommunicationChannel.EMAIL,
    DormancyStage.DEEP_DORMANT: CommunicationChannel.PHONE,
    DormancyStage.HIBERNATING: CommunicationChannel.PHONE,
    DormancyStage.FOSSILIZED: CommunicationChannel.PHONE,
}

FRAMING_BY_REASON: Dict[AbandonmentReason, str] = {
    AbandonmentReason.PRICE_SHOCK: "Focus on ROI and outcomes, not features. Show value exceeds investment.",
    AbandonmentReason.TIMING_MISMATCH: "Acknowledge their timing, check if circumstances changed.",
    AbandonmentReason.TRUST_DEFICIT: "Lead with proof, testimonials, and risk reversal.",
    AbandonmentReason.IDENTITY_MISALIGNMENT: "Reframe offer in terms that match their values and approach.",
    AbandonmentReason.FEAR_OF_COMMITMENT: "Offer smaller first step, reduce perceived risk.",
    AbandonmentReason.DECISION_PARALYSIS: "Simplify to one clear choice, remove options.",
    AbandonmentReason.VALUE_UNCLEAR: "Tell specific success story relevant to their situation.",
}
DEFAULT_FRAMING = "Open with genuine curiosity about their current situation."

AVOIDANCES_BY_REASON: Dict[AbandonmentReason, Tuple[str, ...]] = {
    AbandonmentReason.PRICE_SHOCK: (
        "Avoid mentioning price early",
        "Do not offer discounts proactively",
    ),
    AbandonmentReason.TRUST_DEFICIT: (
        "Avoid making claims without proof",
        "Do not push for quick decisions",
    ),
}
UNIVERSAL_AVOIDANCES = (
    "Do not reference their silence negatively",
    "Avoid guilt-based messaging",
)


# ===========================================
# DORMANT LEADS
# ===========================================

def select_channel(
    preferences: Sequence[CommunicationPreference],
    stage: DormancyStage,
    min_response_rate: float = 0.3,
) -> CommunicationChannel:
    """Best responding channel if it clears the bar, else the stage default."""
    if preferences:
        best = preferences[0]
        for preference in preferences[1:]:
            if preference.response_rate > best.response_rate:
                best = preference
        if best.response_rate > min_response_rate:
            return best.channel
    return STAGE_CHANNEL[stage]


def select_tone(reason: AbandonmentReason, stage: DormancyStage) -> CommunicationTone:
    if reason == AbandonmentReason.TRUST_DEFICIT:
        return CommunicationTone.PROFESSIONAL
    if reason == AbandonmentReason.FEAR_OF_COMMITMENT:
        return CommunicationTone.EMPATHETIC
    if stage == DormancyStage.FOSSILIZED:
        return CommunicationTone.WARM
    if stage == DormancyStage.COOLING:
        return CommunicationTone.CASUAL
    return CommunicationTone.PROFESSIONAL


def select_intensity(potential: float) -> Intensity:
    """Lower potential gets the more assertive push (> 0.7 moderate, > 0.4 soft)."""
    if potential > 0.7:
        return Intensity.MODERATE
    if potential > 0.4:
        return Intensity.SOFT
    return Intensity.ASSERTIVE


def build_avoidances(
    reasons: Sequence[AbandonmentReason],
    objection_count: int,
) -> Tuple[str, ...]:
    avoidances: List[str] = []
    for reason in (AbandonmentReason.PRICE_SHOCK, AbandonmentReason.TRUST_DEFICIT):
        if reason in reasons:
            avoidances.extend(AVOIDANCES_BY_REASON[reason])
    if objection_count > 3:
        avoidances.append("Avoid rehashing old objections")
    avoidances.extend(UNIVERSAL_AVOIDANCES)
    return tuple(avoidances)


def recommend_approach(
    reasons: Sequence[AbandonmentReason],
    stage: DormancyStage,
    preferences: Sequence[CommunicationPreference],
    objection_count: int,
    potential: float,
    min_response_rate: float = 0.3,
) -> ApproachRecommendation:
    """
    Strategy parameters for re-engaging a dormant lead.

    Args:
        reasons: Ranked abandonment reasons (may be empty)
        stage: Dormancy stage
        preferences: Channel preferences with response rates
        objection_count: Number of objections on record
        potential: Reactivation potential (0-1)
        min_response_rate: Response rate a preferred channel must beat

    Returns:
        ApproachRecommendation
    """
    primary = reasons[0] if reasons else AbandonmentReason.UNKNOWN

    return ApproachRecommendation(
        strategy=STRATEGY_BY_REASON.get(primary, ReentryStrategy.SOFT_CHECK_IN),
        channel=select_channel(preferences, stage, min_response_rate),
        tone=select_tone(primary, stage),
        intensity=select_intensity(potential),
        message_framing=FRAMING_BY_REASON.get(primary, DEFAULT_FRAMING),
        avoidances=build_avoidances(reasons, objection_count),
    )


# ===========================================
# LOST DEALS
# ===========================================

def _value_repositioning(deal: LostDeal) -> ReversalStrategy:
    return ReversalStrategy(
        id=f"vr_{deal.id}",
        name="Value Repositioning",
        approach=ReversalApproach.VALUE_REPOSITIONING,
        required_conditions=(
            "Relationship not damaged",
            "Original proposal undervalued offering",
            "New proof points available",
        ),
        messaging=StrategicMessaging(
            opening_hook="New insights from similar clients that changes the equation",
            value_proposition="Repositioned around their specific pain points",
            differentiator="Unique capability they may have overlooked",
            call_to_action="15-minute insight share",
            objection_preemption=("We understand timing was not right before",),
            proof_elements=("New case study", "Updated ROI model", "Peer reference"),
        ),
        target_contacts=tuple(dm.id for dm in deal.decision_makers if dm.sentiment != "negative"),
        expected_outcome="Re-opened conversation with new value angle",
        success_probability=0.35,
        time_to_result=45,
    )


def _new_stakeholder(deal: LostDeal) -> ReversalStrategy:
    return ReversalStrategy(
        id=f"ns_{deal.id}",
        name="New Stakeholder Entry",
        approach=ReversalApproach.NEW_STAKEHOLDER_ENTRY,
        required_conditions=(
            "Additional stakeholders identifiable",
            "Problem affects multiple departments",
            "Original contact was not true decision maker",
        ),
        messaging=StrategicMessaging(
            opening_hook="Insight relevant to their specific function",
            value_proposition="Department-specific value proposition",
            differentiator="Unique insight for their role",
            call_to_action="Quick consultation on their specific challenge",
            objection_preemption=("No pressure approach", "Fresh perspective"),
            proof_elements=("Role-specific case study", "Peer testimonial"),
        ),
        target_contacts=("new_stakeholder_research_required",),
        expected_outcome="New internal champion identified",
        success_probability=0.25,
        time_to_result=60,
    )


def _competitive_displacement(deal: LostDeal) -> ReversalStrategy:
    return ReversalStrategy(
        id=f"cd_{deal.id}",
        name="Competitive Displacement",
        approach=ReversalApproach.COMPETITIVE_DISPLACEMENT,
        required_conditions=(
            "Competitor chosen",
            "Implementation period passed",
            "Potential for competitor underperformance",
        ),
        messaging=StrategicMessaging(
            opening_hook="Not here to second-guess - genuinely curious how things are going",
            value_proposition="Complementary capability or gap filler",
            differentiator="What we do differently",
            call_to_action="Informal check-in",
            objection_preemption=("Respecting their decision", "Future relationship focus"),
            proof_elements=("Competitive switch case study", "Migration support"),
        ),
        target_contacts=tuple(dm.id for dm in deal.decision_makers if dm.influence == "primary"),
        expected_outcome="Positioned for future consideration",
        success_probability=0.2,
        time_to_result=180,
    )


def _pilot_proposal(deal: LostDeal) -> ReversalStrategy:
    return ReversalStrategy(
        id=f"pp_{deal.id}",
        name="Pilot Proposal",
        approach=ReversalApproach.PILOT_PROPOSAL,
        required_conditions=(
            "Full commitment was the barrier",
            "Solution can be piloted",
            "Budget for smaller engagement exists",
        ),
        messaging=StrategicMessaging(
            opening_hook="Smaller way to prove value before full commitment",
            value_proposition="Low-risk proof of concept",
            differentiator="Confidence in delivering results",
            call_to_action="Explore a pilot scope",
            objection_preemption=("No long-term lock-in", "Success-based expansion"),
            proof_elements=("Pilot success stories", "Clear success metrics"),
        ),
        target_contacts=tuple(dm.id for dm in deal.decision_makers),
        expected_outcome="Pilot engagement initiated",
        success_probability=0.3,
        time_to_result=30,
    )


def generate_reversal_strategies(deal: LostDeal) -> Tuple[ReversalStrategy, ...]:
    """
    Candidate strategies, best success probability first.

    A pilot proposal is always on the list, so the result is never empty.
    """
    strategies = []
    if deal.relationship_strength.trust_level != "broken":
        strategies.append(_value_repositioning(deal))
    if any(dm.sentiment == "negative" for dm in deal.decision_makers):
        strategies.append(_new_stakeholder(deal))
    if deal.competitor_chosen:
        strategies.append(_competitive_displacement(deal))
    strategies.append(_pilot_proposal(deal))

    return tuple(sorted(strategies, key=lambda s: s.success_probability, reverse=True))


def identify_trigger_events(deal: LostDeal) -> Tuple[TriggerEvent, ...]:
    triggers = []

    if deal.competitor_chosen:
        triggers.append(TriggerEvent(
            type=TriggerType.COMPETITOR_FAILURE,
            description="Signs of competitor underperformance or dissatisfaction",
            monitoring_method="Social listening, industry news, contact check-ins",
            expected_timeline="6-12 months post-implementation",
            probability=0.3,
        ))
        triggers.append(TriggerEvent(
            type=TriggerType.CONTRACT_RENEWAL,
            description="Competitor contract renewal approaching",
            monitoring_method="Timeline tracking from original loss date",
            expected_timeline="12-24 months",
            probability=0.5,
        ))

    triggers.append(TriggerEvent(
        type=TriggerType.LEADERSHIP_CHANGE,
        description="New decision maker with different priorities",
        monitoring_method="LinkedIn monitoring, company news",
        probability=0.2,
    ))
    triggers.append(TriggerEvent(
        type=TriggerType.BUDGET_CYCLE,
        description="New fiscal year budget allocation",
        monitoring_method="Calendar-based tracking",
        expected_timeline="Fiscal year start",
        probability=0.4,
    ))
    triggers.append(TriggerEvent(
        type=TriggerType.STRATEGIC_SHIFT,
        description="Company announces new strategic initiative",
        monitoring_method="Press releases, earnings calls, industry news",
        probability=0.25,
    ))

    return tuple(triggers)


def design_reentry_approach(deal: LostDeal, strategy: ReversalStrategy) -> ReentryApproach:
    """Three-touch contact sequence through the primary contact's preferred channel."""
    primary_contact = next((dm for dm in deal.decision_makers if dm.influence == "primary"), None)
    channel = (primary_contact.preferred_channel if primary_contact else None) or "email"

    return ReentryApproach(
        channel=channel,
        contact_sequence=(
            ContactStep(
                day=0,
                action="Initial outreach",
                channel=channel,
                message=strategy.messaging.opening_hook,
                expected_response="Acknowledgment or curiosity",
                next_step_if_positive="Schedule brief call",
                next_step_if_negative="Wait and try alternative contact",
            ),
            ContactStep(
                day=5,
                action="Value-add follow-up",
                channel="email",
                message="Share relevant insight or resource",
                expected_response="Engagement with content",
                next_step_if_positive="Request brief conversation",
                next_step_if_negative="Try different angle",
            ),
            ContactStep(
                day=14,
                action="Soft check-in",
                channel="linkedin",
                message="Non-salesy connection message",
                expected_response="Connection or response",
                next_step_if_positive="Continue relationship building",
                next_step_if_negative="Move to monitoring mode",
            ),
        ),
        escalation_path=(
            EscalationStep(
                trigger="No response after 3 touches",
                action="Try alternative contact or channel",
                owner="Account executive",
                timeline="30 days",
            ),
            EscalationStep(
                trigger="Positive signal received",
                action="Escalate to senior contact for executive outreach",
                owner="Sales leader",
                timeline="Within 48 hours",
            ),
        ),
        fallback_strategy="Move to long-term nurture with quarterly value touches",
    )
