"""
🔍 REASON INFERENCER
====================
Maps objections, price reactions and engagement trends onto the closed
abandonment-reason taxonomy.

HOW IT WORKS:
1. Shock/negative price reactions put 0.9 on price_shock
2. Each objection is matched against an ordered keyword table
   (first matching group wins) and adds 0.3 to that reason, capped at 1.0
3. Engagement decline adds competitor_distraction (sudden drop)
   or urgency_lacking (gradual fade)
4. Reasons are ranked by score, ties broken by taxonomy declaration order
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from engine.models import AbandonmentReason, EngagementEvent, LostDeal, PriceReaction


PRICE_SHOCK_WEIGHT = 0.9
OBJECTION_INCREMENT = 0.3
SUDDEN_DROP_WEIGHT = 0.6
GRADUAL_FADE_WEIGHT = 0.5
DECLINE_WINDOW = 5

# Ordered: the first group with a keyword inside the objection wins.
OBJECTION_KEYWORDS: Tuple[Tuple[Tuple[str, ...], AbandonmentReason], ...] = (
    (("expensive", "cost", "price", "budget", "afford"), AbandonmentReason.PRICE_SHOCK),
    (("later", "timing", "busy", "not now", "next"), AbandonmentReason.TIMING_MISMATCH),
    (("trust", "guarantee", "proof", "results", "skeptical"), AbandonmentReason.TRUST_DEFICIT),
    (("not for me", "different", "approach", "style"), AbandonmentReason.IDENTITY_MISALIGNMENT),
    (("think about", "decide", "commitment", "risk"), AbandonmentReason.FEAR_OF_COMMITMENT),
    (("overwhelmed", "options", "confused", "complicated"), AbandonmentReason.DECISION_PARALYSIS),
    (("my boss", "sign off", "sign-off", "approval"), AbandonmentReason.AUTHORITY_INSUFFICIENT),
    (("family", "health", "moving", "new job"), AbandonmentReason.LIFE_EVENT),
    (("no show", "no-show", "stopped responding", "disappeared"), AbandonmentReason.GHOSTING_HABIT),
)

# Probability that a lead lost for this reason can be won back
RECOVERABILITY: Dict[AbandonmentReason, float] = {
    AbandonmentReason.TIMING_MISMATCH: 0.9,
    AbandonmentReason.BUDGET_CONSTRAINTS: 0.7,
    AbandonmentReason.URGENCY_LACKING: 0.8,
    AbandonmentReason.DECISION_PARALYSIS: 0.75,
    AbandonmentReason.PRICE_SHOCK: 0.6,
    AbandonmentReason.TRUST_DEFICIT: 0.5,
    AbandonmentReason.FEAR_OF_COMMITMENT: 0.65,
    AbandonmentReason.COMPETITOR_DISTRACTION: 0.4,
    AbandonmentReason.IDENTITY_MISALIGNMENT: 0.3,
    AbandonmentReason.INTERNAL_POLITICS: 0.4,
    AbandonmentReason.VALUE_UNCLEAR: 0.7,
    AbandonmentReason.AUTHORITY_INSUFFICIENT: 0.5,
    AbandonmentReason.OVERWHELM: 0.6,
    AbandonmentReason.LIFE_EVENT: 0.5,
    AbandonmentReason.GHOSTING_HABIT: 0.2,
    AbandonmentReason.UNKNOWN: 0.5,
}

_DECLARATION_ORDER = {reason: i for i, reason in enumerate(AbandonmentReason)}


@dataclass(frozen=True)
class EngagementDecline:
    """
    Trend over the most recent engagement events.

    sudden_drop and gradual_fade are not forced to be exclusive.
    """
    sudden_drop: bool
    gradual_fade: bool
    pattern: str  # insufficient_data | declining | stable


@dataclass(frozen=True)
class ReasonInference:
    ranked: Tuple[AbandonmentReason, ...]
    scores: Dict[AbandonmentReason, float] = field(default_factory=dict)
    decline: Optional[EngagementDecline] = None

    @property
    def primary(self) -> AbandonmentReason:
        return self.ranked[0] if self.ranked else AbandonmentReason.UNKNOWN

    @property
    def secondary(self) -> Tuple[AbandonmentReason, ...]:
        return self.ranked[1:]


def recoverability(reason: AbandonmentReason) -> float:
    return RECOVERABILITY.get(reason, RECOVERABILITY[AbandonmentReason.UNKNOWN])


def analyze_engagement_decline(history: Sequence[EngagementEvent]) -> EngagementDecline:
    """
    Compare the first and last depth of the five most recent events.

    Args:
        history: Engagement events in any order

    Returns:
        EngagementDecline (all False with fewer than 2 events)
    """
    if len(history) < 2:
        return EngagementDecline(sudden_drop=False, gradual_fade=False, pattern="insufficient_data")

    recent = sorted(history, key=lambda e: e.timestamp)[-DECLINE_WINDOW:]
    depths = [e.depth for e in recent]
    avg_depth = sum(depths) / len(depths)
    first_depth = depths[0]
    last_depth = depths[-1]

    return EngagementDecline(
        sudden_drop=last_depth < first_depth * 0.3,
        gradual_fade=avg_depth < first_depth * 0.6 and last_depth > first_depth * 0.2,
        pattern="declining" if last_depth < avg_depth else "stable",
    )


def match_objection(objection: str) -> Optional[AbandonmentReason]:
    """Case-insensitive substring match against the keyword table."""
    text = objection.lower()
    for keywords, reason in OBJECTION_KEYWORDS:
        if any(kw in text for kw in keywords):
            return reason
    return None


def rank_reasons(scores: Dict[AbandonmentReason, float]) -> Tuple[AbandonmentReason, ...]:
    """Score descending, then taxonomy declaration order. Zero scores are dropped."""
    ordered = sorted(
        (r for r, s in scores.items() if s > 0),
        key=lambda r: (-scores[r], _DECLARATION_ORDER[r]),
    )
    return tuple(ordered)


def _add_objections(scores: Dict[AbandonmentReason, float], objections: Iterable[str]):
    for objection in objections:
        reason = match_objection(objection)
        if reason is not None:
            scores[reason] = min(scores.get(reason, 0.0) + OBJECTION_INCREMENT, 1.0)


def infer_reasons(
    price_reactions: Sequence[PriceReaction],
    objection_history: Sequence[str],
    engagement_history: Sequence[EngagementEvent],
) -> ReasonInference:
    """
    Accumulate evidence for each abandonment reason and rank them.

    Args:
        price_reactions: Reactions to quoted prices
        objection_history: Free-text objections
        engagement_history: Engagement events in any order

    Returns:
        ReasonInference with ranked reasons and raw scores
    """
    scores: Dict[AbandonmentReason, float] = {}

    if any(r.reaction in ("shock", "negative") for r in price_reactions):
        scores[AbandonmentReason.PRICE_SHOCK] = PRICE_SHOCK_WEIGHT

    _add_objections(scores, objection_history)

    decline = analyze_engagement_decline(engagement_history)
    if decline.sudden_drop:
        scores[AbandonmentReason.COMPETITOR_DISTRACTION] = SUDDEN_DROP_WEIGHT
    if decline.gradual_fade:
        scores[AbandonmentReason.URGENCY_LACKING] = GRADUAL_FADE_WEIGHT

    ranked = rank_reasons(scores)
    summary = {r.value: round(s, 2) for r, s in scores.items()}
    logger.debug(f"Reason scores: {summary}")

    return ReasonInference(ranked=ranked, scores=scores, decline=decline)


def infer_loss_reasons(deal: LostDeal) -> ReasonInference:
    """
    Run the objection table over what we know about why a deal was lost.

    The stated reason, any inferred reason and the competitor's
    reasons-for-choice are all treated as objections.
    """
    scores: Dict[AbandonmentReason, float] = {}

    evidence: List[str] = [deal.stated_loss_reason]
    if deal.inferred_loss_reason:
        evidence.append(deal.inferred_loss_reason)
    evidence.extend(deal.competitive_context.reasons_for_choice)
    _add_objections(scores, [e for e in evidence if e])

    if deal.competitor_chosen:
        scores[AbandonmentReason.COMPETITOR_DISTRACTION] = max(
            scores.get(AbandonmentReason.COMPETITOR_DISTRACTION, 0.0), SUDDEN_DROP_WEIGHT
        )

    return ReasonInference(ranked=rank_reasons(scores), scores=scores)
