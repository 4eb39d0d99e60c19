"""
⚠️ RISK ASSESSOR
================
Independent threshold checks. Every rule that fires adds one flag;
rules are not mutually exclusive.
"""

from typing import Sequence, Tuple

from engine.models import AbandonmentReason, DormancyStage, LostDeal, RiskFlag, Severity

OBJECTION_FATIGUE_THRESHOLD = 5


def assess_dormancy_risks(
    stage: DormancyStage,
    reasons: Sequence[AbandonmentReason],
    objection_count: int,
) -> Tuple[RiskFlag, ...]:
    risks = []

    if stage == DormancyStage.FOSSILIZED:
        risks.append(RiskFlag(
            type="extreme_dormancy",
            severity=Severity.CRITICAL,
            description="Lead has been inactive for 6+ months, memory of interaction likely faded",
            mitigation="Start fresh with re-introduction, avoid referencing old conversations",
        ))

    if AbandonmentReason.TRUST_DEFICIT in reasons:
        risks.append(RiskFlag(
            type="trust_damage",
            severity=Severity.HIGH,
            description="Previous interactions may have damaged trust",
            mitigation="Lead with proof and third-party validation before any ask",
        ))

    if AbandonmentReason.GHOSTING_HABIT in reasons:
        risks.append(RiskFlag(
            type="chronic_ghoster",
            severity=Severity.HIGH,
            description="Lead has pattern of disappearing without explanation",
            mitigation="Set explicit micro-commitments and confirm each step",
        ))

    if objection_count > OBJECTION_FATIGUE_THRESHOLD:
        risks.append(RiskFlag(
            type="objection_fatigue",
            severity=Severity.MEDIUM,
            description="Lead has raised many objections, may be exhausted",
            mitigation="Use completely fresh angle, avoid addressing old objections",
        ))

    return tuple(risks)


def assess_reversal_risks(deal: LostDeal) -> Tuple[RiskFlag, ...]:
    """Lost-deal risks. The contact_moved_on flag is always present."""
    risks = []

    if deal.relationship_strength.trust_level == "broken":
        risks.append(RiskFlag(
            type="broken_trust",
            severity=Severity.HIGH,
            description="Damaged relationship may preclude reentry",
            mitigation="Use different contact or wait longer",
            likelihood=0.7,
        ))

    if deal.competitor_chosen:
        risks.append(RiskFlag(
            type="competitor_lock_in",
            severity=Severity.MEDIUM,
            description="Competitor lock-in may prevent switching",
            mitigation="Focus on gaps competitor cannot fill",
            likelihood=0.5,
        ))

    risks.append(RiskFlag(
        type="contact_moved_on",
        severity=Severity.LOW,
        description="Contact may have moved on",
        mitigation="Research current role before outreach",
        likelihood=0.3,
    ))

    return tuple(risks)
