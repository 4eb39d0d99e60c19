"""Tests for the strategy recommender."""

import pytest

from engine.models import (
    AbandonmentReason,
    CommunicationChannel,
    CommunicationPreference,
    CommunicationTone,
    DormancyStage,
    Intensity,
    ReentryStrategy,
    ReversalApproach,
    TriggerType,
)
from engine.strategy import (
    DEFAULT_FRAMING,
    UNIVERSAL_AVOIDANCES,
    build_avoidances,
    design_reentry_approach,
    generate_reversal_strategies,
    identify_trigger_events,
    recommend_approach,
    select_channel,
    select_intensity,
    select_tone,
)


def preference(channel, rate):
    return CommunicationPreference(channel=channel, response_rate=rate)


class TestDormancyApproach:

    @pytest.mark.parametrize("reason,expected", [
        (AbandonmentReason.PRICE_SHOCK, ReentryStrategy.VALUE_REMINDER),
        (AbandonmentReason.TIMING_MISMATCH, ReentryStrategy.SOFT_CHECK_IN),
        (AbandonmentReason.TRUST_DEFICIT, ReentryStrategy.SOCIAL_PROOF_INJECTION),
        (AbandonmentReason.IDENTITY_MISALIGNMENT, ReentryStrategy.NEW_ANGLE),
        (AbandonmentReason.FEAR_OF_COMMITMENT, ReentryStrategy.PERMISSION_BASED),
        (AbandonmentReason.DECISION_PARALYSIS, ReentryStrategy.DIRECT_ASK),
        (AbandonmentReason.VALUE_UNCLEAR, ReentryStrategy.SUCCESS_STORY),
        (AbandonmentReason.URGENCY_LACKING, ReentryStrategy.PROBLEM_RESURFACE),
        (AbandonmentReason.LIFE_EVENT, ReentryStrategy.SOFT_CHECK_IN),
    ])
    def test_strategy_by_primary_reason(self, reason, expected):
        approach = recommend_approach([reason], DormancyStage.DORMANT, [], 0, 0.5)
        assert approach.strategy == expected

    def test_no_reasons(self):
        approach = recommend_approach([], DormancyStage.DORMANT, [], 0, 0.5)
        assert approach.strategy == ReentryStrategy.SOFT_CHECK_IN
        assert approach.message_framing == DEFAULT_FRAMING
        assert approach.avoidances == UNIVERSAL_AVOIDANCES

    def test_preferred_channel_wins_above_bar(self):
        prefs = [
            preference(CommunicationChannel.EMAIL, 0.2),
            preference(CommunicationChannel.SMS, 0.5),
        ]
        assert select_channel(prefs, DormancyStage.DORMANT) == CommunicationChannel.SMS

    def test_preferred_channel_must_beat_bar(self):
        prefs = [preference(CommunicationChannel.SMS, 0.3)]
        assert select_channel(prefs, DormancyStage.DORMANT) == CommunicationChannel.EMAIL

    def test_channel_tie_keeps_first(self):
        prefs = [
            preference(CommunicationChannel.SOCIAL_DM, 0.6),
            preference(CommunicationChannel.SMS, 0.6),
        ]
        assert select_channel(prefs, DormancyStage.COOLING) == CommunicationChannel.SOCIAL_DM

    @pytest.mark.parametrize("stage,expected", [
        (DormancyStage.COOLING, CommunicationChannel.EMAIL),
        (DormancyStage.DORMANT, CommunicationChannel.EMAIL),
        (DormancyStage.DEEP_DORMANT, CommunicationChannel.PHONE),
        (DormancyStage.HIBERNATING, CommunicationChannel.PHONE),
        (DormancyStage.FOSSILIZED, CommunicationChannel.PHONE),
    ])
    def test_stage_default_channel(self, stage, expected):
        assert select_channel([], stage) == expected

    @pytest.mark.parametrize("reason,stage,expected", [
        (AbandonmentReason.TRUST_DEFICIT, DormancyStage.COOLING, CommunicationTone.PROFESSIONAL),
        (AbandonmentReason.FEAR_OF_COMMITMENT, DormancyStage.FOSSILIZED, CommunicationTone.EMPATHETIC),
        (AbandonmentReason.UNKNOWN, DormancyStage.FOSSILIZED, CommunicationTone.WARM),
        (AbandonmentReason.UNKNOWN, DormancyStage.COOLING, CommunicationTone.CASUAL),
        (AbandonmentReason.PRICE_SHOCK, DormancyStage.DORMANT, CommunicationTone.PROFESSIONAL),
    ])
    def test_tone(self, reason, stage, expected):
        assert select_tone(reason, stage) == expected

    @pytest.mark.parametrize("potential,expected", [
        (0.9, Intensity.MODERATE),
        (0.71, Intensity.MODERATE),
        (0.7, Intensity.SOFT),
        (0.5, Intensity.SOFT),
        (0.4, Intensity.ASSERTIVE),
        (0.1, Intensity.ASSERTIVE),
    ])
    def test_lower_potential_pushes_harder(self, potential, expected):
        assert select_intensity(potential) == expected

    def test_avoidances_in_order(self):
        avoidances = build_avoidances(
            [AbandonmentReason.TRUST_DEFICIT, AbandonmentReason.PRICE_SHOCK], objection_count=4
        )
        assert avoidances == (
            "Avoid mentioning price early",
            "Do not offer discounts proactively",
            "Avoid making claims without proof",
            "Do not push for quick decisions",
            "Avoid rehashing old objections",
            "Do not reference their silence negatively",
            "Avoid guilt-based messaging",
        )

    def test_three_objections_are_not_rehashed(self):
        assert "Avoid rehashing old objections" not in build_avoidances([], objection_count=3)


class TestReversalStrategies:

    def test_default_deal(self, make_deal):
        strategies = generate_reversal_strategies(make_deal())
        assert [s.approach for s in strategies] == [
            ReversalApproach.VALUE_REPOSITIONING,
            ReversalApproach.PILOT_PROPOSAL,
        ]

    def test_sorted_by_success_probability(self, make_deal):
        deal = make_deal(
            competitor_won="Acme",
            relationship_strength={"trust_level": "broken"},
            decision_makers=[{"id": "dm-1", "sentiment": "negative"}],
        )
        strategies = generate_reversal_strategies(deal)
        assert [s.approach for s in strategies] == [
            ReversalApproach.PILOT_PROPOSAL,
            ReversalApproach.NEW_STAKEHOLDER_ENTRY,
            ReversalApproach.COMPETITIVE_DISPLACEMENT,
        ]
        probabilities = [s.success_probability for s in strategies]
        assert probabilities == sorted(probabilities, reverse=True)

    def test_value_repositioning_skips_negative_contacts(self, make_deal):
        deal = make_deal(decision_makers=[
            {"id": "dm-1", "sentiment": "positive"},
            {"id": "dm-2", "sentiment": "negative"},
        ])
        value = next(
            s for s in generate_reversal_strategies(deal)
            if s.approach == ReversalApproach.VALUE_REPOSITIONING
        )
        assert value.target_contacts == ("dm-1",)
        assert value.id == "vr_deal-1"

    def test_triggers_with_competitor(self, make_deal):
        triggers = identify_trigger_events(make_deal(competitor_won="Acme"))
        assert [t.type for t in triggers] == [
            TriggerType.COMPETITOR_FAILURE,
            TriggerType.CONTRACT_RENEWAL,
            TriggerType.LEADERSHIP_CHANGE,
            TriggerType.BUDGET_CYCLE,
            TriggerType.STRATEGIC_SHIFT,
        ]

    def test_triggers_without_competitor(self, make_deal):
        assert len(identify_trigger_events(make_deal())) == 3


class TestReentryApproach:

    def test_primary_contact_channel(self, make_deal):
        deal = make_deal(decision_makers=[
            {"id": "dm-1", "influence": "secondary", "preferred_channel": "phone"},
            {"id": "dm-2", "influence": "primary", "preferred_channel": "linkedin"},
        ])
        strategy = generate_reversal_strategies(deal)[0]
        approach = design_reentry_approach(deal, strategy)
        assert approach.channel == "linkedin"
        assert approach.contact_sequence[0].message == strategy.messaging.opening_hook
        assert [step.day for step in approach.contact_sequence] == [0, 5, 14]
        assert len(approach.escalation_path) == 2

    def test_defaults_to_email(self, make_deal):
        deal = make_deal()
        approach = design_reentry_approach(deal, generate_reversal_strategies(deal)[0])
        assert approach.channel == "email"
        assert approach.fallback_strategy == "Move to long-term nurture with quarterly value touches"
