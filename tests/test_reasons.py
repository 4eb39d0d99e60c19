"""Tests for reason inference and engagement decline analysis."""

import pytest

from engine.models import AbandonmentReason, EngagementEvent, PriceReaction
from engine.reasons import (
    analyze_engagement_decline,
    infer_loss_reasons,
    infer_reasons,
    match_objection,
    rank_reasons,
    recoverability,
)


def events(event_factory, depths):
    """Events one day apart, oldest first."""
    count = len(depths)
    return [
        EngagementEvent(**event_factory(days_ago=count - i, depth=depth))
        for i, depth in enumerate(depths)
    ]


class TestMatchObjection:

    @pytest.mark.parametrize("objection,expected", [
        ("Too expensive for us", AbandonmentReason.PRICE_SHOCK),
        ("We can't AFFORD it", AbandonmentReason.PRICE_SHOCK),
        ("Maybe later", AbandonmentReason.TIMING_MISMATCH),
        ("Not sure we trust this", AbandonmentReason.TRUST_DEFICIT),
        ("Not for me", AbandonmentReason.IDENTITY_MISALIGNMENT),
        ("Need to think about it", AbandonmentReason.FEAR_OF_COMMITMENT),
        ("Too many options", AbandonmentReason.DECISION_PARALYSIS),
        ("Need my boss to sign off", AbandonmentReason.AUTHORITY_INSUFFICIENT),
        ("Moving house this month", AbandonmentReason.LIFE_EVENT),
        ("He just disappeared", AbandonmentReason.GHOSTING_HABIT),
    ])
    def test_keyword_groups(self, objection, expected):
        assert match_objection(objection) == expected

    def test_first_matching_group_wins(self):
        """'budget' (price) is checked before 'later' (timing)."""
        assert match_objection("No budget, maybe later") == AbandonmentReason.PRICE_SHOCK

    def test_no_match(self):
        assert match_objection("Hello there") is None


class TestRankReasons:

    def test_ties_follow_declaration_order(self):
        scores = {
            AbandonmentReason.FEAR_OF_COMMITMENT: 0.3,
            AbandonmentReason.PRICE_SHOCK: 0.3,
            AbandonmentReason.TIMING_MISMATCH: 0.3,
        }
        assert rank_reasons(scores) == (
            AbandonmentReason.PRICE_SHOCK,
            AbandonmentReason.TIMING_MISMATCH,
            AbandonmentReason.FEAR_OF_COMMITMENT,
        )

    def test_zero_scores_dropped(self):
        scores = {AbandonmentReason.PRICE_SHOCK: 0.0, AbandonmentReason.VALUE_UNCLEAR: 0.4}
        assert rank_reasons(scores) == (AbandonmentReason.VALUE_UNCLEAR,)


class TestEngagementDecline:

    def test_insufficient_data(self, event):
        decline = analyze_engagement_decline([EngagementEvent(**event(days_ago=1, depth=0.5))])
        assert not decline.sudden_drop
        assert not decline.gradual_fade
        assert decline.pattern == "insufficient_data"

    def test_sudden_drop(self, event):
        decline = analyze_engagement_decline(events(event, [0.9, 0.8, 0.7, 0.5, 0.2]))
        assert decline.sudden_drop
        assert not decline.gradual_fade
        assert decline.pattern == "declining"

    def test_gradual_fade(self, event):
        decline = analyze_engagement_decline(events(event, [1.0, 0.5, 0.4, 0.3, 0.3]))
        assert decline.gradual_fade
        assert not decline.sudden_drop
        assert decline.pattern == "declining"

    def test_stable(self, event):
        decline = analyze_engagement_decline(events(event, [0.5, 0.5]))
        assert not decline.sudden_drop
        assert not decline.gradual_fade
        assert decline.pattern == "stable"

    def test_only_five_most_recent_events_count(self, event):
        """An old deep engagement outside the window does not create a drop."""
        history = events(event, [1.0, 0.4, 0.4, 0.4, 0.4, 0.4])
        decline = analyze_engagement_decline(list(reversed(history)))
        assert not decline.sudden_drop
        assert decline.pattern == "stable"


class TestInferReasons:

    def test_objections_with_price_shock(self):
        inference = infer_reasons(
            [PriceReaction(price_point=5000, reaction="shock")],
            ["too expensive", "need to think about it"],
            [],
        )
        assert inference.primary == AbandonmentReason.PRICE_SHOCK
        assert AbandonmentReason.FEAR_OF_COMMITMENT in inference.secondary
        assert inference.scores[AbandonmentReason.PRICE_SHOCK] == 1.0

    def test_objections_alone_tie_on_declaration_order(self):
        inference = infer_reasons([], ["need to think about it", "too expensive"], [])
        assert inference.ranked == (
            AbandonmentReason.PRICE_SHOCK,
            AbandonmentReason.FEAR_OF_COMMITMENT,
        )

    def test_objection_score_capped(self):
        inference = infer_reasons([], ["too expensive"] * 5, [])
        assert inference.scores[AbandonmentReason.PRICE_SHOCK] == 1.0

    def test_hesitant_reaction_is_not_shock(self):
        inference = infer_reasons([PriceReaction(price_point=100, reaction="hesitant")], [], [])
        assert inference.ranked == ()

    def test_sudden_drop_points_to_competitor(self, event):
        inference = infer_reasons([], [], events(event, [0.9, 0.8, 0.7, 0.5, 0.2]))
        assert inference.primary == AbandonmentReason.COMPETITOR_DISTRACTION
        assert inference.scores[AbandonmentReason.COMPETITOR_DISTRACTION] == pytest.approx(0.6)

    def test_no_evidence_is_unknown(self):
        inference = infer_reasons([], [], [])
        assert inference.ranked == ()
        assert inference.primary == AbandonmentReason.UNKNOWN
        assert inference.secondary == ()


class TestInferLossReasons:

    def test_competitor_outweighs_single_keyword(self, make_deal):
        deal = make_deal(stated_loss_reason="budget cut", competitor_won="Acme")
        inference = infer_loss_reasons(deal)
        assert inference.primary == AbandonmentReason.COMPETITOR_DISTRACTION
        assert AbandonmentReason.PRICE_SHOCK in inference.secondary

    def test_reasons_for_choice_count_as_objections(self, make_deal):
        deal = make_deal(competitive_context={"reasons_for_choice": ["more proof of results"]})
        assert infer_loss_reasons(deal).primary == AbandonmentReason.TRUST_DEFICIT

    def test_nothing_known(self, make_deal):
        assert infer_loss_reasons(make_deal()).primary == AbandonmentReason.UNKNOWN


class TestRecoverability:

    def test_unknown_is_neutral(self):
        assert recoverability(AbandonmentReason.UNKNOWN) == 0.5

    def test_every_reason_in_range(self):
        for reason in AbandonmentReason:
            assert 0 <= recoverability(reason) <= 1
