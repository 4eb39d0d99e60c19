"""
🔧 DECISION ENGINE PIPELINES
============================
Three independent heuristic pipelines sharing one design:
classify state -> infer reason -> score -> time -> assess risk -> recommend.

Each pipeline:
- Has a single responsibility
- Is pure and synchronous (time comes in through `now`)
- Validates its settings once, at construction
- Returns one immutable decision record per call

Usage:
    from pipelines import DormancyPipeline, LeadScoringPipeline, ReversalPipeline

    dormancy = DormancyPipeline()
    classification = dormancy.classify("lead-123", signals)

    scoring = LeadScoringPipeline()
    result = scoring.score(lead, activities=activities)

    reversal = ReversalPipeline()
    opportunity = reversal.analyze(deal)
"""

from .pipeline_1_dormancy import DormancyPipeline
from .pipeline_2_lead_scoring import LeadScoringPipeline
from .pipeline_3_reversal import ReversalPipeline

__all__ = [
    "DormancyPipeline",
    "LeadScoringPipeline",
    "ReversalPipeline",
]
