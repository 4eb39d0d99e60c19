"""
🤖 DECISION ENGINE ORCHESTRATION
================================
Facade over the three pipelines.

Components:
- DecisionEngine: classify dormant leads, score and route inbound leads,
  analyze lost deals (single calls and parallel batches)

Usage:
    from orchestration import DecisionEngine

    engine = DecisionEngine()
    classification = engine.classify_dormant_lead("lead-123", signals)
    results = engine.score_and_route_leads(leads)
"""

from .decision_engine import DecisionEngine, DormancyRequest, LeadScoringRequest

__all__ = [
    "DecisionEngine",
    "DormancyRequest",
    "LeadScoringRequest",
]
