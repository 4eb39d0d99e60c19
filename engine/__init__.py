"""
⚙️ DECISION ENGINE CORE
=======================
Pure, synchronous building blocks shared by the pipelines:

- models:   signal inputs, enums and decision records
- reasons:  abandonment-reason inference
- stages:   dormancy stage classification
- scoring:  depth, potential, EAR and reversal probability
- timing:   re-entry windows and reversal timing
- strategy: approach, reversal strategies and contact sequences
- risks:    risk flags
"""

from .errors import ConfigurationError, DecisionEngineError, InvalidInputError
from .models import (
    AbandonmentReason,
    BehaviorSignals,
    DormancyClassification,
    DormancyStage,
    LeadRecord,
    LostDeal,
    ReversalOpportunity,
    RoutingDecision,
    ScoreResult,
)

__all__ = [
    "ConfigurationError",
    "DecisionEngineError",
    "InvalidInputError",
    "AbandonmentReason",
    "BehaviorSignals",
    "DormancyClassification",
    "DormancyStage",
    "LeadRecord",
    "LostDeal",
    "ReversalOpportunity",
    "RoutingDecision",
    "ScoreResult",
]
