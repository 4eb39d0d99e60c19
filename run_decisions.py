#!/usr/bin/env python3
"""Standalone batch runner for GitHub Actions.

Usage:
    python run_decisions.py input.json [decision_results.json]

The input file may hold any of three lists:
    {"dormant_leads": [{"lead_id": ..., "signals": {...}}],
     "leads":         [{"lead": {...}, "website_diagnosis": {...}, "activities": [...]}],
     "lost_deals":    [{...}]}
"""

import json
import os
import sys

from loguru import logger

from engine.errors import DecisionEngineError, InvalidInputError
from orchestration.decision_engine import DecisionEngine, DormancyRequest, LeadScoringRequest


def _section(payload, name):
    items = payload.get(name, [])
    if not isinstance(items, list):
        raise InvalidInputError(f"{name} must be a list", field=name)
    return items


def _dormancy_request(item):
    # Anything that isn't an object goes through as-is and is rejected per item
    if isinstance(item, dict):
        return DormancyRequest(item.get("lead_id"), item.get("signals"))
    return item


def _scoring_request(item):
    if isinstance(item, dict):
        return LeadScoringRequest(
            lead=item.get("lead"),
            website_diagnosis=item.get("website_diagnosis"),
            activities=item.get("activities") or (),
        )
    return item


def run(payload, engine=None):
    """Run every batch in the payload and return JSON-ready results plus counts."""
    if not isinstance(payload, dict):
        raise InvalidInputError("Input must be a JSON object", field="payload")
    engine = engine or DecisionEngine()

    dormant = engine.classify_dormant_leads(
        _dormancy_request(item) for item in _section(payload, "dormant_leads")
    )
    scored = engine.score_and_route_leads(
        _scoring_request(item) for item in _section(payload, "leads")
    )
    ranked = engine.rank_reversal_pipeline(_section(payload, "lost_deals"))

    routes = {"sales": 0, "nurture": 0, "reject": 0}
    for result in scored:
        routes[result.routing_decision.value] += 1

    return {
        "classifications": [c.to_dict() for c in dormant],
        "scores": [s.to_dict() for s in scored],
        "reversal_pipeline": [o.to_dict() for o in ranked],
        "summary": {
            "classified": len(dormant),
            "scored": len(scored),
            "viable_reversals": len(ranked),
            **routes,
        },
    }


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: run_decisions.py input.json [output.json]")
        return 2

    output_path = argv[1] if len(argv) > 1 else "decision_results.json"

    try:
        with open(argv[0]) as f:
            payload = json.load(f)

        results = run(payload)
        summary = results["summary"]

        print(f"Classified: {summary['classified']}")
        print(f"Scored: {summary['scored']} "
              f"(Sales: {summary['sales']}, Nurture: {summary['nurture']}, Reject: {summary['reject']})")
        print(f"Viable reversals: {summary['viable_reversals']}")

        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)

        # Write to GitHub output file
        github_output = os.environ.get('GITHUB_OUTPUT', '')
        if github_output:
            with open(github_output, 'a') as f:
                f.write(f"sales_leads={summary['sales']}\n")
                f.write(f"total_scored={summary['scored']}\n")
                f.write(f"viable_reversals={summary['viable_reversals']}\n")

        return 0

    except (OSError, json.JSONDecodeError, DecisionEngineError) as e:
        logger.error(f"❌ Decision run failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
