"""Tests for the JSON batch runner."""

import json
from datetime import timedelta

import pytest

import run_decisions
from engine.errors import InvalidInputError


class TestRun:

    def test_payload(self, engine, now):
        payload = {
            "dormant_leads": [
                {"lead_id": "lead-a", "signals": {"last_engagement": (now - timedelta(days=10)).isoformat()}},
                {"lead_id": "lead-b", "signals": {}},
            ],
            "leads": [{"lead": {"id": "lead-c", "email": "a@b.co", "phone": "1"}}],
            "lost_deals": [{
                "id": "deal-d",
                "original_opportunity_value": 20000,
                "loss_date": (now - timedelta(days=40)).isoformat(),
            }],
        }
        results = run_decisions.run(payload, engine=engine)

        assert results["summary"] == {
            "classified": 1,
            "scored": 1,
            "viable_reversals": 1,
            "sales": 0,
            "nurture": 1,
            "reject": 0,
        }
        assert results["classifications"][0]["dormancy_stage"] == "dormant"
        assert results["reversal_pipeline"][0]["deal_id"] == "deal-d"
        json.dumps(results)

    def test_empty_payload(self, engine):
        assert run_decisions.run({}, engine=engine)["summary"]["scored"] == 0

    @pytest.mark.parametrize("payload", [[], "leads", 3, None])
    def test_payload_must_be_object(self, engine, payload):
        with pytest.raises(InvalidInputError) as exc:
            run_decisions.run(payload, engine=engine)
        assert exc.value.field == "payload"

    def test_section_must_be_list(self, engine):
        with pytest.raises(InvalidInputError) as exc:
            run_decisions.run({"leads": {"id": "lead-1"}}, engine=engine)
        assert exc.value.field == "leads"

    def test_malformed_items_are_skipped(self, engine, now):
        payload = {
            "dormant_leads": [
                "lead-x",
                {"lead_id": "lead-a", "signals": {"last_engagement": now.isoformat()}},
            ],
            "leads": ["lead-x", 7, {"lead": {"id": "lead-c", "email": "a@b.co"}}],
            "lost_deals": ["deal-x"],
        }
        summary = run_decisions.run(payload, engine=engine)["summary"]
        assert summary["classified"] == 1
        assert summary["scored"] == 1
        assert summary["viable_reversals"] == 0


class TestMain:

    def test_writes_results_and_github_output(self, tmp_path, monkeypatch):
        input_path = tmp_path / "input.json"
        output_path = tmp_path / "results.json"
        github_output = tmp_path / "github_output"
        input_path.write_text(json.dumps({
            "leads": [{"lead": {"id": "lead-1", "email": "a@b.co", "phone": "1"}}],
            "lost_deals": [{
                "id": "deal-1",
                "original_opportunity_value": 5000,
                "loss_date": "2024-01-01T00:00:00+00:00",
                "relationship_strength": {"trust_level": "high", "champions_identified": True},
            }],
        }))
        monkeypatch.setenv("GITHUB_OUTPUT", str(github_output))

        assert run_decisions.main([str(input_path), str(output_path)]) == 0

        results = json.loads(output_path.read_text())
        assert results["summary"]["nurture"] == 1
        assert results["summary"]["viable_reversals"] == 1
        assert "total_scored=1" in github_output.read_text()

    def test_missing_file(self, tmp_path):
        assert run_decisions.main([str(tmp_path / "missing.json")]) == 1

    def test_wrong_shape_exits_with_error(self, tmp_path):
        input_path = tmp_path / "input.json"
        input_path.write_text("[]")
        assert run_decisions.main([str(input_path), str(tmp_path / "out.json")]) == 1
        assert not (tmp_path / "out.json").exists()

    def test_usage(self):
        assert run_decisions.main([]) == 2
