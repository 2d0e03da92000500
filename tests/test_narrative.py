"""
tests/test_narrative.py
Narrative synthesis and the Ollama adapter. No network: adapters are mocked.
"""

import json
import urllib.error
from unittest.mock import MagicMock, patch

from semantic_engine.llm.base import NarrativeAdapter, NarrativeResponse
from semantic_engine.llm.ollama_adapter import MAX_INSIGHTS, OllamaNarrativeAdapter
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.narrative import build_narrative_summary, synthesize_narrative


def _adapter(available=True, response=None, error=None):
    adapter = MagicMock(spec=NarrativeAdapter)
    adapter.is_available.return_value = available
    if error is not None:
        adapter.generate.side_effect = error
    else:
        adapter.generate.return_value = response
    return adapter


# ── SUMMARY ──────────────────────────────────────────────────

class TestNarrativeSummary:

    def test_no_message_text(self, team_result):
        text = json.dumps(build_narrative_summary(team_result))
        for m in team_result.messages:
            assert m.text not in text
        for token in ("deadline", "blocker", "lunch"):
            assert token not in text

    def test_contents(self, team_result):
        summary = build_narrative_summary(team_result)
        assert summary['message_count'] == 7
        assert summary['participant_count'] == 2
        assert len(summary['segments']) == 2
        assert summary['health_score'] == team_result.evolution.health_score
        assert summary['critical_moments']

    def test_without_evolution(self, team_result):
        result = PipelineResult(team_result.messages, team_result.segments, None, team_result.metadata)
        assert 'health_score' not in build_narrative_summary(result)


# ── SYNTHESIS ────────────────────────────────────────────────

class TestSynthesize:

    def test_generated(self, team_result):
        adapter = _adapter(response=NarrativeResponse(
            summary="Tension eased after the build was fixed.",
            insights=["Resolve blockers earlier"],
            model_used="mock",
        ))
        narrative = synthesize_narrative(team_result, adapter)
        assert narrative.generated is True
        assert narrative.summary.startswith("Tension")
        assert narrative.insights == ["Resolve blockers earlier"]
        assert narrative.model_used == "mock"
        sent = adapter.generate.call_args[0][0]
        assert 'segments' in sent

    def test_no_adapter(self, team_result):
        narrative = synthesize_narrative(team_result, None)
        assert narrative.generated is False
        assert 'adapter' in narrative.reason

    def test_unavailable(self, team_result):
        adapter = _adapter(available=False)
        narrative = synthesize_narrative(team_result, adapter)
        assert narrative.generated is False
        adapter.generate.assert_not_called()

    def test_adapter_error(self, team_result):
        narrative = synthesize_narrative(team_result, _adapter(error=RuntimeError("down")))
        assert narrative.generated is False
        assert 'down' in narrative.reason

    def test_no_response(self, team_result):
        assert synthesize_narrative(team_result, _adapter(response=None)).generated is False

    def test_no_segments(self):
        empty = PipelineResult(messages=[], segments=[], evolution=None)
        adapter = _adapter()
        assert synthesize_narrative(empty, adapter).generated is False
        adapter.is_available.assert_not_called()


# ── OLLAMA ADAPTER ───────────────────────────────────────────

class TestOllamaAdapter:

    def test_parse_plain_json(self):
        adapter = OllamaNarrativeAdapter(model="llama3")
        resp = adapter._parse_response('{"summary": "ok", "insights": ["a", " ", "b"]}')
        assert resp.summary == "ok"
        assert resp.insights == ["a", "b"]
        assert resp.model_used == "llama3"

    def test_parse_fenced_json(self):
        resp = OllamaNarrativeAdapter()._parse_response('```json\n{"summary": "fenced"}\n```')
        assert resp.summary == "fenced"

    def test_parse_caps_insights(self):
        payload = json.dumps({"summary": "s", "insights": [str(i) for i in range(20)]})
        assert len(OllamaNarrativeAdapter()._parse_response(payload).insights) == MAX_INSIGHTS

    def test_parse_rejects_missing_summary(self):
        assert OllamaNarrativeAdapter()._parse_response('{"insights": []}') is None

    def test_parse_rejects_garbage(self):
        assert OllamaNarrativeAdapter()._parse_response('not json') is None

    def test_available_when_model_pulled(self):
        adapter = OllamaNarrativeAdapter(model="llama3:8b-instruct")
        with patch.object(adapter, '_fetch_models', return_value=["llama3:latest"]):
            assert adapter.is_available() is True
        with patch.object(adapter, '_fetch_models', return_value=["mistral:7b"]):
            assert adapter.is_available() is False

    def test_unreachable(self):
        adapter = OllamaNarrativeAdapter()
        with patch.object(adapter, '_fetch_models', side_effect=urllib.error.URLError("refused")):
            assert adapter.is_available() is False
            assert adapter.list_available_models() == []

    def test_generate_network_failure(self):
        with patch('urllib.request.urlopen', side_effect=urllib.error.URLError("refused")):
            assert OllamaNarrativeAdapter().generate({"segments": []}) is None

    def test_generate_success(self):
        body = json.dumps({"response": '{"summary": "all good", "insights": ["x"]}'}).encode()
        resp = MagicMock()
        resp.read.return_value = body
        resp.__enter__.return_value = resp
        with patch('urllib.request.urlopen', return_value=resp):
            out = OllamaNarrativeAdapter(model="m").generate({"segments": []})
        assert out.summary == "all good"
        assert out.insights == ["x"]

    def test_prompt_embeds_summary(self):
        prompt = OllamaNarrativeAdapter().build_prompt({"health_score": 77})
        assert '"health_score": 77' in prompt
