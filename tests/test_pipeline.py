"""
tests/test_pipeline.py
End-to-end pipeline: progress checkpoints, cancellation, layer failure
isolation, output contract, multi-conversation runs.
"""

import json
from datetime import datetime, timedelta

import pytest

from semantic_engine.cancel import CancellationToken
from semantic_engine.config import EngineConfig, LexicalConfig
from semantic_engine.errors import PipelineCancelled
from semantic_engine.models.record import ConversationMetadata, RawMessage
from semantic_engine.pipeline import analyze_conversations, result_to_dict, run_pipeline

BASE = datetime(2024, 1, 2, 10, 0)


def _raws(*entries):
    return [
        RawMessage(timestamp=BASE + timedelta(minutes=m), sender=s, text=t)
        for m, s, t in entries
    ]


TEAM_CHAT = _raws(
    (0,   "Alice", "Morning team, the launch deadline is tomorrow"),
    (2,   "Bob",   "No, that is a problem. The build is blocked"),
    (3,   "Alice", "Can you escalate the blocker?"),
    (5,   "Bob",   "Not sure, maybe after lunch"),
    (400, "Alice", "Build fixed, yes agreed, sounds good"),
    (402, "Bob",   "Done, thanks! Looks good"),
    (403, "Alice", "Perfect, all set, thank you"),
)


# ── RUN ──────────────────────────────────────────────────────

class TestRunPipeline:

    def test_result_shape(self):
        result = run_pipeline(TEAM_CHAT, ConversationMetadata(source="json", chat_id="team"))
        assert len(result.messages) == 7
        assert all(m.lexical and m.behavioral and m.segment_id for m in result.messages)
        assert [s.boundary_type for s in result.segments] == ['start', 'inactivity']
        assert result.evolution is not None
        assert result.evolution.chat_id == "team"
        meta = result.metadata
        assert meta['taxonomy'] == 'business'
        assert meta['participants'] == ["Alice", "Bob"]
        assert meta['is_group'] is False
        assert meta['layer_errors'] == {}
        assert meta['conversation']['source'] == "json"
        assert set(meta['sender_stats']) == {"Alice", "Bob"}

    def test_team_chat_closes_out(self):
        evo = run_pipeline(TEAM_CHAT).evolution
        assert evo.deltas[0].primary_shift == 'closure'
        assert len(evo.breakthroughs) == 1
        assert [m.segment_id for m in evo.resolutions] == [evo.segments[1].id]

    def test_progress_checkpoints(self):
        calls = []
        run_pipeline(TEAM_CHAT, progress_cb=lambda f, msg: calls.append(f))
        assert calls == [0.10, 0.40, 0.70, 0.85, 0.95, 1.00]

    def test_cancel_before_start(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(PipelineCancelled):
            run_pipeline(TEAM_CHAT, cancel=token)

    def test_cancel_mid_run(self):
        token = CancellationToken()

        def progress(fraction, msg):
            if fraction >= 0.40:
                token.cancel()

        with pytest.raises(PipelineCancelled):
            run_pipeline(TEAM_CHAT, progress_cb=progress, cancel=token)

    def test_evolution_failure_is_isolated(self, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("semantic_engine.pipeline.build_timeline", broken)
        result = run_pipeline(TEAM_CHAT)
        assert result.evolution is None
        assert result.metadata['layer_errors'] == {'evolution': 'boom'}
        assert len(result.segments) == 2

    def test_deterministic(self):
        assert result_to_dict(run_pipeline(TEAM_CHAT)) == result_to_dict(run_pipeline(TEAM_CHAT))

    def test_empty_conversation(self):
        result = run_pipeline([])
        assert result.messages == []
        assert result.segments == []
        assert result.evolution.health_score == 50

    def test_relationship_taxonomy(self):
        config = EngineConfig(lexical=LexicalConfig(taxonomy='relationship'))
        result = run_pipeline(_raws((0, "A", "I love you babe"), (1, "B", "miss you too")), config=config)
        assert result.metadata['taxonomy'] == 'relationship'
        assert result.messages[0].lexical.intents.dominant_intent == 'affection'

    def test_detection_threshold_reaches_segments(self):
        config = EngineConfig(lexical=LexicalConfig(detection_threshold=0.05))
        result = run_pipeline(_raws((0, "A", "urgent"), (1, "B", "ping"), (2, "A", "ping")), config=config)
        assert result.messages[0].lexical.intents.dominant_intent == 'urgency'
        assert result.segments[0].aggregate_intent.dominant_intent == 'urgency'

    def test_group_conversation_flag(self):
        result = run_pipeline(_raws((0, "A", "hi"), (1, "B", "hi"), (2, "C", "hi")))
        assert result.metadata['is_group'] is True


# ── OUTPUT CONTRACT ──────────────────────────────────────────

class TestResultToDict:

    def test_json_serializable(self):
        data = result_to_dict(run_pipeline(TEAM_CHAT))
        text = json.dumps(data)
        assert set(data) == {'messages', 'segments', 'evolution', 'metadata'}
        assert '"timestamp": "2024-01-02T10:00:00"' in text

    def test_missing_evolution(self, monkeypatch):
        def broken(*args, **kwargs):
            raise ValueError("bad")

        monkeypatch.setattr("semantic_engine.pipeline.build_timeline", broken)
        data = result_to_dict(run_pipeline(TEAM_CHAT))
        assert data['evolution'] is None
        assert data['metadata']['layer_errors'] == {'evolution': 'bad'}


# ── MANY CONVERSATIONS ───────────────────────────────────────

class TestAnalyzeConversations:

    def test_inline_keeps_order(self):
        convs = [
            (TEAM_CHAT, ConversationMetadata(chat_id="one")),
            (_raws((0, "A", "ping"), (1, "B", "pong")), ConversationMetadata(chat_id="two")),
        ]
        results = analyze_conversations(convs, max_workers=1)
        assert [r.evolution.chat_id for r in results] == ["one", "two"]
        assert len(results[1].messages) == 2

    def test_empty(self):
        assert analyze_conversations([]) == []

    def test_single_job_runs_inline(self):
        results = analyze_conversations([(TEAM_CHAT, ConversationMetadata(chat_id="solo"))])
        assert results[0].evolution.chat_id == "solo"
