"""
tests/test_report.py
Report generation tests.
No message content in report output; structure and privacy only.
"""

import json

from semantic_engine import __version__
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.report import (
    Report,
    SummaryStats,
    ToxicityDistribution,
    build_report,
    report_to_dict,
)


class TestBuildReport:

    def test_returns_report(self, team_result):
        report = build_report(team_result)
        assert isinstance(report, Report)
        assert isinstance(report.summary, SummaryStats)
        assert report.engine_version == __version__
        assert report.generated_at.endswith("Z")

    def test_summary(self, team_result):
        s = build_report(team_result).summary
        assert s.message_count == 7
        assert s.participant_count == 2
        assert s.segment_count == 2
        assert s.taxonomy == 'business'
        assert s.date_range_start == "2024-01-02T10:00:00"

    def test_participants(self, team_result):
        parts = {p.sender: p for p in build_report(team_result).participants}
        assert set(parts) == {"Alice", "Bob"}
        assert parts["Alice"].message_count == 4
        assert abs(parts["Alice"].share - 4 / 7) < 1e-9

    def test_segments_and_flags(self, team_result):
        segs = build_report(team_result).segments
        assert [s.boundary_type for s in segs] == ['start', 'inactivity']
        assert segs[1].flags == ['breakthrough']

    def test_critical_moments_sorted(self, team_result):
        moments = build_report(team_result).critical_moments
        assert moments
        assert [m.timestamp for m in moments] == sorted(m.timestamp for m in moments)
        assert {m.type for m in moments} <= {'escalation', 'breakthrough', 'resolution'}

    def test_toxicity_counts_every_message(self, team_result):
        tox = build_report(team_result).toxicity
        assert isinstance(tox, ToxicityDistribution)
        total = tox.none_count + tox.low_count + tox.medium_count + tox.high_count + tox.critical_count
        assert total == 7

    def test_intent_overview(self, team_result):
        overview = build_report(team_result).intent_overview
        assert set(overview.trends) == set(team_result.evolution.trends)
        assert 0.0 <= overview.mean_confidence <= 1.0
        assert overview.overall_directionality == team_result.evolution.overall_directionality

    def test_health(self, team_result):
        report = build_report(team_result)
        assert report.health_score == team_result.evolution.health_score
        assert report.conversation_health == team_result.evolution.conversation_health
        assert report.layer_errors == {}

    def test_without_evolution(self, team_result):
        broken = PipelineResult(
            messages  = team_result.messages,
            segments  = team_result.segments,
            evolution = None,
            metadata  = {**team_result.metadata, 'layer_errors': {'evolution': 'boom'}},
        )
        report = build_report(broken)
        assert report.health_score is None
        assert report.critical_moments == []
        assert report.intent_overview.overall_directionality == 'stable'
        assert report.layer_errors == {'evolution': 'boom'}

    def test_empty_result(self):
        report = build_report(PipelineResult(messages=[], segments=[], evolution=None))
        assert report.summary.message_count == 0
        assert report.summary.date_range_start is None
        assert report.participants == []


class TestPrivacy:

    def test_no_message_text_in_report(self, team_result):
        text = json.dumps(report_to_dict(build_report(team_result)))
        for m in team_result.messages:
            assert m.text not in text

    def test_report_to_dict_is_plain(self, team_result):
        d = report_to_dict(build_report(team_result))
        assert isinstance(d['summary'], dict)
        assert isinstance(d['segments'][0]['flags'], list)
        json.dumps(d)
