"""
tests/test_evolution.py
Intent evolution: deltas, critical moments, trends, health score.
Segments are built directly so every score is exact.
"""

from datetime import datetime, timedelta

import pytest

from semantic_engine.config import EvolutionConfig
from semantic_engine.detectors.lexical_analyzer import build_intent_vector
from semantic_engine.evolution.engine import (
    build_timeline,
    classify_trend,
    compute_intent_delta,
    detect_breakthrough,
    detect_escalation,
    detect_resolution,
    evolution_summary,
    health_score,
    health_verdict,
    overall_directionality,
)
from semantic_engine.keywords.taxonomy import get_taxonomy
from semantic_engine.models.timeline import ConversationSegment, IntentDelta

BASE     = datetime(2024, 1, 2, 10, 0)
TAXONOMY = get_taxonomy('business')
CONFIG   = EvolutionConfig()


def _vec(**scores):
    return build_intent_vector({d: scores.get(d, 0.0) for d in TAXONOMY.dimensions})


def _segment(index: int, **scores) -> ConversationSegment:
    vec   = _vec(**scores)
    start = BASE + timedelta(hours=index)
    return ConversationSegment(
        id                        = f"seg_{index}",
        index                     = index,
        start_message_id          = f"msg_{index}_a",
        end_message_id            = f"msg_{index}_b",
        message_ids               = (f"msg_{index}_a", f"msg_{index}_b"),
        start_time                = start,
        end_time                  = start + timedelta(minutes=10),
        duration_minutes          = 10.0,
        message_count             = 2,
        boundary_type             = 'start' if index == 0 else 'inactivity',
        boundary_confidence       = 1.0 if index == 0 else 0.8,
        aggregate_intent          = vec,
        intent_delta              = compute_intent_delta(vec, vec, TAXONOMY),
        participants              = ("Alice", "Bob"),
        message_count_by_sender   = {"Alice": 1, "Bob": 1},
        dominant_speaker          = "Alice",
        participation_balance     = 1.0,
        avg_message_length        = 10.0,
        avg_response_time_minutes = 1.0,
        message_frequency         = 12.0,
        has_resolution            = False,
        has_escalation            = False,
        has_breakthrough          = False,
        alignment_score           = 0.5,
        topic_coherence           = 1.0,
        dominant_keywords         = (),
    )


def _delta(**after):
    return compute_intent_delta(_vec(), _vec(**after), TAXONOMY)


def _directed(direction: str) -> IntentDelta:
    return IntentDelta(changes={}, primary_shift=None, shift_magnitude=0.0, directionality=direction)


# ── DELTAS ───────────────────────────────────────────────────

class TestIntentDelta:

    def test_improving(self):
        d = _delta(alignment=0.5)
        assert d.directionality == 'improving'
        assert d.primary_shift == 'alignment'
        assert d.shift_magnitude == pytest.approx(0.5)

    def test_degrading(self):
        assert _delta(resistance=0.3).directionality == 'degrading'

    def test_noise_is_stable(self):
        d = _delta(alignment=0.05)
        assert d.directionality == 'stable'
        assert d.primary_shift is None

    def test_small_net_is_stable(self):
        d = _delta(alignment=0.15)
        assert d.directionality == 'stable'
        assert d.primary_shift == 'alignment'

    def test_opposite_large_moves_are_volatile(self):
        d = compute_intent_delta(_vec(resistance=0.6), _vec(alignment=0.6), TAXONOMY)
        assert d.directionality == 'volatile'

    def test_segment_ids_carried(self):
        d = compute_intent_delta(_vec(), _vec(), TAXONOMY, from_id="a", to_id="b")
        assert (d.from_segment_id, d.to_segment_id) == ("a", "b")
        assert d.get(None) == 0.0


# ── CRITICAL MOMENTS ─────────────────────────────────────────

class TestEscalation:

    def test_resistance_spike(self):
        m = detect_escalation(_segment(1), _delta(resistance=0.6), TAXONOMY, CONFIG)
        assert m.type == 'escalation'
        assert m.reason == "Resistance increased by 60%"
        assert m.severity == 'high'
        assert m.timestamp == _segment(1).start_time

    def test_urgency_spike(self):
        m = detect_escalation(_segment(1), _delta(urgency=0.5), TAXONOMY, CONFIG)
        assert m.reason == "Urgency spiked by 50%"
        assert m.severity == 'medium'

    def test_degrading_trajectory(self):
        m = detect_escalation(_segment(1), _delta(resistance=0.25), TAXONOMY, CONFIG)
        assert m.reason == "Overall conversation trajectory degrading"
        assert m.severity == 'low'

    def test_compound_rise(self):
        delta = _delta(alignment=0.4, resistance=0.25, uncertainty=0.25)
        assert delta.directionality == 'stable'
        m = detect_escalation(_segment(1), delta, TAXONOMY, CONFIG)
        assert m.reason == "Resistance and uncertainty rose together (25%, 25%)"

    def test_quiet_delta(self):
        assert detect_escalation(_segment(1), _delta(), TAXONOMY, CONFIG) is None


class TestBreakthrough:

    def test_alignment_spike(self):
        m = detect_breakthrough(_segment(1), _delta(alignment=0.5), TAXONOMY, CONFIG)
        assert m.reason == "Alignment increased by 50%"
        assert m.severity == 'medium'

    def test_closure_spike(self):
        m = detect_breakthrough(_segment(1), _delta(closure=0.75), TAXONOMY, CONFIG)
        assert m.reason == "Closure signals increased by 75%"
        assert m.severity == 'high'

    def test_improving_trajectory(self):
        m = detect_breakthrough(_segment(1), _delta(alignment=0.25), TAXONOMY, CONFIG)
        assert m.reason == "Overall conversation trajectory improving"
        assert m.severity == 'low'

    def test_none(self):
        assert detect_breakthrough(_segment(1), _delta(resistance=0.5), TAXONOMY, CONFIG) is None


class TestResolution:

    def test_strong_closure(self):
        m = detect_resolution(_segment(0, closure=0.75), None, TAXONOMY, CONFIG)
        assert m.severity == 'high'
        assert m.reason == "Closure signals strong (75%)"

    def test_medium_closure(self):
        assert detect_resolution(_segment(0, closure=0.625), None, TAXONOMY, CONFIG).severity == 'medium'

    def test_first_segment_needs_closure(self):
        assert detect_resolution(_segment(0, closure=0.25), None, TAXONOMY, CONFIG) is None

    def test_tension_drops(self):
        delta = compute_intent_delta(_vec(resistance=0.5, uncertainty=0.5), _vec(), TAXONOMY)
        m = detect_resolution(_segment(1), delta, TAXONOMY, CONFIG)
        assert m.reason == "Uncertainty and resistance both dropped"
        assert m.severity == 'low'


# ── TRENDS ───────────────────────────────────────────────────

class TestTrends:

    @pytest.mark.parametrize("values,expected", [
        ([0.1, 0.3, 0.5, 0.7], 'increasing'),
        ([0.7, 0.5, 0.3, 0.1], 'decreasing'),
        ([0.5, 0.5], 'stable'),
        ([0.3, 0.35], 'stable'),
        ([0.1, 0.9, 0.1, 0.9], 'volatile'),
        ([0.4], 'stable'),
        ([], 'stable'),
    ])
    def test_classify(self, values, expected):
        assert classify_trend(values) == expected

    def test_overall_directionality(self):
        assert overall_directionality([]) == 'stable'
        assert overall_directionality([_directed('improving')] * 3) == 'improving'
        assert overall_directionality([_directed('improving'), _directed('degrading')]) == 'stable'
        assert overall_directionality([_directed('degrading')] * 2) == 'degrading'
        mixed = [_directed('volatile')] * 3 + [_directed('stable')] * 2
        assert overall_directionality(mixed) == 'volatile'


# ── HEALTH ───────────────────────────────────────────────────

class TestHealth:

    @pytest.mark.parametrize("score,verdict", [
        (100, 'excellent'), (80, 'excellent'), (79, 'healthy'), (60, 'healthy'),
        (59, 'concerning'), (40, 'concerning'), (39, 'critical'), (0, 'critical'),
    ])
    def test_verdict(self, score, verdict):
        assert health_verdict(score) == verdict

    def test_no_segments(self):
        assert health_score([], [], {}, 0, 0, TAXONOMY) == 50

    def test_high_alignment(self):
        segs = [_segment(0, alignment=0.75)]
        assert health_score(segs, [], {}, 0, 0, TAXONOMY) == 70

    def test_escalation_ratio_penalty(self):
        segs = [_segment(0, alignment=0.75)]
        assert health_score(segs, [], {}, 2, 0, TAXONOMY) == 60
        assert health_score(segs, [], {}, 1, 2, TAXONOMY) == 75

    def test_clamped(self):
        segs = [_segment(0, resistance=0.75)]
        trends = {'resistance': 'increasing', 'alignment': 'decreasing'}
        deltas = [_directed('degrading')]
        assert health_score(segs, deltas, trends, 3, 0, TAXONOMY) == 0


# ── TIMELINE ─────────────────────────────────────────────────

class TestTimeline:

    def test_improving_conversation(self):
        segs = [
            _segment(0, alignment=0.2, resistance=0.02),
            _segment(1, alignment=0.5, resistance=0.02),
            _segment(2, alignment=0.8, resistance=0.02),
        ]
        tl = build_timeline(segs, "chat", TAXONOMY)
        assert [d.directionality for d in tl.deltas] == ['improving', 'improving']
        assert tl.trends['alignment'] == 'increasing'
        assert tl.trends['resistance'] == 'stable'
        # 0.5 - 0.2 is not above the 0.3 spike; the net shift still counts.
        assert [m.reason for m in tl.breakthroughs] == [
            "Overall conversation trajectory improving",
            "Alignment increased by 30%",
        ]
        assert not tl.escalations
        assert tl.overall_directionality == 'improving'
        assert tl.health_score == 90
        assert tl.conversation_health == 'excellent'

    def test_escalating_conversation(self):
        segs = [_segment(0), _segment(1, resistance=0.5), _segment(2, resistance=1.0)]
        tl = build_timeline(segs, "chat", TAXONOMY)
        assert [m.reason for m in tl.escalations] == ["Resistance increased by 50%"] * 2
        assert all(m.severity == 'medium' for m in tl.escalations)
        assert tl.overall_directionality == 'degrading'
        assert tl.health_score == 5
        assert tl.conversation_health == 'critical'

    def test_resolution_on_first_segment(self):
        tl = build_timeline([_segment(0, closure=0.75)], "chat", TAXONOMY)
        assert len(tl.resolutions) == 1
        assert tl.deltas == ()

    def test_empty(self):
        tl = build_timeline([], "chat", TAXONOMY)
        assert tl.health_score == 50
        assert tl.overall_directionality == 'stable'
        assert set(tl.trends) == set(TAXONOMY.dimensions)

    def test_summary(self):
        segs = [_segment(0, alignment=0.25), _segment(1, alignment=0.5), _segment(2, alignment=0.75)]
        s = evolution_summary(build_timeline(segs, "chat", TAXONOMY))
        assert s['segment_count'] == 3
        assert s['average_intents']['alignment'] == pytest.approx(0.5)
        assert s['avg_shift_magnitude'] == pytest.approx(0.25)
        assert s['most_volatile_intent'] is None
        assert s['breakthrough_count'] == 2
        assert s['health_score'] == 90

    def test_most_volatile(self):
        segs = [_segment(0), _segment(1, urgency=0.5), _segment(2), _segment(3, urgency=0.5)]
        s = evolution_summary(build_timeline(segs, "chat", TAXONOMY))
        assert s['most_volatile_intent'] == 'urgency'

    def test_relationship_roles(self):
        tax  = get_taxonomy('relationship')
        vec0 = build_intent_vector({d: 0.0 for d in tax.dimensions})
        vec1 = build_intent_vector({**{d: 0.0 for d in tax.dimensions}, 'conflict': 0.5})
        delta = compute_intent_delta(vec0, vec1, tax)
        assert delta.directionality == 'degrading'
