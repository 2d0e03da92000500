"""
semantic_engine/evolution/engine.py
Layer 5: Intent Evolution Engine.

Turns the ordered segment list into a timeline: deltas between
consecutive segments, critical moments (escalations, breakthroughs,
resolutions), per-dimension trends, overall directionality and a 0-100
health score.

Dimension-agnostic: every reference to alignment / resistance / urgency /
closure / uncertainty goes through the taxonomy's Role map.
"""

import logging
import statistics
from typing import Dict, List, Optional, Sequence, Tuple

from semantic_engine.config import EvolutionConfig
from semantic_engine.keywords.taxonomy import Role, Taxonomy, get_taxonomy
from semantic_engine.models.record import IntentVector
from semantic_engine.models.timeline import (
    ConversationSegment,
    CriticalMoment,
    IntentDelta,
    IntentEvolutionTimeline,
)

logger = logging.getLogger(__name__)


def _variance(values: Sequence[float]) -> float:
    return statistics.pvariance(values) if len(values) > 1 else 0.0


def _role_dims(taxonomy: Taxonomy) -> Dict[Role, Optional[str]]:
    return {role: taxonomy.dimension_for(role) for role in Role}


# ── DELTAS ───────────────────────────────────────────────────

def compute_intent_delta(
    before:    IntentVector,
    after:     IntentVector,
    taxonomy:  Optional[Taxonomy]        = None,
    config:    Optional[EvolutionConfig] = None,
    from_id:   Optional[str]             = None,
    to_id:     Optional[str]             = None,
) -> IntentDelta:
    """Signed per-dimension change from before to after, with a direction verdict."""
    config   = config or EvolutionConfig()
    taxonomy = taxonomy or get_taxonomy(None)

    dims = list(before.scores)
    for dim in after.scores:
        if dim not in dims:
            dims.append(dim)
    changes = {dim: after.get(dim) - before.get(dim) for dim in dims}

    primary, magnitude = None, 0.0
    for dim, change in changes.items():
        if abs(change) > magnitude:
            primary, magnitude = dim, abs(change)

    return IntentDelta(
        changes         = changes,
        primary_shift   = primary if magnitude > config.noise_floor else None,
        shift_magnitude = magnitude,
        directionality  = _directionality(changes, magnitude, taxonomy, config),
        from_segment_id = from_id,
        to_segment_id   = to_id,
    )


def _directionality(
    changes:    Dict[str, float],
    magnitude:  float,
    taxonomy:   Taxonomy,
    config:     EvolutionConfig,
) -> str:
    if magnitude < config.noise_floor:
        return 'stable'
    values = list(changes.values())
    if (_variance(values) > config.delta_volatility_variance
            and any(v > config.noise_floor for v in values)
            and any(v < -config.noise_floor for v in values)):
        return 'volatile'

    d = _role_dims(taxonomy)
    net = ((changes.get(d[Role.ALIGNMENT], 0.0) + changes.get(d[Role.CLOSURE], 0.0))
           - (changes.get(d[Role.RESISTANCE], 0.0) + changes.get(d[Role.UNCERTAINTY], 0.0)))
    if net > config.net_direction_threshold:
        return 'improving'
    if net < -config.net_direction_threshold:
        return 'degrading'
    return 'stable'


# ── CRITICAL MOMENTS ─────────────────────────────────────────

def _severity(value: float, config: EvolutionConfig) -> str:
    if value > config.high_severity:   return 'high'
    if value > config.medium_severity: return 'medium'
    return 'low'


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def detect_escalation(
    segment:   ConversationSegment,
    delta:     IntentDelta,
    taxonomy:  Taxonomy,
    config:    EvolutionConfig,
) -> Optional[CriticalMoment]:
    d   = _role_dims(taxonomy)
    res = delta.get(d[Role.RESISTANCE])
    urg = delta.get(d[Role.URGENCY])
    unc = delta.get(d[Role.UNCERTAINTY])

    if not (res > config.spike_threshold
            or urg > config.spike_threshold
            or delta.directionality == 'degrading'
            or (res > config.compound_threshold and unc > config.compound_threshold)):
        return None

    if res > config.spike_threshold:
        reason = f"Resistance increased by {_pct(res)}"
    elif urg > config.spike_threshold:
        reason = f"Urgency spiked by {_pct(urg)}"
    elif delta.directionality == 'degrading':
        reason = "Overall conversation trajectory degrading"
    else:
        reason = f"Resistance and uncertainty rose together ({_pct(res)}, {_pct(unc)})"

    return CriticalMoment(
        segment_id       = segment.id,
        timestamp        = segment.start_time,
        type             = 'escalation',
        severity         = _severity(max(res, urg), config),
        reason           = reason,
        intent_snapshot  = segment.aggregate_intent,
        triggering_delta = delta,
    )


def detect_breakthrough(
    segment:   ConversationSegment,
    delta:     IntentDelta,
    taxonomy:  Taxonomy,
    config:    EvolutionConfig,
) -> Optional[CriticalMoment]:
    d  = _role_dims(taxonomy)
    al = delta.get(d[Role.ALIGNMENT])
    cl = delta.get(d[Role.CLOSURE])

    if not (al > config.spike_threshold
            or cl > config.spike_threshold
            or delta.directionality == 'improving'):
        return None

    if al > config.spike_threshold:
        reason = f"Alignment increased by {_pct(al)}"
    elif cl > config.spike_threshold:
        reason = f"Closure signals increased by {_pct(cl)}"
    else:
        reason = "Overall conversation trajectory improving"

    return CriticalMoment(
        segment_id       = segment.id,
        timestamp        = segment.start_time,
        type             = 'breakthrough',
        severity         = _severity(max(al, cl), config),
        reason           = reason,
        intent_snapshot  = segment.aggregate_intent,
        triggering_delta = delta,
    )


def detect_resolution(
    segment:   ConversationSegment,
    delta:     Optional[IntentDelta],
    taxonomy:  Taxonomy,
    config:    EvolutionConfig,
) -> Optional[CriticalMoment]:
    """delta is None for the first segment; only the closure test applies there."""
    d       = _role_dims(taxonomy)
    closure = segment.aggregate_intent.get(d[Role.CLOSURE])

    high_closure = closure > config.resolution_closure
    both_dropped = (
        delta is not None
        and delta.get(d[Role.UNCERTAINTY]) < -config.resolution_drop
        and delta.get(d[Role.RESISTANCE]) < -config.resolution_drop
    )
    if not (high_closure or both_dropped):
        return None

    if closure > 0.7:
        severity = 'high'
    elif closure > 0.6:
        severity = 'medium'
    else:
        severity = 'low'

    return CriticalMoment(
        segment_id       = segment.id,
        timestamp        = segment.start_time,
        type             = 'resolution',
        severity         = severity,
        reason           = (f"Closure signals strong ({_pct(closure)})" if high_closure
                            else "Uncertainty and resistance both dropped"),
        intent_snapshot  = segment.aggregate_intent,
        triggering_delta = delta,
    )


# ── TRENDS & HEALTH ──────────────────────────────────────────

def classify_trend(values: Sequence[float], config: Optional[EvolutionConfig] = None) -> str:
    """increasing / decreasing / stable / volatile for one dimension's series."""
    config = config or EvolutionConfig()
    values = list(values)
    if len(values) < 2:
        return 'stable'

    diffs = [b - a for a, b in zip(values, values[1:])]
    if (_variance(diffs) > config.trend_volatility_variance
            and any(x > 0 for x in diffs) and any(x < 0 for x in diffs)):
        return 'volatile'

    half  = len(values) // 2
    first = statistics.fmean(values[:half])
    rest  = statistics.fmean(values[half:])
    diff  = rest - first
    if abs(diff) < config.trend_stable_threshold:
        return 'stable'
    return 'increasing' if diff > 0 else 'decreasing'


def segment_series(
    segments: Sequence[ConversationSegment],
    deltas:   Sequence[IntentDelta],
    dim:      str,
) -> List[float]:
    """Rebuild a dimension's per-segment values from the first segment plus each delta."""
    if not segments:
        return []
    values = [segments[0].aggregate_intent.get(dim)]
    for delta in deltas:
        values.append(values[-1] + delta.get(dim))
    return values


def overall_directionality(deltas: Sequence[IntentDelta], config: Optional[EvolutionConfig] = None) -> str:
    config = config or EvolutionConfig()
    if not deltas:
        return 'stable'
    improving = sum(1 for d in deltas if d.directionality == 'improving')
    degrading = sum(1 for d in deltas if d.directionality == 'degrading')
    volatile  = sum(1 for d in deltas if d.directionality == 'volatile')

    if volatile > len(deltas) * config.volatile_share:
        return 'volatile'
    if improving > degrading * config.direction_ratio:
        return 'improving'
    if degrading > improving * config.direction_ratio:
        return 'degrading'
    return 'stable'


def health_score(
    segments:       Sequence[ConversationSegment],
    deltas:         Sequence[IntentDelta],
    trends:         Dict[str, str],
    escalations:    int,
    breakthroughs:  int,
    taxonomy:       Taxonomy,
) -> int:
    if not segments:
        return 50
    d = _role_dims(taxonomy)
    al_dim, res_dim = d[Role.ALIGNMENT], d[Role.RESISTANCE]

    avg_al  = statistics.fmean(s.aggregate_intent.get(al_dim) for s in segments)
    avg_res = statistics.fmean(s.aggregate_intent.get(res_dim) for s in segments)
    improving = sum(1 for x in deltas if x.directionality == 'improving')
    degrading = sum(1 for x in deltas if x.directionality == 'degrading')

    score = 50
    if avg_al > 0.6:   score += 20
    elif avg_al > 0.4: score += 10
    if improving > degrading: score += 15
    if trends.get(al_dim) == 'increasing':  score += 10
    if trends.get(res_dim) == 'decreasing': score += 10

    if avg_res > 0.6:   score -= 20
    elif avg_res > 0.4: score -= 10
    if degrading > improving: score -= 15
    if trends.get(res_dim) == 'increasing': score -= 10
    if trends.get(al_dim) == 'decreasing':  score -= 10

    if breakthroughs > 0 and breakthroughs >= 2 * escalations:
        score += 5
    if escalations > 0 and escalations >= 2 * breakthroughs:
        score -= 10

    return max(0, min(100, score))


def health_verdict(score: int) -> str:
    if score >= 80: return 'excellent'
    if score >= 60: return 'healthy'
    if score >= 40: return 'concerning'
    return 'critical'


# ── TIMELINE ─────────────────────────────────────────────────

def build_timeline(
    segments:  Sequence[ConversationSegment],
    chat_id:   str                       = '',
    taxonomy:  Optional[Taxonomy]        = None,
    config:    Optional[EvolutionConfig] = None,
) -> IntentEvolutionTimeline:
    """Full evolution analysis over the ordered segments."""
    config   = config or EvolutionConfig()
    taxonomy = taxonomy or get_taxonomy(None)
    segments = tuple(segments)

    deltas: List[IntentDelta] = [
        compute_intent_delta(prev.aggregate_intent, curr.aggregate_intent,
                             taxonomy, config, prev.id, curr.id)
        for prev, curr in zip(segments, segments[1:])
    ]

    escalations, breakthroughs, resolutions = [], [], []
    for i, segment in enumerate(segments):
        delta = deltas[i - 1] if i > 0 else None
        if delta is not None:
            moment = detect_escalation(segment, delta, taxonomy, config)
            if moment:
                escalations.append(moment)
            moment = detect_breakthrough(segment, delta, taxonomy, config)
            if moment:
                breakthroughs.append(moment)
        moment = detect_resolution(segment, delta, taxonomy, config)
        if moment:
            resolutions.append(moment)

    dims = list(segments[0].aggregate_intent.scores) if segments else taxonomy.dimensions
    trends = {dim: classify_trend(segment_series(segments, deltas, dim), config) for dim in dims}

    score = health_score(segments, deltas, trends, len(escalations), len(breakthroughs), taxonomy)
    timeline = IntentEvolutionTimeline(
        chat_id                = chat_id,
        segments               = segments,
        deltas                 = tuple(deltas),
        trends                 = trends,
        escalations            = tuple(escalations),
        breakthroughs          = tuple(breakthroughs),
        resolutions            = tuple(resolutions),
        overall_directionality = overall_directionality(deltas, config),
        health_score           = score,
        conversation_health    = health_verdict(score),
    )
    logger.info(
        f"Evolution complete: {len(segments)} segments, {len(deltas)} deltas, "
        f"{len(escalations)} escalations, {len(breakthroughs)} breakthroughs, "
        f"{len(resolutions)} resolutions; health {score} ({timeline.conversation_health})"
    )
    return timeline


def evolution_summary(timeline: IntentEvolutionTimeline) -> Dict:
    segments, deltas = timeline.segments, timeline.deltas
    dims = list(segments[0].aggregate_intent.scores) if segments else list(timeline.trends)

    averages = {
        dim: (statistics.fmean(s.aggregate_intent.get(dim) for s in segments) if segments else 0.0)
        for dim in dims
    }
    variances: List[Tuple[str, float]] = [
        (dim, _variance([d.get(dim) for d in deltas])) for dim in dims
    ]
    most_volatile = None
    if deltas and variances:
        dim, var = max(variances, key=lambda item: item[1])
        most_volatile = dim if var > 0 else None

    return {
        'segment_count':          len(segments),
        'average_intents':        averages,
        'avg_shift_magnitude':    statistics.fmean(d.shift_magnitude for d in deltas) if deltas else 0.0,
        'most_volatile_intent':   most_volatile,
        'escalation_count':       len(timeline.escalations),
        'breakthrough_count':     len(timeline.breakthroughs),
        'resolution_count':       len(timeline.resolutions),
        'overall_directionality': timeline.overall_directionality,
        'health_score':           timeline.health_score,
        'conversation_health':    timeline.conversation_health,
        'trends':                 dict(timeline.trends),
    }
