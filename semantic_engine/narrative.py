"""
semantic_engine/narrative.py
Optional AI narrative over a finished PipelineResult.

The adapter only ever sees build_narrative_summary(): segment statistics,
intent scores and critical moments. No message text, no tokens, no
keywords leave the engine.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from semantic_engine.llm.base import NarrativeAdapter
from semantic_engine.models.timeline import PipelineResult

logger = logging.getLogger(__name__)


@dataclass
class NarrativeResult:
    generated:   bool
    reason:      str           = ''      # why generation was skipped or failed
    summary:     str           = ''
    insights:    List[str]     = field(default_factory=list)
    model_used:  str           = ''


def _round(scores: Dict[str, float]) -> Dict[str, float]:
    return {k: round(v, 3) for k, v in scores.items()}


def build_narrative_summary(result: PipelineResult) -> Dict[str, Any]:
    segments = [
        {
            'index':                 s.index,
            'start':                 s.start_time.isoformat(),
            'duration_minutes':      round(s.duration_minutes, 1),
            'message_count':         s.message_count,
            'boundary_type':         s.boundary_type,
            'intent':                _round(s.aggregate_intent.scores),
            'dominant_intent':       s.aggregate_intent.dominant_intent,
            'participation_balance': round(s.participation_balance, 3),
            'alignment_score':       round(s.alignment_score, 3),
            'has_resolution':        s.has_resolution,
            'has_escalation':        s.has_escalation,
            'has_breakthrough':      s.has_breakthrough,
        }
        for s in result.segments
    ]

    summary: Dict[str, Any] = {
        'taxonomy':         result.metadata.get('taxonomy'),
        'participant_count': len(result.metadata.get('participants', [])),
        'message_count':    len(result.messages),
        'segments':         segments,
    }
    evo = result.evolution
    if evo is not None:
        summary.update({
            'overall_directionality': evo.overall_directionality,
            'health_score':           evo.health_score,
            'conversation_health':    evo.conversation_health,
            'trends':                 dict(evo.trends),
            'critical_moments': [
                {
                    'type':      m.type,
                    'severity':  m.severity,
                    'reason':    m.reason,
                    'timestamp': m.timestamp.isoformat(),
                }
                for m in (*evo.escalations, *evo.breakthroughs, *evo.resolutions)
            ],
        })
    return summary


def synthesize_narrative(
    result:  PipelineResult,
    adapter: Optional[NarrativeAdapter] = None,
) -> NarrativeResult:
    """Never raises; every failure becomes generated=False with a reason."""
    if adapter is None:
        return NarrativeResult(generated=False, reason='No narrative adapter configured')
    if not result.segments:
        return NarrativeResult(generated=False, reason='Nothing to narrate: no segments')

    try:
        if not adapter.is_available():
            return NarrativeResult(generated=False, reason='Narrative backend unavailable')
        response = adapter.generate(build_narrative_summary(result))
    except Exception as e:
        logger.warning(f"Narrative adapter raised: {e}")
        return NarrativeResult(generated=False, reason=f'Narrative backend error: {e}')

    if response is None:
        return NarrativeResult(generated=False, reason='Narrative backend returned no result')

    logger.info(f"Narrative generated by {response.model_used or 'unknown model'}")
    return NarrativeResult(
        generated  = True,
        summary    = response.summary,
        insights   = list(response.insights),
        model_used = response.model_used,
    )
