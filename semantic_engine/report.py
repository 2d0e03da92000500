"""
semantic_engine/report.py
Structured report over a PipelineResult.

Input: PipelineResult. Output: Report object suitable for review and export.
No message text, tokens or keywords. Participants appear by sender name only.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from semantic_engine import __version__
from semantic_engine.detectors.lexical_analyzer import dominant_distribution, mean_confidence
from semantic_engine.evolution.engine import evolution_summary
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.segmentation.segmenter import segmentation_stats


# ── REPORT SCHEMA (no message content) ───────────────────────

@dataclass
class SummaryStats:
    message_count: int = 0
    participant_count: int = 0
    segment_count: int = 0
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    taxonomy: str = 'business'
    cultural_context: Optional[str] = None


@dataclass
class ParticipantSummary:
    sender: str
    message_count: int
    share: float
    avg_message_length: float
    avg_response_time_minutes: float
    burst_count: int
    initiation_count: int


@dataclass
class SegmentSummary:
    segment_id: str
    index: int
    start: str
    end: str
    message_count: int
    boundary_type: str
    dominant_intent: Optional[str]
    dominant_speaker: Optional[str]
    alignment_score: float
    participation_balance: float
    flags: List[str] = field(default_factory=list)   # resolution / escalation / breakthrough


@dataclass
class MomentSummary:
    segment_id: str
    timestamp: str
    type: str
    severity: str
    reason: str


@dataclass
class IntentOverview:
    dominant_distribution: Dict[str, int]
    average_intents: Dict[str, float]
    most_volatile_intent: Optional[str]
    mean_confidence: float
    trends: Dict[str, str]
    overall_directionality: str


@dataclass
class ToxicityDistribution:
    none_count: int = 0
    low_count: int = 0
    medium_count: int = 0
    high_count: int = 0
    critical_count: int = 0


@dataclass
class Report:
    summary: SummaryStats
    participants: List[ParticipantSummary]
    segments: List[SegmentSummary]
    critical_moments: List[MomentSummary]
    intent_overview: IntentOverview
    toxicity: ToxicityDistribution
    segmentation: Dict[str, Any]
    behavioral: Dict[str, Any]
    health_score: Optional[int]
    conversation_health: Optional[str]
    layer_errors: Dict[str, str]
    generated_at: str
    engine_version: str


def _segment_flags(seg) -> List[str]:
    flags = []
    if seg.has_resolution:
        flags.append('resolution')
    if seg.has_escalation:
        flags.append('escalation')
    if seg.has_breakthrough:
        flags.append('breakthrough')
    return flags


def build_report(result: PipelineResult) -> Report:
    """Build a structured report from pipeline output. No raw message content."""
    messages = result.messages
    evo = result.evolution
    total = len(messages)

    summary = SummaryStats(
        message_count=total,
        participant_count=len(result.metadata.get('participants', [])),
        segment_count=len(result.segments),
        date_range_start=messages[0].timestamp.isoformat() if messages else None,
        date_range_end=messages[-1].timestamp.isoformat() if messages else None,
        taxonomy=result.metadata.get('taxonomy', 'business'),
        cultural_context=result.metadata.get('cultural_context'),
    )

    participants = [
        ParticipantSummary(
            sender=sender,
            message_count=stats['message_count'],
            share=stats['message_count'] / total if total else 0.0,
            avg_message_length=stats['avg_message_length'],
            avg_response_time_minutes=stats['avg_response_time_minutes'],
            burst_count=stats['burst_count'],
            initiation_count=stats['initiation_count'],
        )
        for sender, stats in result.metadata.get('sender_stats', {}).items()
    ]

    segments = [
        SegmentSummary(
            segment_id=s.id,
            index=s.index,
            start=s.start_time.isoformat(),
            end=s.end_time.isoformat(),
            message_count=s.message_count,
            boundary_type=s.boundary_type,
            dominant_intent=s.aggregate_intent.dominant_intent,
            dominant_speaker=s.dominant_speaker,
            alignment_score=round(s.alignment_score, 4),
            participation_balance=round(s.participation_balance, 4),
            flags=_segment_flags(s),
        )
        for s in result.segments
    ]

    evo_stats = evolution_summary(evo) if evo is not None else {}

    moments: List[MomentSummary] = []
    if evo is not None:
        ordered = sorted((*evo.escalations, *evo.breakthroughs, *evo.resolutions),
                         key=lambda m: m.timestamp)
        moments = [
            MomentSummary(
                segment_id=m.segment_id,
                timestamp=m.timestamp.isoformat(),
                type=m.type,
                severity=m.severity,
                reason=m.reason,
            )
            for m in ordered
        ]

    toxicity = ToxicityDistribution()
    for m in messages:
        if m.lexical is None:
            continue
        name = f"{m.lexical.toxicity.severity}_count"
        setattr(toxicity, name, getattr(toxicity, name) + 1)

    return Report(
        summary=summary,
        participants=participants,
        segments=segments,
        critical_moments=moments,
        intent_overview=IntentOverview(
            dominant_distribution=dominant_distribution(messages),
            average_intents={k: round(v, 4) for k, v in evo_stats.get("average_intents", {}).items()},
            most_volatile_intent=evo_stats.get("most_volatile_intent"),
            mean_confidence=round(mean_confidence(messages), 4),
            trends=dict(evo.trends) if evo else {},
            overall_directionality=evo.overall_directionality if evo else 'stable',
        ),
        toxicity=toxicity,
        segmentation=segmentation_stats(result.segments),
        behavioral=dict(result.metadata.get("behavioral", {})),
        health_score=evo.health_score if evo else None,
        conversation_health=evo.conversation_health if evo else None,
        layer_errors=dict(result.metadata.get('layer_errors', {})),
        generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        engine_version=__version__,
    )


def report_to_dict(report: Report) -> Dict:
    """Convert Report to a JSON-serializable dict (for export)."""
    def _dataclass_to_dict(obj):
        if hasattr(obj, "__dataclass_fields__"):
            return {k: _dataclass_to_dict(getattr(obj, k)) for k in obj.__dataclass_fields__}
        if isinstance(obj, list):
            return [_dataclass_to_dict(x) for x in obj]
        if isinstance(obj, dict):
            return {k: _dataclass_to_dict(v) for k, v in obj.items()}
        return obj

    return _dataclass_to_dict(report)
