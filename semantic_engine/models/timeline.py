"""
semantic_engine/models/timeline.py
Segment- and conversation-level records produced by the segmenter and
the intent evolution engine. Data only.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from semantic_engine.models.record import CanonicalMessage, IntentVector


@dataclass(frozen=True)
class IntentDelta:
    changes:          Dict[str, float]       # dimension -> signed change
    primary_shift:    Optional[str]
    shift_magnitude:  float
    directionality:   str                    # improving / degrading / stable / volatile
    from_segment_id:  Optional[str] = None
    to_segment_id:    Optional[str] = None

    def get(self, dimension: Optional[str]) -> float:
        if dimension is None:
            return 0.0
        return self.changes.get(dimension, 0.0)


@dataclass(frozen=True)
class ConversationSegment:
    id:                          str
    index:                       int
    start_message_id:            str
    end_message_id:              str
    message_ids:                 Tuple[str, ...]
    start_time:                  datetime
    end_time:                    datetime
    duration_minutes:            float
    message_count:               int
    boundary_type:               str          # start / inactivity / topic_shift / intent_reversal / dominance_flip / size_cap
    boundary_confidence:         float
    aggregate_intent:            IntentVector
    intent_delta:                IntentDelta
    participants:                Tuple[str, ...]
    message_count_by_sender:     Dict[str, int]
    dominant_speaker:            Optional[str]
    participation_balance:       float
    avg_message_length:          float
    avg_response_time_minutes:   float
    message_frequency:           float        # messages per hour
    has_resolution:              bool
    has_escalation:              bool
    has_breakthrough:            bool
    alignment_score:             float
    topic_coherence:             float
    dominant_keywords:           Tuple[str, ...]


@dataclass(frozen=True)
class CriticalMoment:
    segment_id:        str
    timestamp:         datetime
    type:              str            # escalation / breakthrough / resolution
    severity:          str            # low / medium / high
    reason:            str
    intent_snapshot:   IntentVector
    triggering_delta:  Optional[IntentDelta] = None


@dataclass(frozen=True)
class IntentEvolutionTimeline:
    chat_id:                 str
    segments:                Tuple[ConversationSegment, ...]
    deltas:                  Tuple[IntentDelta, ...]
    trends:                  Dict[str, str]
    escalations:             Tuple[CriticalMoment, ...]
    breakthroughs:           Tuple[CriticalMoment, ...]
    resolutions:             Tuple[CriticalMoment, ...]
    overall_directionality:  str
    health_score:            int
    conversation_health:     str          # excellent / healthy / concerning / critical


@dataclass
class PipelineResult:
    """The output contract consumed by reports, persistence and narrative."""
    messages:   List[CanonicalMessage]
    segments:   List[ConversationSegment]
    evolution:  Optional[IntentEvolutionTimeline]
    metadata:   Dict[str, Any] = field(default_factory=dict)
