"""
semantic_engine/models/record.py
Shared dataclass schema for per-message records. The transformer, both
analyzers, the segmenter and the exporters use these types.
Data only, no logic.

All pipeline records are frozen. Enrichment builds new instances with
dataclasses.replace(); nothing is mutated after construction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


# ── INPUT ────────────────────────────────────────────────────

@dataclass
class RawMessage:
    """One record as produced by a source parser, before canonicalization."""
    timestamp:  Any             # datetime / epoch s or ms / ISO string
    sender:     Optional[str]
    text:       Optional[str]


@dataclass
class ConversationMetadata:
    source:        str                  = 'unknown'   # whatsapp / json / slack / gmail
    participants:  List[str]            = field(default_factory=list)
    start_date:    Optional[datetime]   = None
    end_date:      Optional[datetime]   = None
    chat_id:       str                  = ''


# ── LEXICAL LAYER ────────────────────────────────────────────

@dataclass(frozen=True)
class IntentVector:
    """Dimension name -> score in [0, 1]. Dimension set comes from the taxonomy."""
    scores:          Dict[str, float]
    dominant_intent: Optional[str]  = None
    confidence:      float          = 0.0

    def get(self, dimension: Optional[str]) -> float:
        if dimension is None:
            return 0.0
        return self.scores.get(dimension, 0.0)


@dataclass(frozen=True)
class LinguisticPatterns:
    is_question:          bool = False
    is_greeting:          bool = False
    is_acknowledgment:    bool = False
    has_time_sensitivity: bool = False
    has_negation:         bool = False
    has_hedging:          bool = False
    has_conditional:      bool = False
    has_emphasis:         bool = False
    has_endearment:       bool = False


@dataclass(frozen=True)
class KeywordMatch:
    intent:     str
    keywords:   Tuple[str, ...]
    positions:  Tuple[int, ...]     = ()
    source:     str                 = 'keyword'     # keyword / phrase / dictionary


@dataclass(frozen=True)
class ToxicityFlags:
    has_insults:          bool = False
    has_aggression:       bool = False
    has_dismissive:       bool = False
    has_manipulation:     bool = False
    has_blame:            bool = False
    has_emotional_abuse:  bool = False
    has_sexual_pressure:  bool = False
    has_financial_abuse:  bool = False
    has_isolation:        bool = False
    severity:             str  = 'none'     # none / low / medium / high / critical
    matched_patterns:     Tuple[str, ...] = ()


@dataclass(frozen=True)
class LexicalAnalysis:
    intents:             IntentVector
    patterns:            LinguisticPatterns
    keyword_matches:     Tuple[KeywordMatch, ...]
    toxicity:            ToxicityFlags
    taxonomy:            str            = 'business'
    cultural_context:    Optional[str]  = None
    dictionary_assisted: bool           = False


# ── BEHAVIORAL LAYER ─────────────────────────────────────────

@dataclass(frozen=True)
class ResponseDynamics:
    is_response:              bool            = False
    response_latency_minutes: Optional[float] = None
    response_category:        Optional[str]   = None   # immediate / quick / normal / delayed / very_delayed
    responding_to_sender:     Optional[str]   = None


@dataclass(frozen=True)
class TurnTaking:
    is_turn_change:   bool = True
    turn_duration:    int  = 1       # same-sender run length incl. current
    turns_in_last_n:  int  = 1


@dataclass(frozen=True)
class BurstState:
    is_part_of_burst:        bool            = False
    burst_position:          Optional[int]   = None
    burst_size:              Optional[int]   = None
    burst_duration_minutes:  Optional[float] = None


@dataclass(frozen=True)
class TemporalContext:
    hour_of_day:        int
    day_of_week:        int          # Monday = 0
    is_weekend:         bool
    is_business_hours:  bool
    is_after_hours:     bool


@dataclass(frozen=True)
class SilenceProfile:
    is_after_silence:          bool            = False
    silence_duration_minutes:  Optional[float] = None
    silence_severity:          str             = 'none'  # none / moderate / long / very_long
    resets_context:            bool            = False


@dataclass(frozen=True)
class SenderFingerprint:
    sender_message_index:      int   = 1
    message_frequency:         float = 0.0     # messages per day
    avg_message_length:        float = 0.0
    avg_response_time_minutes: float = 0.0
    burst_tendency:            float = 0.0
    initiation_rate:           float = 0.0


@dataclass(frozen=True)
class BehavioralProfile:
    response:     ResponseDynamics
    turn_taking:  TurnTaking
    burst:        BurstState
    temporal:     TemporalContext
    silence:      SilenceProfile
    fingerprint:  SenderFingerprint


# ── CANONICAL MESSAGE ────────────────────────────────────────

@dataclass(frozen=True)
class CanonicalMessage:
    """Normalized, immutable chat message used by every later layer."""
    id:                  str
    timestamp:           datetime
    timestamp_ms:        int
    sender:              str
    text:                str
    source:              str
    normalized_text:     str
    tokens:              Tuple[str, ...]
    char_count:          int
    word_count:          int
    index:               int
    segment_id:          Optional[str]               = None
    lexical:             Optional[LexicalAnalysis]   = None
    behavioral:          Optional[BehavioralProfile] = None
    timestamp_fallback:  bool                        = False
