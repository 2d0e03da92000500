from semantic_engine.models.record import (
    BehavioralProfile,
    BurstState,
    CanonicalMessage,
    ConversationMetadata,
    IntentVector,
    KeywordMatch,
    LexicalAnalysis,
    LinguisticPatterns,
    RawMessage,
    ResponseDynamics,
    SenderFingerprint,
    SilenceProfile,
    TemporalContext,
    ToxicityFlags,
    TurnTaking,
)
from semantic_engine.models.timeline import (
    ConversationSegment,
    CriticalMoment,
    IntentDelta,
    IntentEvolutionTimeline,
    PipelineResult,
)

__all__ = [
    "BehavioralProfile", "BurstState", "CanonicalMessage", "ConversationMetadata",
    "IntentVector", "KeywordMatch", "LexicalAnalysis", "LinguisticPatterns",
    "RawMessage", "ResponseDynamics", "SenderFingerprint", "SilenceProfile",
    "TemporalContext", "ToxicityFlags", "TurnTaking",
    "ConversationSegment", "CriticalMoment", "IntentDelta",
    "IntentEvolutionTimeline", "PipelineResult",
]
