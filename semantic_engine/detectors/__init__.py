from semantic_engine.detectors.behavioral_analyzer import (
    SenderStats,
    analyze_behavior,
    analyze_behavioral_batch,
    behavioral_summary,
)
from semantic_engine.detectors.lexical_analyzer import (
    aggregate_intents,
    analyze_lexical,
    analyze_lexical_batch,
    build_intent_vector,
    compute_confidence,
    detect_cultural_context,
)

__all__ = [
    "SenderStats", "analyze_behavior", "analyze_behavioral_batch", "behavioral_summary",
    "aggregate_intents", "analyze_lexical", "analyze_lexical_batch",
    "build_intent_vector", "compute_confidence", "detect_cultural_context",
]
