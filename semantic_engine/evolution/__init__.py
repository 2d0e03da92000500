from semantic_engine.evolution.engine import (
    build_timeline,
    classify_trend,
    compute_intent_delta,
    evolution_summary,
    overall_directionality,
)

__all__ = [
    "build_timeline", "classify_trend", "compute_intent_delta",
    "evolution_summary", "overall_directionality",
]
