"""
semantic_engine/pipeline.py
Orchestrates the five layers for one conversation:

    raw -> canonical -> (lexical, behavioral) -> segments -> evolution

Progress is reported as progress_cb(fraction, message) at fixed
checkpoints. A CancellationToken is polled between layers and between
batches; cancelling raises PipelineCancelled and nothing partial is
returned. A failure inside the evolution layer is recorded in
metadata['layer_errors'] and the result still carries messages and
segments.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from semantic_engine import __version__
from semantic_engine.cancel import CancellationToken, check
from semantic_engine.config import EngineConfig, is_group_conversation
from semantic_engine.detectors.behavioral_analyzer import analyze_behavioral_batch, behavioral_summary
from semantic_engine.detectors.lexical_analyzer import analyze_lexical_batch, resolve_cultural_context
from semantic_engine.evolution.engine import build_timeline
from semantic_engine.keywords.taxonomy import get_taxonomy
from semantic_engine.models.record import ConversationMetadata, RawMessage
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.segmentation.segmenter import assign_segments, segment_conversation
from semantic_engine.transform.canonical import transform_batch

logger = logging.getLogger(__name__)

CHECKPOINTS = {
    'transform':  (0.10, "Messages canonicalized"),
    'lexical':    (0.40, "Intent signals scored"),
    'behavioral': (0.70, "Behavioral profiles built"),
    'segments':   (0.85, "Conversation segmented"),
    'evolution':  (0.95, "Intent evolution computed"),
    'done':       (1.00, "Analysis complete"),
}


def _report(progress_cb: Optional[Callable], stage: str) -> None:
    fraction, message = CHECKPOINTS[stage]
    logger.debug(f"[{fraction:.0%}] {message}")
    if progress_cb:
        progress_cb(fraction, message)


def run_pipeline(
    raws:         Iterable[RawMessage],
    metadata:     Optional[ConversationMetadata] = None,
    config:       Optional[EngineConfig]         = None,
    dictionary                                   = None,
    progress_cb:  Optional[Callable]             = None,
    cancel:       Optional[CancellationToken]    = None,
) -> PipelineResult:
    """
    Analyze one conversation end to end.

    dictionary:  optional DictionaryService used by the lexical layer.
    progress_cb: optional callable(fraction, message).
    cancel:      optional CancellationToken; raises PipelineCancelled.
    """
    config   = config or EngineConfig()
    metadata = metadata or ConversationMetadata()
    taxonomy = get_taxonomy(config.lexical.taxonomy)
    batch    = config.transform.batch_size
    layer_errors: Dict[str, str] = {}

    check(cancel, 'startup')
    messages = transform_batch(raws, metadata, config.transform, cancel=cancel)
    _report(progress_cb, 'transform')

    check(cancel, 'lexical analysis')
    culture  = resolve_cultural_context(messages, config.lexical)
    messages = analyze_lexical_batch(
        messages, config.lexical, dictionary, culture, batch_size=batch, cancel=cancel,
    )
    _report(progress_cb, 'lexical')

    check(cancel, 'behavioral analysis')
    is_group = is_group_conversation(m.sender for m in messages)
    messages, sender_stats = analyze_behavioral_batch(
        messages, config.behavioral_for(is_group), batch_size=batch, cancel=cancel,
    )
    _report(progress_cb, 'behavioral')

    check(cancel, 'segmentation')
    segments = segment_conversation(
        messages, config.segmentation, taxonomy, config.lexical.detection_threshold,
    )
    messages = assign_segments(messages, segments)
    _report(progress_cb, 'segments')

    check(cancel, 'evolution')
    evolution = None
    try:
        evolution = build_timeline(segments, metadata.chat_id, taxonomy, config.evolution)
    except Exception as e:
        logger.error(f"Evolution layer failed: {e}", exc_info=True)
        layer_errors['evolution'] = str(e) or type(e).__name__
    _report(progress_cb, 'evolution')

    check(cancel, 'finalization')
    senders = list(dict.fromkeys(m.sender for m in messages))
    result = PipelineResult(
        messages  = messages,
        segments  = segments,
        evolution = evolution,
        metadata  = {
            'engine_version':    __version__,
            'taxonomy':          taxonomy.name,
            'cultural_context':  culture,
            'is_group':          is_group,
            'participants':      senders,
            'message_count':     len(messages),
            'segment_count':     len(segments),
            'sender_stats':      {s: st.to_dict() for s, st in sender_stats.items()},
            'behavioral':        behavioral_summary(messages),
            'conversation':      _metadata_dict(metadata, messages),
            'timestamp_fallbacks': sum(1 for m in messages if m.timestamp_fallback),
            'layer_errors':      layer_errors,
        },
    )
    _report(progress_cb, 'done')
    logger.info(
        f"Pipeline complete: {len(messages)} messages, {len(segments)} segments, "
        f"health={evolution.health_score if evolution else 'n/a'}"
    )
    return result


def _metadata_dict(metadata: ConversationMetadata, messages) -> Dict[str, Any]:
    start = metadata.start_date or (messages[0].timestamp if messages else None)
    end   = metadata.end_date or (messages[-1].timestamp if messages else None)
    return {
        'source':       metadata.source,
        'chat_id':      metadata.chat_id,
        'participants': list(metadata.participants) or list(dict.fromkeys(m.sender for m in messages)),
        'start_date':   start.isoformat() if start else None,
        'end_date':     end.isoformat() if end else None,
    }


# ── SERIALIZATION ────────────────────────────────────────────

def to_jsonable(value: Any) -> Any:
    """Dataclasses, datetimes, enums, tuples -> plain JSON types."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def result_to_dict(result: PipelineResult) -> Dict[str, Any]:
    """The JSON output contract."""
    return {
        'messages':  to_jsonable(result.messages),
        'segments':  to_jsonable(result.segments),
        'evolution': to_jsonable(result.evolution) if result.evolution else None,
        'metadata':  to_jsonable(result.metadata),
    }


# ── MANY CONVERSATIONS ───────────────────────────────────────

def _run_one(job: Tuple[List[RawMessage], ConversationMetadata, Optional[EngineConfig]]) -> PipelineResult:
    raws, metadata, config = job
    return run_pipeline(raws, metadata, config)


def analyze_conversations(
    conversations: Sequence[Tuple[List[RawMessage], ConversationMetadata]],
    config:        Optional[EngineConfig] = None,
    max_workers:   Optional[int]          = None,
) -> List[PipelineResult]:
    """
    Run independent conversations through a process pool. Results keep
    input order. max_workers=1 runs inline.
    """
    jobs = [(list(raws), meta, config) for raws, meta in conversations]
    if not jobs:
        return []
    if max_workers == 1 or len(jobs) == 1:
        return [_run_one(job) for job in jobs]
    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_run_one, jobs))
    logger.info(f"Analyzed {len(results)} conversations")
    return results
