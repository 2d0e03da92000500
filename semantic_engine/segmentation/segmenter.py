"""
semantic_engine/segmentation/segmenter.py
Layer 4: Conversation Segmenter.

Two passes over the enriched, timestamp-ordered messages:

  1. Raw grouping. Each message is tested against the open group; the
     boundary recorded is the highest-priority trigger that fires:
     inactivity > topic_shift > intent_reversal > dominance_flip > size_cap.
  2. Merge. Groups shorter than min_segment_size merge forward into the
     next group (keeping the earlier boundary type); an undersized tail
     merges back into the previous group. Nothing is dropped.
     max_segment_size stays a hard cap: when a forward merge would pass it
     the short group joins the previous segment instead, and when neither
     neighbour has room the combined run is split evenly, extra pieces
     typed 'size_cap'.

Segment aggregates are re-dominated with the lexical detection threshold,
so a segment's dominant intent follows the same rule as its messages.

Every message lands in exactly one segment, in order.
"""

import logging
import math
import statistics
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from semantic_engine.config import SegmentationConfig, is_group_conversation
from semantic_engine.detectors.lexical_analyzer import aggregate_intents, message_intents
from semantic_engine.errors import SegmentationError
from semantic_engine.evolution.engine import compute_intent_delta
from semantic_engine.keywords.taxonomy import Role, Taxonomy, get_taxonomy
from semantic_engine.models.record import CanonicalMessage, IntentVector
from semantic_engine.models.timeline import ConversationSegment
from semantic_engine.transform.canonical import hash32, to_base36

logger = logging.getLogger(__name__)

BOUNDARY_PRIORITY = ('inactivity', 'topic_shift', 'intent_reversal', 'dominance_flip', 'size_cap')
REVERSAL_LEVEL    = 0.5
MIN_FREQUENCY_HOURS = 0.1
DETECTION_THRESHOLD = 0.3     # LexicalConfig.detection_threshold default

RawGroup = Tuple[str, List[CanonicalMessage]]


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    a, b = set(a), set(b)
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def generate_segment_id(first_id: str, last_id: str, index: int) -> str:
    """The position suffix keeps ids unique within a conversation even on a hash collision."""
    return f"seg_{to_base36(hash32(f'{first_id}_{last_id}'))}_{index}"


def _dominant(counts: Dict[str, int]) -> Tuple[Optional[str], int]:
    """Highest count; ties go to the sender seen first (dict keeps insertion order)."""
    best, best_count = None, 0
    for sender, count in counts.items():
        if count > best_count:
            best, best_count = sender, count
    return best, best_count


def _taxonomy_of(messages: Sequence[CanonicalMessage]) -> Taxonomy:
    for m in messages:
        if m.lexical:
            return get_taxonomy(m.lexical.taxonomy)
    return get_taxonomy(None)


# ── BOUNDARY DETECTORS ───────────────────────────────────────

class _OpenGroup:
    """Pass-1 accumulator. Keeps sender counts incrementally."""

    def __init__(self, boundary_type: str, first: CanonicalMessage):
        self.boundary_type = boundary_type
        self.messages      = [first]
        self.counts: Dict[str, int] = {first.sender: 1}

    def add(self, msg: CanonicalMessage) -> None:
        self.messages.append(msg)
        self.counts[msg.sender] = self.counts.get(msg.sender, 0) + 1

    def __len__(self) -> int:
        return len(self.messages)


def _inactivity(msg, group: _OpenGroup, threshold_minutes: float) -> bool:
    gap = (msg.timestamp - group.messages[-1].timestamp).total_seconds() / 60.0
    return gap >= threshold_minutes


def _topic_shift(msg, group: _OpenGroup, config: SegmentationConfig) -> bool:
    if len(group) < config.topic_window_size or not msg.tokens:
        return False
    recent: set = set()
    for m in group.messages[-config.topic_window_size:]:
        recent.update(m.tokens)
    return jaccard(msg.tokens, recent) < config.topic_shift_threshold


def _intent_reversal(
    msg,
    group:     _OpenGroup,
    taxonomy:  Taxonomy,
    config:    SegmentationConfig,
    threshold: float = DETECTION_THRESHOLD,
) -> bool:
    if len(group) < config.intent_min_messages or msg.lexical is None:
        return False
    if not any(m.lexical for m in group.messages):
        return False
    agg    = aggregate_intents(message_intents(group.messages), taxonomy.dimensions, threshold)
    target = msg.lexical.intents
    al, res = taxonomy.dimension_for(Role.ALIGNMENT), taxonomy.dimension_for(Role.RESISTANCE)
    cl, unc = taxonomy.dimension_for(Role.CLOSURE), taxonomy.dimension_for(Role.UNCERTAINTY)

    opposed = (
        (agg.get(al) > REVERSAL_LEVEL and target.get(res) > REVERSAL_LEVEL)
        or (agg.get(res) > REVERSAL_LEVEL and target.get(al) > REVERSAL_LEVEL)
        or (agg.get(cl) > REVERSAL_LEVEL and target.get(unc) > REVERSAL_LEVEL)
    )
    if not opposed:
        return False
    return compute_intent_delta(agg, target, taxonomy).shift_magnitude > config.intent_shift_threshold


def _dominance_flip(msg, group: _OpenGroup, config: SegmentationConfig) -> bool:
    """
    Weak dominance plus a different sender who would now out-count the
    dominant one. Balanced back-and-forth never triggers.
    """
    if len(group) < config.dominance_min_messages:
        return False
    dominant, count = _dominant(group.counts)
    if dominant is None or msg.sender == dominant:
        return False
    if count / len(group) >= config.dominance_threshold:
        return False
    return group.counts.get(msg.sender, 0) + 1 > count


def detect_boundary(
    msg:        CanonicalMessage,
    group:      _OpenGroup,
    taxonomy:   Taxonomy,
    config:     SegmentationConfig,
    inactivity: float,
    threshold:  float = DETECTION_THRESHOLD,
) -> Optional[str]:
    """Highest-priority trigger for msg against the open group, or None."""
    if _inactivity(msg, group, inactivity):
        return 'inactivity'
    if _topic_shift(msg, group, config):
        return 'topic_shift'
    if _intent_reversal(msg, group, taxonomy, config, threshold):
        return 'intent_reversal'
    if _dominance_flip(msg, group, config):
        return 'dominance_flip'
    if len(group) >= config.max_segment_size:
        return 'size_cap'
    return None


# ── PASSES ───────────────────────────────────────────────────

def raw_groups(
    messages:  Sequence[CanonicalMessage],
    taxonomy:  Taxonomy,
    config:    SegmentationConfig,
    threshold: float = DETECTION_THRESHOLD,
) -> List[RawGroup]:
    inactivity = config.effective_inactivity_minutes(is_group_conversation(m.sender for m in messages))
    groups: List[RawGroup] = []
    group = _OpenGroup('start', messages[0])
    for msg in messages[1:]:
        boundary = detect_boundary(msg, group, taxonomy, config, inactivity, threshold)
        if boundary:
            logger.debug(f"Boundary '{boundary}' before {msg.id}")
            groups.append((group.boundary_type, group.messages))
            group = _OpenGroup(boundary, msg)
        else:
            group.add(msg)
    groups.append((group.boundary_type, group.messages))
    return groups


def split_group(boundary: str, msgs: List, max_size: Optional[int]) -> List[RawGroup]:
    """Even pieces no larger than max_size; pieces after the first are 'size_cap'."""
    if max_size is None or len(msgs) <= max_size:
        return [(boundary, msgs)]
    pieces = math.ceil(len(msgs) / max_size)
    base, extra = divmod(len(msgs), pieces)
    out: List[RawGroup] = []
    start = 0
    for i in range(pieces):
        size = base + (1 if i < extra else 0)
        out.append((boundary if i == 0 else 'size_cap', msgs[start:start + size]))
        start += size
    return out


def merge_groups(
    groups:   Sequence[RawGroup],
    min_size: int,
    max_size: Optional[int] = None,
) -> List[RawGroup]:
    """
    Merge undersized groups forward; an undersized tail merges backward.
    With max_size set no merged group grows past it: a short group that
    cannot go forward goes back, and failing both the run is split.
    """
    merged:  List[RawGroup]     = []
    pending: Optional[RawGroup] = None

    def fits(size: int) -> bool:
        return max_size is None or size <= max_size

    for boundary, msgs in groups:
        msgs = list(msgs)
        if pending is not None:
            short_type, short_msgs = pending
            pending = None
            if fits(len(short_msgs) + len(msgs)):
                boundary, msgs = short_type, short_msgs + msgs
            elif merged and fits(len(merged[-1][1]) + len(short_msgs)):
                merged[-1] = (merged[-1][0], merged[-1][1] + short_msgs)
            else:
                merged.extend(split_group(short_type, short_msgs + msgs, max_size))
                continue
        if len(msgs) < min_size:
            pending = (boundary, msgs)
            continue
        merged.append((boundary, msgs))

    if pending is not None:
        if merged:
            last_type, last_msgs = merged.pop()
            merged.extend(split_group(last_type, last_msgs + pending[1], max_size))
        else:
            merged.append(pending)
    return merged


# ── FINALIZE ─────────────────────────────────────────────────

def participation_balance(counts: Dict[str, int]) -> float:
    values = list(counts.values())
    if len(values) <= 1:
        return 1.0
    mean = statistics.fmean(values)
    return max(0.0, 1.0 - statistics.pstdev(values) / mean)


def topic_coherence(messages: Sequence[CanonicalMessage]) -> float:
    if len(messages) < 2:
        return 1.0
    scores = [
        jaccard(a.tokens, b.tokens)
        for a, b in zip(messages, messages[1:])
        if a.tokens or b.tokens
    ]
    return statistics.fmean(scores) if scores else 0.0


def dominant_keywords(messages: Sequence[CanonicalMessage], limit: int = 10) -> Tuple[str, ...]:
    counter: Counter = Counter()
    for m in messages:
        counter.update(m.tokens)
    # most_common is stable: equal counts keep first-appearance order
    return tuple(word for word, _ in counter.most_common(limit))


def has_resolution(messages: Sequence[CanonicalMessage], closure_dim: Optional[str]) -> bool:
    n = len(messages)
    if n < 3:
        return False
    tail = messages[-math.ceil(n / 3):]
    hits = sum(1 for m in tail if m.lexical and m.lexical.intents.get(closure_dim) > 0.5)
    return hits >= 2


def alignment_score(intent: IntentVector, taxonomy: Taxonomy) -> float:
    positive = (intent.get(taxonomy.dimension_for(Role.ALIGNMENT))
                + intent.get(taxonomy.dimension_for(Role.CLOSURE)))
    negative = (intent.get(taxonomy.dimension_for(Role.RESISTANCE))
                + intent.get(taxonomy.dimension_for(Role.UNCERTAINTY)))
    total = positive + negative
    return positive / total if total > 0 else 0.5


def finalize_segment(
    messages:      Sequence[CanonicalMessage],
    index:         int,
    boundary_type: str,
    taxonomy:      Optional[Taxonomy]          = None,
    config:        Optional[SegmentationConfig] = None,
    threshold:     float                        = DETECTION_THRESHOLD,
) -> ConversationSegment:
    """Build a ConversationSegment from a group. Pure; raises on an empty group."""
    if not messages:
        raise SegmentationError(f"Cannot finalize empty segment at position {index}")
    config   = config or SegmentationConfig()
    taxonomy = taxonomy or _taxonomy_of(messages)
    first, last = messages[0], messages[-1]

    duration = (last.timestamp - first.timestamp).total_seconds() / 60.0
    intent   = aggregate_intents(message_intents(messages), taxonomy.dimensions, threshold)

    half = len(messages) // 2
    if half:
        inner_delta = compute_intent_delta(
            aggregate_intents(message_intents(messages[:half]), taxonomy.dimensions, threshold),
            aggregate_intents(message_intents(messages[half:]), taxonomy.dimensions, threshold),
            taxonomy,
        )
    else:
        inner_delta = compute_intent_delta(intent, intent, taxonomy)

    counts: Dict[str, int] = {}
    for m in messages:
        counts[m.sender] = counts.get(m.sender, 0) + 1
    speaker, _ = _dominant(counts)

    latencies = [
        m.behavioral.response.response_latency_minutes for m in messages
        if m.behavioral and m.behavioral.response.is_response
        and m.behavioral.response.response_latency_minutes is not None
    ]

    return ConversationSegment(
        id                        = generate_segment_id(first.id, last.id, index),
        index                     = index,
        start_message_id          = first.id,
        end_message_id            = last.id,
        message_ids               = tuple(m.id for m in messages),
        start_time                = first.timestamp,
        end_time                  = last.timestamp,
        duration_minutes          = duration,
        message_count             = len(messages),
        boundary_type             = boundary_type,
        boundary_confidence       = 1.0 if boundary_type == 'start' else 0.8,
        aggregate_intent          = intent,
        intent_delta              = inner_delta,
        participants              = tuple(counts),
        message_count_by_sender   = counts,
        dominant_speaker          = speaker,
        participation_balance     = participation_balance(counts),
        avg_message_length        = statistics.fmean(m.char_count for m in messages),
        avg_response_time_minutes = statistics.fmean(latencies) if latencies else 0.0,
        message_frequency         = len(messages) / max(duration / 60.0, MIN_FREQUENCY_HOURS),
        has_resolution            = has_resolution(messages, taxonomy.dimension_for(Role.CLOSURE)),
        has_escalation            = (intent.get(taxonomy.dimension_for(Role.RESISTANCE)) > 0.5
                                     or intent.get(taxonomy.dimension_for(Role.URGENCY)) > 0.6),
        has_breakthrough          = (intent.get(taxonomy.dimension_for(Role.ALIGNMENT)) > 0.6
                                     or intent.get(taxonomy.dimension_for(Role.CLOSURE)) > 0.5),
        alignment_score           = alignment_score(intent, taxonomy),
        topic_coherence           = topic_coherence(messages),
        dominant_keywords         = dominant_keywords(messages, config.keyword_count),
    )


# ── ENTRY POINTS ─────────────────────────────────────────────

def segment_conversation(
    messages:  Sequence[CanonicalMessage],
    config:    Optional[SegmentationConfig] = None,
    taxonomy:  Optional[Taxonomy]           = None,
    threshold: float                        = DETECTION_THRESHOLD,
) -> List[ConversationSegment]:
    """Partition an ordered, enriched message list into segments."""
    config = config or SegmentationConfig()
    if not messages:
        logger.warning("segment_conversation: no messages")
        return []
    taxonomy = taxonomy or _taxonomy_of(messages)

    groups   = raw_groups(messages, taxonomy, config, threshold)
    merged   = merge_groups(groups, config.min_segment_size, config.max_segment_size)
    segments = [
        finalize_segment(msgs, i, boundary, taxonomy, config, threshold)
        for i, (boundary, msgs) in enumerate(merged)
    ]
    logger.info(
        f"Segmentation complete: {len(messages)} messages -> {len(groups)} raw groups "
        f"-> {len(segments)} segments"
    )
    return segments


def assign_segments(
    messages: Sequence[CanonicalMessage],
    segments: Sequence[ConversationSegment],
) -> List[CanonicalMessage]:
    """New message records carrying their segment_id."""
    owner: Dict[str, str] = {}
    for seg in segments:
        for mid in seg.message_ids:
            owner[mid] = seg.id
    return [replace(m, segment_id=owner.get(m.id)) for m in messages]


def segmentation_stats(segments: Sequence[ConversationSegment]) -> Dict:
    if not segments:
        return {
            'segment_count':     0,
            'by_boundary_type':  {},
            'avg_size':          0.0,
            'min_size':          0,
            'max_size':          0,
            'avg_coherence':     0.0,
        }
    sizes = [s.message_count for s in segments]
    counts = Counter(s.boundary_type for s in segments)
    by_type = {t: counts[t] for t in ('start',) + BOUNDARY_PRIORITY if counts[t]}
    return {
        'segment_count':     len(segments),
        'by_boundary_type':  by_type,
        'avg_size':          statistics.fmean(sizes),
        'min_size':          min(sizes),
        'max_size':          max(sizes),
        'avg_coherence':     statistics.fmean(s.topic_coherence for s in segments),
    }
