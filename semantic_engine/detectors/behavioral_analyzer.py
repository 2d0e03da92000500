"""
semantic_engine/detectors/behavioral_analyzer.py
Layer 3: Behavioral Analyzer.

Reads only sender, timestamp and the precomputed char_count of each
message; never the text. Runs in one pass over the ordered conversation,
threading a per-sender SenderStats fold through the batch. A message's
fingerprint reflects the fold through that message and nothing after it,
so analyzing a prefix of a conversation gives the same profiles as the
same messages inside the full run.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from semantic_engine.cancel import CancellationToken, check
from semantic_engine.config import BehavioralConfig
from semantic_engine.models.record import (
    BehavioralProfile,
    BurstState,
    CanonicalMessage,
    ResponseDynamics,
    SenderFingerprint,
    SilenceProfile,
    TemporalContext,
    TurnTaking,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440.0


def minutes_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 60.0


# ── SENDER STATS FOLD ────────────────────────────────────────

@dataclass(frozen=True)
class SenderStats:
    """Running per-sender totals. fold() returns the next state."""
    message_count:        int              = 0
    total_characters:     int              = 0
    first_time:           Optional[datetime] = None
    last_time:            Optional[datetime] = None
    response_count:       int              = 0
    total_response_time:  float            = 0.0
    burst_count:          int              = 0
    initiation_count:     int              = 0

    def fold(
        self,
        msg:           CanonicalMessage,
        response_time: Optional[float],
        in_burst:      bool,
        initiates:     bool,
    ) -> "SenderStats":
        return SenderStats(
            message_count       = self.message_count + 1,
            total_characters    = self.total_characters + msg.char_count,
            first_time          = self.first_time or msg.timestamp,
            last_time           = msg.timestamp,
            response_count      = self.response_count + (1 if response_time is not None else 0),
            total_response_time = self.total_response_time + (response_time or 0.0),
            burst_count         = self.burst_count + (1 if in_burst else 0),
            initiation_count    = self.initiation_count + (1 if initiates else 0),
        )

    @property
    def avg_length(self) -> float:
        return self.total_characters / self.message_count if self.message_count else 0.0

    @property
    def avg_response_time(self) -> float:
        return self.total_response_time / self.response_count if self.response_count else 0.0

    @property
    def days_active(self) -> float:
        if self.first_time is None or self.last_time is None:
            return 0.0
        return minutes_between(self.first_time, self.last_time) / MINUTES_PER_DAY

    def fingerprint(self) -> SenderFingerprint:
        count = self.message_count
        return SenderFingerprint(
            sender_message_index      = count,
            message_frequency         = count / max(self.days_active, 1.0),
            avg_message_length        = self.avg_length,
            avg_response_time_minutes = self.avg_response_time,
            burst_tendency            = self.burst_count / count if count else 0.0,
            initiation_rate           = self.initiation_count / count if count else 0.0,
        )

    def to_dict(self) -> Dict:
        return {
            'message_count':             self.message_count,
            'avg_message_length':        round(self.avg_length, 2),
            'avg_response_time_minutes': round(self.avg_response_time, 2),
            'burst_count':               self.burst_count,
            'initiation_count':          self.initiation_count,
            'first_message':             self.first_time.isoformat() if self.first_time else None,
            'last_message':              self.last_time.isoformat() if self.last_time else None,
        }


# ── COMPONENTS ───────────────────────────────────────────────

def categorize_latency(minutes: float, config: BehavioralConfig) -> str:
    if minutes < config.immediate_response_minutes: return 'immediate'
    if minutes < config.quick_response_minutes:     return 'quick'
    if minutes < config.normal_response_minutes:    return 'normal'
    if minutes < config.delayed_response_minutes:   return 'delayed'
    return 'very_delayed'


def categorize_silence(minutes: float, config: BehavioralConfig) -> str:
    if minutes < config.silence_threshold_minutes:       return 'brief'
    if minutes < config.silence_threshold_minutes * 2:   return 'moderate'
    if minutes < config.conversation_reset_minutes:      return 'long'
    return 'very_long'


def response_dynamics(
    msg:      CanonicalMessage,
    previous: Optional[CanonicalMessage],
    config:   BehavioralConfig,
) -> ResponseDynamics:
    if previous is None:
        return ResponseDynamics()
    latency     = minutes_between(previous.timestamp, msg.timestamp)
    is_response = msg.sender != previous.sender and latency < config.normal_response_minutes
    return ResponseDynamics(
        is_response              = is_response,
        response_latency_minutes = latency,
        response_category        = categorize_latency(latency, config) if is_response else None,
        responding_to_sender     = previous.sender if is_response else None,
    )


def turn_taking(
    msg:         CanonicalMessage,
    previous:    Optional[CanonicalMessage],
    run_length:  int,
    history:     Sequence[CanonicalMessage],
) -> TurnTaking:
    """run_length: trailing same-sender run before this message."""
    continues = previous is not None and previous.sender == msg.sender
    return TurnTaking(
        is_turn_change  = not continues,
        turn_duration   = run_length + 1 if continues else 1,
        turns_in_last_n = sum(1 for m in history if m.sender == msg.sender) + 1,
    )


def burst_state(
    msg:      CanonicalMessage,
    history:  Sequence[CanonicalMessage],
    config:   BehavioralConfig,
) -> BurstState:
    recent = [
        m for m in history
        if m.sender == msg.sender
        and minutes_between(m.timestamp, msg.timestamp) < config.burst_window_minutes
    ]
    if len(recent) < config.burst_min_messages - 1:
        return BurstState()
    size = len(recent) + 1
    return BurstState(
        is_part_of_burst       = True,
        burst_position         = size,
        burst_size             = size,
        burst_duration_minutes = minutes_between(recent[0].timestamp, msg.timestamp),
    )


def temporal_context(timestamp: datetime, config: BehavioralConfig) -> TemporalContext:
    weekday    = timestamp.weekday()
    is_weekend = weekday >= 5
    in_hours   = (not is_weekend
                  and config.business_hours_start <= timestamp.hour < config.business_hours_end)
    return TemporalContext(
        hour_of_day       = timestamp.hour,
        day_of_week       = weekday,
        is_weekend        = is_weekend,
        is_business_hours = in_hours,
        is_after_hours    = not in_hours,
    )


def silence_profile(
    msg:      CanonicalMessage,
    previous: Optional[CanonicalMessage],
    config:   BehavioralConfig,
) -> SilenceProfile:
    if previous is None:
        return SilenceProfile()
    gap = minutes_between(previous.timestamp, msg.timestamp)
    if gap < config.silence_threshold_minutes:
        return SilenceProfile(silence_duration_minutes=gap)
    return SilenceProfile(
        is_after_silence         = True,
        silence_duration_minutes = gap,
        silence_severity         = categorize_silence(gap, config),
        resets_context           = gap >= config.conversation_reset_minutes,
    )


# ── ANALYSIS ─────────────────────────────────────────────────

def analyze_behavior(
    msg:         CanonicalMessage,
    previous:    Optional[CanonicalMessage],
    history:     Sequence[CanonicalMessage],
    stats:       SenderStats,
    run_length:  int,
    config:      BehavioralConfig,
) -> Tuple[BehavioralProfile, SenderStats]:
    """
    Profile one message. history is the lookback window (oldest first),
    stats the sender's fold before this message. Returns the profile and
    the sender's next fold state.
    """
    response = response_dynamics(msg, previous, config)
    burst    = burst_state(msg, history, config)

    initiates = previous is None or (
        minutes_between(previous.timestamp, msg.timestamp) >= config.initiation_gap_minutes
    )
    response_time = response.response_latency_minutes if response.is_response else None
    next_stats    = stats.fold(msg, response_time, burst.is_part_of_burst, initiates)

    profile = BehavioralProfile(
        response    = response,
        turn_taking = turn_taking(msg, previous, run_length, history),
        burst       = burst,
        temporal    = temporal_context(msg.timestamp, config),
        silence     = silence_profile(msg, previous, config),
        fingerprint = next_stats.fingerprint(),
    )
    return profile, next_stats


def analyze_behavioral_batch(
    messages:     Sequence[CanonicalMessage],
    config:       Optional[BehavioralConfig]   = None,
    batch_size:   int                          = 500,
    progress_cb:  Optional[Callable]           = None,
    cancel:       Optional[CancellationToken]  = None,
) -> Tuple[List[CanonicalMessage], Dict[str, SenderStats]]:
    """
    Attach a BehavioralProfile to every message (already in timestamp order).
    Returns (messages, final SenderStats per sender).
    """
    config = config or BehavioralConfig()
    stats: Dict[str, SenderStats] = {}
    out:   List[CanonicalMessage] = []
    total = len(messages)
    run_length = 0

    for start in range(0, total, batch_size):
        check(cancel, 'behavioral analysis')
        for i in range(start, min(start + batch_size, total)):
            msg      = messages[i]
            previous = messages[i - 1] if i > 0 else None
            history  = messages[max(0, i - config.lookback_message_count): i]

            profile, stats[msg.sender] = analyze_behavior(
                msg, previous, history, stats.get(msg.sender, SenderStats()), run_length, config,
            )
            run_length = profile.turn_taking.turn_duration
            out.append(replace(msg, behavioral=profile))
        if progress_cb:
            progress_cb(min(start + batch_size, total), total, "Profiling behavior")

    logger.info(f"Behavioral analysis complete: {total} messages, {len(stats)} senders")
    return out, stats


def behavioral_summary(messages: Sequence[CanonicalMessage]) -> Dict:
    """Conversation-level behavioral metrics over messages with profiles."""
    profiled = [m.behavioral for m in messages if m.behavioral is not None]
    total    = len(profiled)
    if not total:
        return {
            'total_messages':        0,
            'avg_response_time':     0.0,
            'burst_rate':            0.0,
            'silence_count':         0,
            'avg_silence_duration':  0.0,
            'after_hours_rate':      0.0,
            'weekend_rate':          0.0,
        }

    latencies = [b.response.response_latency_minutes for b in profiled
                 if b.response.is_response and b.response.response_latency_minutes is not None]
    silences  = [b.silence.silence_duration_minutes for b in profiled if b.silence.is_after_silence]

    return {
        'total_messages':        total,
        'avg_response_time':     sum(latencies) / len(latencies) if latencies else 0.0,
        'burst_rate':            sum(1 for b in profiled if b.burst.is_part_of_burst) / total,
        'silence_count':         len(silences),
        'avg_silence_duration':  sum(silences) / len(silences) if silences else 0.0,
        'after_hours_rate':      sum(1 for b in profiled if b.temporal.is_after_hours) / total,
        'weekend_rate':          sum(1 for b in profiled if b.temporal.is_weekend) / total,
    }
