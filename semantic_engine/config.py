"""
semantic_engine/config.py
Engine configuration. Every threshold the layers use lives here, so the
algorithms never validate their own inputs.

Out-of-range values are clamped when a config object is built (directly or
through from_dict / load_config) and a warning is logged. Persists to
semantic_engine_config.json next to the project, same as the CLI defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "semantic_engine_config.json"

# Conversations with this many distinct senders use group defaults.
GROUP_MIN_PARTICIPANTS = 3


def _clamp_fields(obj: Any, bounds: Dict[str, Tuple[float, float]]) -> None:
    """Clamp numeric fields of a dataclass instance in place (construction only)."""
    for name, (lo, hi) in bounds.items():
        value = getattr(obj, name)
        try:
            number = float(value)
        except (TypeError, ValueError):
            default = next(f.default for f in fields(obj) if f.name == name)
            logger.warning(f"{type(obj).__name__}.{name}={value!r} is not numeric; using {default}")
            setattr(obj, name, default)
            continue
        clamped = min(max(number, lo), hi)
        if clamped != number:
            logger.warning(
                f"{type(obj).__name__}.{name}={value} out of range [{lo}, {hi}]; clamped to {clamped}"
            )
        if isinstance(next(f.default for f in fields(obj) if f.name == name), int):
            clamped = int(round(clamped))
        setattr(obj, name, clamped)


def _from_dict(cls, data: Optional[Dict[str, Any]]):
    data = data or {}
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.debug(f"{cls.__name__}: ignoring unknown keys {sorted(unknown)}")
    return cls(**{k: v for k, v in data.items() if k in known})


# ── LAYER 1: CANONICAL TRANSFORMER ───────────────────────────

@dataclass
class TransformConfig:
    aggressive_normalization: bool                = False
    min_token_length:         int                 = 2
    batch_size:               int                 = 500
    stop_words:               Optional[List[str]] = None     # None = built-in list

    def __post_init__(self):
        _clamp_fields(self, {
            'min_token_length': (1, 20),
            'batch_size':       (1, 1_000_000),
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TransformConfig":
        return _from_dict(cls, data)


# ── LAYER 2: LEXICAL ─────────────────────────────────────────

@dataclass
class LexicalConfig:
    taxonomy:             str            = 'business'     # business / relationship
    match_cap:            float          = 5.0            # effective matches for score 1.0
    phrase_weight:        float          = 2.0
    dictionary_weight:    float          = 0.5
    detection_threshold:  float          = 0.3
    cultural_context:     Optional[str]  = None           # None = auto-detect
    detect_culture:       bool           = True

    def __post_init__(self):
        _clamp_fields(self, {
            'match_cap':           (1.0, 50.0),
            'phrase_weight':       (0.0, 10.0),
            'dictionary_weight':   (0.0, 1.0),
            'detection_threshold': (0.0, 1.0),
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LexicalConfig":
        return _from_dict(cls, data)


# ── LAYER 3: BEHAVIORAL ──────────────────────────────────────

@dataclass
class BehavioralConfig:
    immediate_response_minutes:  float = 1.0
    quick_response_minutes:      float = 5.0
    normal_response_minutes:     float = 30.0
    delayed_response_minutes:    float = 120.0
    burst_window_minutes:        float = 5.0
    burst_min_messages:          int   = 3
    silence_threshold_minutes:   float = 180.0
    conversation_reset_minutes:  float = 1440.0
    business_hours_start:        int   = 9
    business_hours_end:          int   = 17
    lookback_message_count:      int   = 10
    initiation_gap_minutes:      float = 120.0

    def __post_init__(self):
        _clamp_fields(self, {
            'immediate_response_minutes': (0.0, 10_080.0),
            'quick_response_minutes':     (0.0, 10_080.0),
            'normal_response_minutes':    (0.0, 10_080.0),
            'delayed_response_minutes':   (0.0, 10_080.0),
            'burst_window_minutes':       (0.1, 1440.0),
            'burst_min_messages':         (2, 100),
            'silence_threshold_minutes':  (1.0, 43_200.0),
            'conversation_reset_minutes': (1.0, 525_600.0),
            'business_hours_start':       (0, 23),
            'business_hours_end':         (1, 24),
            'lookback_message_count':     (1, 1000),
            'initiation_gap_minutes':     (1.0, 43_200.0),
        })
        # Latency buckets must be ordered.
        ladder = sorted([
            self.immediate_response_minutes, self.quick_response_minutes,
            self.normal_response_minutes, self.delayed_response_minutes,
        ])
        if ladder != [self.immediate_response_minutes, self.quick_response_minutes,
                      self.normal_response_minutes, self.delayed_response_minutes]:
            logger.warning(f"Response thresholds not ascending; reordered to {ladder}")
            (self.immediate_response_minutes, self.quick_response_minutes,
             self.normal_response_minutes, self.delayed_response_minutes) = ladder
        if self.conversation_reset_minutes < self.silence_threshold_minutes:
            logger.warning("conversation_reset_minutes below silence threshold; raised to match")
            self.conversation_reset_minutes = self.silence_threshold_minutes
        if self.business_hours_end <= self.business_hours_start:
            logger.warning("business_hours_end must follow start; using 9-17")
            self.business_hours_start, self.business_hours_end = 9, 17

    @classmethod
    def for_group(cls, **overrides) -> "BehavioralConfig":
        """Group chats move faster: silence and reset thresholds are halved."""
        base = {'silence_threshold_minutes': 90.0, 'conversation_reset_minutes': 720.0}
        base.update(overrides)
        return cls(**base)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BehavioralConfig":
        return _from_dict(cls, data)


# ── LAYER 4: SEGMENTATION ────────────────────────────────────

@dataclass
class SegmentationConfig:
    inactivity_threshold_minutes: float = 180.0
    group_inactivity_multiplier:  float = 0.5
    topic_shift_threshold:        float = 0.3
    topic_window_size:            int   = 10
    dominance_threshold:          float = 0.6
    dominance_min_messages:       int   = 5
    intent_shift_threshold:       float = 0.4
    intent_min_messages:          int   = 3
    min_segment_size:             int   = 3
    max_segment_size:             int   = 100
    keyword_count:                int   = 10

    def __post_init__(self):
        _clamp_fields(self, {
            'inactivity_threshold_minutes': (1.0, 43_200.0),
            'group_inactivity_multiplier':  (0.05, 1.0),
            'topic_shift_threshold':        (0.0, 1.0),
            'topic_window_size':            (1, 500),
            'dominance_threshold':          (0.0, 1.0),
            'dominance_min_messages':       (2, 1000),
            'intent_shift_threshold':       (0.0, 1.0),
            'intent_min_messages':          (1, 1000),
            'min_segment_size':             (1, 1000),
            'max_segment_size':             (2, 100_000),
            'keyword_count':                (0, 100),
        })
        if self.max_segment_size < self.min_segment_size:
            logger.warning(
                f"max_segment_size {self.max_segment_size} < min_segment_size "
                f"{self.min_segment_size}; raised to match"
            )
            self.max_segment_size = self.min_segment_size

    def effective_inactivity_minutes(self, is_group: bool) -> float:
        if is_group:
            return self.inactivity_threshold_minutes * self.group_inactivity_multiplier
        return self.inactivity_threshold_minutes

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SegmentationConfig":
        return _from_dict(cls, data)


# ── LAYER 5: EVOLUTION ───────────────────────────────────────

@dataclass
class EvolutionConfig:
    noise_floor:                float = 0.1     # below this a change is not a shift
    delta_volatility_variance:  float = 0.05
    net_direction_threshold:    float = 0.2
    spike_threshold:            float = 0.3
    compound_threshold:         float = 0.2
    high_severity:              float = 0.5
    medium_severity:            float = 0.4
    resolution_closure:         float = 0.5
    resolution_drop:            float = 0.2
    trend_stable_threshold:     float = 0.1
    trend_volatility_variance:  float = 0.04
    volatile_share:             float = 0.4
    direction_ratio:            float = 1.5

    def __post_init__(self):
        _clamp_fields(self, {f.name: (0.0, 10.0) for f in fields(self)})

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EvolutionConfig":
        return _from_dict(cls, data)


# ── ENGINE ───────────────────────────────────────────────────

@dataclass
class EngineConfig:
    transform:     TransformConfig    = field(default_factory=TransformConfig)
    lexical:       LexicalConfig      = field(default_factory=LexicalConfig)
    behavioral:    Optional[BehavioralConfig] = None    # None = pick 1:1 or group defaults
    segmentation:  SegmentationConfig = field(default_factory=SegmentationConfig)
    evolution:     EvolutionConfig    = field(default_factory=EvolutionConfig)

    def behavioral_for(self, is_group: bool) -> BehavioralConfig:
        if self.behavioral is not None:
            return self.behavioral
        return BehavioralConfig.for_group() if is_group else BehavioralConfig()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        data = data or {}
        return cls(
            transform    = TransformConfig.from_dict(data.get('transform')),
            lexical      = LexicalConfig.from_dict(data.get('lexical')),
            behavioral   = (BehavioralConfig.from_dict(data['behavioral'])
                            if data.get('behavioral') else None),
            segmentation = SegmentationConfig.from_dict(data.get('segmentation')),
            evolution    = EvolutionConfig.from_dict(data.get('evolution')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_group_conversation(senders) -> bool:
    return len(set(senders)) >= GROUP_MIN_PARTICIPANTS


# ── PERSISTENCE ──────────────────────────────────────────────

def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def load_config(project_root: Optional[Path] = None) -> EngineConfig:
    """Load config from semantic_engine_config.json. Returns defaults if missing."""
    path = _config_path(project_root)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return EngineConfig.from_dict(data)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Config load failed: {e}")
    return EngineConfig()


def save_config(config: EngineConfig, project_root: Optional[Path] = None) -> Path:
    """Persist config to semantic_engine_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
    return path
