"""
semantic_engine/transform/canonical.py
Layer 1: Canonical Transformer.

Turns parser output (RawMessage) into immutable CanonicalMessage records:
deterministic ids, normalized text, tokens, counts, cleaned sender.

Determinism: the same input always yields the same ids, tokens and
normalized text. Chunked processing passes the global position into the
id, so batch_size never changes the output.

Malformed input never raises: missing senders become "Unknown", missing
text becomes "". ensure_timestamp falls back to "now" on a bad timestamp;
within a batch the record instead keeps its input position and borrows the
preceding record's time, so one bad line does not jump to the end of the
conversation. The record is flagged either way.
"""

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Tuple

from semantic_engine.cancel import CancellationToken, check
from semantic_engine.config import TransformConfig
from semantic_engine.keywords.patterns import STOP_WORDS
from semantic_engine.models.record import CanonicalMessage, ConversationMetadata, RawMessage

logger = logging.getLogger(__name__)

ID_TEXT_PREFIX = 50
UNKNOWN_SENDER = 'Unknown'

_URL_RE        = re.compile(r'https?://\S+')
_EMAIL_RE      = re.compile(r'\S+@\S+\.\S+')
_PHONE_RE      = re.compile(r'\d{3}[-.\s]?\d{3}[-.\s]?\d{4}')
_SPACE_RE      = re.compile(r'\s+')
_NON_BASIC_RE  = re.compile(r"[^a-z0-9\s.,!?'\"@#\-\[\]]")
_SPLIT_RE      = re.compile(r"[\s,;:'\"()\[\]{}]+")
_EDGE_PUNCT_RE = re.compile(r'^[^\w]+|[^\w]+$')
# WhatsApp prefixes phone-number senders with "~" and sometimes a LRM mark.
_SENDER_PREFIX_RE = re.compile(r'^[\s~\u200e\u200f\u202a\u202c]+')
_SENDER_DOMAIN_RE = re.compile(r'@.*$')


# ── ID GENERATION ────────────────────────────────────────────

def hash32(text: str) -> int:
    """31-multiplier rolling hash over the string, wrapped to signed 32-bit."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def to_base36(number: int) -> str:
    digits = '0123456789abcdefghijklmnopqrstuvwxyz'
    number = abs(number)
    if number == 0:
        return '0'
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return ''.join(reversed(out))


def generate_message_id(sender: str, timestamp_ms: int, text: str, index: int) -> str:
    """
    msg_<base36 hash>_<index>. The hash covers lowercased sender, epoch ms
    and the first 50 characters of text; the index keeps ids unique even
    when two messages collide.
    """
    key = f"{sender.lower()}_{timestamp_ms}_{text[:ID_TEXT_PREFIX]}"
    return f"msg_{to_base36(hash32(key))}_{index}"


# ── TEXT ─────────────────────────────────────────────────────

def normalize_text(text: str, aggressive: bool = False) -> str:
    if not text:
        return ''
    normalized = text.lower()
    if aggressive:
        normalized = _URL_RE.sub('[url]', normalized)
        normalized = _EMAIL_RE.sub('[email]', normalized)
        normalized = _PHONE_RE.sub('[phone]', normalized)
        normalized = _SPACE_RE.sub(' ', normalized)
        normalized = _NON_BASIC_RE.sub('', normalized)
        normalized = normalized.strip()
    return normalized


def tokenize(
    text:       str,
    min_length: int                       = 2,
    stop_words: Optional[FrozenSet[str]]  = None,
) -> Tuple[str, ...]:
    """Split on whitespace/punctuation, trim edge punctuation, drop short and stop words."""
    if not text:
        return ()
    stops = STOP_WORDS if stop_words is None else stop_words
    tokens = []
    for raw in _SPLIT_RE.split(text.lower()):
        if len(raw) < min_length:
            continue
        token = _EDGE_PUNCT_RE.sub('', raw)
        if len(token) < min_length or token in stops:
            continue
        tokens.append(token)
    return tuple(tokens)


def clean_sender(sender: Optional[str]) -> str:
    if sender is None:
        return UNKNOWN_SENDER
    cleaned = _SENDER_PREFIX_RE.sub('', str(sender))
    cleaned = _SENDER_DOMAIN_RE.sub('', cleaned).strip()
    return cleaned or UNKNOWN_SENDER


# ── TIMESTAMPS ───────────────────────────────────────────────

def ensure_timestamp(value: Any) -> Tuple[datetime, bool]:
    """
    Coerce a timestamp to a naive local datetime.
    Accepts datetime, epoch seconds or milliseconds (int/float/numeric str)
    and ISO-8601 strings. Returns (datetime, used_fallback).
    """
    try:
        if isinstance(value, datetime):
            return _as_local_naive(value), False
        if isinstance(value, bool):
            raise TypeError("bool is not a timestamp")
        if isinstance(value, (int, float)):
            return _from_epoch(float(value)), False
        if isinstance(value, str) and value.strip():
            text = value.strip()
            try:
                return _from_epoch(float(text)), False
            except ValueError:
                pass
            if text.endswith('Z'):
                text = text[:-1] + '+00:00'
            return _as_local_naive(datetime.fromisoformat(text)), False
    except (TypeError, ValueError, OverflowError, OSError) as e:
        logger.warning(f"Malformed timestamp {value!r} ({e}); using current time")
        return datetime.now(), True

    logger.warning(f"Missing or unsupported timestamp {value!r}; using current time")
    return datetime.now(), True


def _from_epoch(number: float) -> datetime:
    # Values past ~1973 in ms exceed 1e11; seconds stay below until year 5138.
    seconds = number / 1000.0 if abs(number) >= 1e11 else number
    return datetime.fromtimestamp(seconds)


def _as_local_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def _epoch_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


# ── TRANSFORM ────────────────────────────────────────────────

def to_canonical(
    raw:     RawMessage,
    index:   int,
    source:  str                        = 'unknown',
    config:  Optional[TransformConfig]  = None,
) -> CanonicalMessage:
    """Build one CanonicalMessage. index is the global position in the conversation."""
    config = config or TransformConfig()
    timestamp, fallback = ensure_timestamp(raw.timestamp)

    if not raw.sender or not str(raw.sender).strip():
        logger.warning(f"Message {index} has no sender; using '{UNKNOWN_SENDER}'")
    sender = clean_sender(raw.sender)
    text   = raw.text if isinstance(raw.text, str) else ('' if raw.text is None else str(raw.text))

    stop_words = frozenset(config.stop_words) if config.stop_words is not None else None
    normalized = normalize_text(text, aggressive=config.aggressive_normalization)
    ts_ms      = _epoch_ms(timestamp)

    return CanonicalMessage(
        id                 = generate_message_id(sender, ts_ms, text, index),
        timestamp          = timestamp,
        timestamp_ms       = ts_ms,
        sender             = sender,
        text               = text,
        source             = source,
        normalized_text    = normalized,
        tokens             = tokenize(normalized, config.min_token_length, stop_words),
        char_count         = len(text),
        word_count         = len(text.split()),
        index              = index,
        timestamp_fallback = fallback,
    )


def order_raw_messages(raws: Iterable[RawMessage]) -> List[Tuple[RawMessage, datetime, bool]]:
    """
    Stable sort by parsed timestamp; equal timestamps keep input order.

    A record whose timestamp fell back stays behind the record that preceded
    it in the input and takes that record's time (leading ones take the
    earliest valid time). Only an input with no valid timestamp keeps "now".
    """
    parsed = [(r, *ensure_timestamp(r.timestamp)) for r in raws]

    leading: List[Tuple[RawMessage, datetime, bool]] = []
    chains: List[Tuple[Tuple[RawMessage, datetime, bool], list]] = []
    for item in parsed:
        if not item[2]:
            chains.append((item, []))
        elif chains:
            chains[-1][1].append(item)
        else:
            leading.append(item)
    if not chains:
        return leading

    chains.sort(key=lambda chain: chain[0][1])
    first_time = chains[0][0][1]
    ordered = [(raw, first_time, True) for raw, _, _ in leading]
    for head, followers in chains:
        ordered.append(head)
        ordered.extend((raw, head[1], True) for raw, _, _ in followers)
    return ordered


def transform_batch(
    raws:         Iterable[RawMessage],
    metadata:     Optional[ConversationMetadata] = None,
    config:       Optional[TransformConfig]      = None,
    progress_cb:  Optional[Callable]             = None,
    cancel:       Optional[CancellationToken]    = None,
) -> List[CanonicalMessage]:
    """
    Canonicalize a whole conversation in timestamp order.

    progress_cb: optional callable(current, total, message), called once per batch.
    cancel:      checked between batches; raises PipelineCancelled.
    """
    config   = config or TransformConfig()
    source   = metadata.source if metadata else 'unknown'
    ordered  = order_raw_messages(list(raws))
    total    = len(ordered)

    if not ordered:
        logger.warning("transform_batch: empty message list")
        return []

    messages: List[CanonicalMessage] = []
    for start in range(0, total, config.batch_size):
        check(cancel, 'canonical transform')
        for offset, (raw, timestamp, fallback) in enumerate(ordered[start:start + config.batch_size]):
            # Feed the already-parsed datetime back in so the fallback clock is read once.
            resolved = RawMessage(timestamp=timestamp, sender=raw.sender, text=raw.text)
            msg = to_canonical(resolved, start + offset, source, config)
            if fallback:
                msg = _with_fallback(msg)
            messages.append(msg)
        if progress_cb:
            progress_cb(min(start + config.batch_size, total), total, "Canonicalizing messages")

    logger.info(f"Canonical transform complete: {len(messages)} messages from '{source}'")
    return messages


def _with_fallback(msg: CanonicalMessage) -> CanonicalMessage:
    return replace(msg, timestamp_fallback=True)
