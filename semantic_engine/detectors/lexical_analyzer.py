"""
semantic_engine/detectors/lexical_analyzer.py
Layer 2: Lexical Intent Analyzer. Pure Python, fully offline.

Scores every message against the active taxonomy's keyword tables and
returns an explainable LexicalAnalysis: each score traces back to the
KeywordMatch entries that produced it.

Matching rules
  single-word keyword   token equals it, or token starts with it (keyword len >= 4)
  phrase keyword        word-bounded substring of normalized_text, weight 2
  dictionary synonym    unmatched token whose synonym hits a keyword, weight 0.5
  score                 min(total / match_cap, 1.0)

A token counts at most once per dimension. Keywords containing anything
besides [a-z0-9] (spaces, apostrophes, hyphens) are phrases.
"""

import logging
import re
import statistics
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from semantic_engine.cancel import CancellationToken, check
from semantic_engine.config import LexicalConfig
from semantic_engine.keywords.patterns import CRITICAL_TOXICITY, PATTERN_KEYWORDS, TOXICITY_KEYWORDS
from semantic_engine.keywords.taxonomy import Taxonomy, get_taxonomy, registered_taxonomies
from semantic_engine.models.record import (
    CanonicalMessage,
    IntentVector,
    KeywordMatch,
    LexicalAnalysis,
    LinguisticPatterns,
    ToxicityFlags,
)

logger = logging.getLogger(__name__)

PREFIX_MIN_LENGTH    = 4
DICTIONARY_MIN_TOKEN = 3
LOW_CONFIDENCE       = 0.2
SPREAD_SATURATION    = 0.3
CULTURE_SAMPLE_SIZE  = 100
CULTURE_MIN_SHARE    = 0.05

_WORD_KEYWORD_RE = re.compile(r'[a-z0-9]+')
_MULTI_PUNCT_RE  = re.compile(r'[!?]{2,}')


# ── KEYWORD SETS ─────────────────────────────────────────────

@dataclass(frozen=True)
class KeywordSet:
    """Compiled form of one keyword list."""
    exact:     FrozenSet[str]
    prefixes:  Tuple[str, ...]
    phrases:   Tuple[Tuple[str, re.Pattern], ...]

    @classmethod
    def compile(cls, keywords: Iterable[str]) -> "KeywordSet":
        exact, prefixes, phrases = set(), [], []
        for kw in keywords:
            kw = kw.lower().strip()
            if not kw:
                continue
            if _WORD_KEYWORD_RE.fullmatch(kw):
                exact.add(kw)
                if len(kw) >= PREFIX_MIN_LENGTH and kw not in prefixes:
                    prefixes.append(kw)
            elif kw not in (p for p, _ in phrases):
                pattern = re.compile(r'(?<![a-z0-9])' + re.escape(kw) + r'(?![a-z0-9])')
                phrases.append((kw, pattern))
        return cls(frozenset(exact), tuple(prefixes), tuple(phrases))

    def token_hit(self, token: str) -> Optional[str]:
        """The keyword a token matches, or None."""
        if token in self.exact:
            return token
        for prefix in self.prefixes:
            if token.startswith(prefix):
                return prefix
        return None

    def phrase_hits(self, text: str) -> List[Tuple[str, int]]:
        hits = []
        for phrase, pattern in self.phrases:
            found = pattern.search(text)
            if found:
                hits.append((phrase, found.start()))
        return hits

    def matches(self, tokens: Sequence[str], text: str) -> bool:
        return any(self.token_hit(t) for t in tokens) or bool(self.phrase_hits(text))

    def contains(self, word: str) -> Optional[str]:
        """Dictionary lookup form: a single word or a whole phrase."""
        word = word.lower()
        if _WORD_KEYWORD_RE.fullmatch(word):
            return self.token_hit(word)
        return word if any(word == p for p, _ in self.phrases) else None


PATTERN_SETS:  Dict[str, KeywordSet] = {k: KeywordSet.compile(v) for k, v in PATTERN_KEYWORDS.items()}
TOXICITY_SETS: Dict[str, KeywordSet] = {k: KeywordSet.compile(v) for k, v in TOXICITY_KEYWORDS.items()}

_INDEX_CACHE: Dict[Tuple[str, Optional[str]], Dict[str, KeywordSet]] = {}


def keyword_index(taxonomy: Taxonomy, cultural_context: Optional[str] = None) -> Dict[str, KeywordSet]:
    """dimension -> KeywordSet in declaration order, cached per taxonomy and culture."""
    key = (taxonomy.name, cultural_context)
    if key not in _INDEX_CACHE:
        _INDEX_CACHE[key] = {
            intent.value: KeywordSet.compile(taxonomy.keywords_for(intent, cultural_context))
            for intent in taxonomy.intents
        }
    return _INDEX_CACHE[key]


# ── INTENT VECTORS ───────────────────────────────────────────

def compute_confidence(scores: Dict[str, float], dominant_score: float) -> float:
    """
    Used for both messages and segments.
    0.2 when nothing stands out; otherwise blends the dominant score with
    its spread over the mean (a spread of 0.3 or more saturates).
    """
    if dominant_score < LOW_CONFIDENCE or not scores:
        return LOW_CONFIDENCE
    mean   = sum(scores.values()) / len(scores)
    spread = min((dominant_score - mean) / SPREAD_SATURATION, 1.0)
    return min(max(dominant_score * 0.6 + spread * 0.4, 0.0), 1.0)


def build_intent_vector(scores: Dict[str, float], threshold: float = 0.3) -> IntentVector:
    """Dominant = highest score above threshold; ties go to the first dimension."""
    clamped = {dim: min(max(float(s), 0.0), 1.0) for dim, s in scores.items()}
    dominant, best = None, 0.0
    for dim, score in clamped.items():
        if dominant is None or score > best:
            dominant, best = dim, score
    return IntentVector(
        scores          = clamped,
        dominant_intent = dominant if best > threshold else None,
        confidence      = compute_confidence(clamped, best),
    )


def aggregate_intents(
    vectors:    Iterable[Optional[IntentVector]],
    dimensions: Optional[Sequence[str]] = None,
    threshold:  float                   = 0.3,
) -> IntentVector:
    """Mean of every available vector, re-dominated. Missing vectors are skipped."""
    present = [v for v in vectors if v is not None]
    dims = list(dimensions) if dimensions else []
    if not dims:
        for v in present:
            for dim in v.scores:
                if dim not in dims:
                    dims.append(dim)
    if not present:
        return build_intent_vector({dim: 0.0 for dim in dims}, threshold)
    sums = {dim: 0.0 for dim in dims}
    for v in present:
        for dim in dims:
            sums[dim] += v.get(dim)
    return build_intent_vector({dim: total / len(present) for dim, total in sums.items()}, threshold)


def message_intents(messages: Iterable[CanonicalMessage]) -> List[Optional[IntentVector]]:
    return [m.lexical.intents if m.lexical else None for m in messages]


# ── PATTERNS & TOXICITY ──────────────────────────────────────

def detect_patterns(text: str, normalized: str, tokens: Sequence[str]) -> LinguisticPatterns:

    def has(name: str) -> bool:
        return PATTERN_SETS[name].matches(tokens, normalized)

    def token_has(name: str) -> bool:
        return any(PATTERN_SETS[name].token_hit(t) for t in tokens)

    return LinguisticPatterns(
        is_question          = '?' in normalized or token_has('question'),
        is_greeting          = has('greeting'),
        is_acknowledgment    = 0 < len(tokens) <= 3 and token_has('acknowledgment'),
        has_time_sensitivity = token_has('time_sensitive'),
        has_negation         = token_has('negation') or "n't" in normalized,
        has_hedging          = token_has('hedging'),
        has_conditional      = token_has('conditional'),
        has_emphasis         = _has_emphasis(text),
        has_endearment       = token_has('endearment'),
    )


def _has_emphasis(text: str) -> bool:
    if '!' in text or _MULTI_PUNCT_RE.search(text):
        return True
    return any(len(word) > 3 and word.isupper() for word in text.split())


def detect_toxicity(tokens: Sequence[str], normalized: str) -> ToxicityFlags:
    matched = tuple(name for name, kws in TOXICITY_SETS.items() if kws.matches(tokens, normalized))
    if not matched:
        severity = 'none'
    elif CRITICAL_TOXICITY.intersection(matched):
        severity = 'critical'
    elif len(matched) == 1:
        severity = 'low'
    elif len(matched) <= 3:
        severity = 'medium'
    else:
        severity = 'high'
    return ToxicityFlags(
        **{f"has_{name}": name in matched for name in TOXICITY_KEYWORDS},
        severity         = severity,
        matched_patterns = matched,
    )


# ── CULTURAL CONTEXT ─────────────────────────────────────────

def detect_cultural_context(messages: Sequence[CanonicalMessage]) -> Optional[str]:
    """
    Name of the first cultural variant whose keywords appear in at least 5%
    of the first 100 messages, or None.
    """
    sample = list(messages[:CULTURE_SAMPLE_SIZE])
    if not sample:
        return None
    for context, keywords in _variant_sets().items():
        hits = sum(
            1 for m in sample
            if keywords.matches(m.tokens, m.normalized_text or m.text.lower())
        )
        if hits / len(sample) >= CULTURE_MIN_SHARE:
            logger.info(f"Cultural context detected: {context} ({hits}/{len(sample)} messages)")
            return context
    return None


def _variant_sets() -> Dict[str, KeywordSet]:
    words: Dict[str, List[str]] = {}
    for taxonomy in registered_taxonomies().values():
        for context in taxonomy.cultural_variants:
            words.setdefault(context, []).extend(taxonomy.variant_keywords(context))
    return {context: KeywordSet.compile(kws) for context, kws in words.items()}


def resolve_cultural_context(
    messages: Sequence[CanonicalMessage],
    config:   Optional[LexicalConfig] = None,
) -> Optional[str]:
    config = config or LexicalConfig()
    if config.cultural_context:
        return config.cultural_context
    if config.detect_culture:
        return detect_cultural_context(messages)
    return None


# ── ANALYSIS ─────────────────────────────────────────────────

def analyze_lexical(
    message:           CanonicalMessage,
    taxonomy:          Optional[Taxonomy]      = None,
    config:            Optional[LexicalConfig] = None,
    cultural_context:  Optional[str]           = None,
    dictionary                                 = None,
) -> LexicalAnalysis:
    """Lexical analysis of one message. dictionary is an optional DictionaryService."""
    config   = config or LexicalConfig()
    taxonomy = taxonomy or get_taxonomy(config.taxonomy)
    index    = keyword_index(taxonomy, cultural_context)
    tokens   = message.tokens
    text     = message.normalized_text

    totals:  Dict[str, float]        = {dim: 0.0 for dim in index}
    matches: List[KeywordMatch]      = []
    matched_tokens: set              = set()

    for dim, kws in index.items():
        words, positions = [], []
        for pos, token in enumerate(tokens):
            hit = kws.token_hit(token)
            if hit:
                words.append(hit)
                positions.append(pos)
                matched_tokens.add(pos)
        if words:
            totals[dim] += len(words)
            matches.append(KeywordMatch(dim, tuple(dict.fromkeys(words)), tuple(positions), 'keyword'))

        phrases = kws.phrase_hits(text)
        if phrases:
            totals[dim] += len(phrases) * config.phrase_weight
            matches.append(KeywordMatch(
                dim, tuple(p for p, _ in phrases), tuple(off for _, off in phrases), 'phrase',
            ))

    assisted = False
    if dictionary is not None:
        try:
            extra, extra_matches = _dictionary_matches(tokens, matched_tokens, index, dictionary)
        except Exception as e:
            logger.warning(f"Dictionary lookup failed for {message.id}: {e}; keyword matching only")
        else:
            for dim, weight in extra.items():
                totals[dim] += weight * config.dictionary_weight
            matches.extend(extra_matches)
            assisted = bool(extra_matches)

    scores = {dim: min(total / config.match_cap, 1.0) for dim, total in totals.items()}

    return LexicalAnalysis(
        intents             = build_intent_vector(scores, config.detection_threshold),
        patterns            = detect_patterns(message.text, text, tokens),
        keyword_matches     = tuple(matches),
        toxicity            = detect_toxicity(tokens, text),
        taxonomy            = taxonomy.name,
        cultural_context    = cultural_context,
        dictionary_assisted = assisted,
    )


def _dictionary_matches(tokens, matched_tokens, index, dictionary):
    """Synonym hits for tokens no keyword matched. Each token counts once per dimension."""
    if not dictionary.available:
        return {}, []
    counts: Dict[str, float]          = {}
    found:  Dict[str, List[str]]      = {}
    where:  Dict[str, List[int]]      = {}
    for pos, token in enumerate(tokens):
        if pos in matched_tokens or len(token) < DICTIONARY_MIN_TOKEN:
            continue
        synonyms = dictionary.synonyms(token)
        if not synonyms:
            continue
        for dim, kws in index.items():
            if any(kws.contains(syn) for syn in synonyms):
                counts[dim] = counts.get(dim, 0.0) + 1.0
                found.setdefault(dim, []).append(token)
                where.setdefault(dim, []).append(pos)
    matches = [
        KeywordMatch(dim, tuple(dict.fromkeys(found[dim])), tuple(where[dim]), 'dictionary')
        for dim in counts
    ]
    return counts, matches


def analyze_lexical_batch(
    messages:          Sequence[CanonicalMessage],
    config:            Optional[LexicalConfig]      = None,
    dictionary                                      = None,
    cultural_context:  Optional[str]                = None,
    batch_size:        int                          = 500,
    progress_cb:       Optional[Callable]           = None,
    cancel:            Optional[CancellationToken]  = None,
) -> List[CanonicalMessage]:
    """
    Attach a LexicalAnalysis to every message. Returns new message records.
    cultural_context=None resolves it from config (explicit value or detection).
    """
    config   = config or LexicalConfig()
    taxonomy = get_taxonomy(config.taxonomy)
    if cultural_context is None:
        cultural_context = resolve_cultural_context(messages, config)

    total = len(messages)
    out: List[CanonicalMessage] = []
    for start in range(0, total, batch_size):
        check(cancel, 'lexical analysis')
        for msg in messages[start:start + batch_size]:
            out.append(replace(msg, lexical=analyze_lexical(
                msg, taxonomy, config, cultural_context, dictionary,
            )))
        if progress_cb:
            progress_cb(min(start + batch_size, total), total, "Scoring intents")

    assisted = sum(1 for m in out if m.lexical.dictionary_assisted)
    logger.info(
        f"Lexical analysis complete: {total} messages, taxonomy={taxonomy.name}, "
        f"culture={cultural_context or 'none'}, dictionary-assisted={assisted}"
    )
    return out


def dominant_distribution(messages: Iterable[CanonicalMessage]) -> Dict[str, int]:
    """How often each dimension was the dominant intent."""
    counts: Dict[str, int] = {}
    for m in messages:
        if m.lexical and m.lexical.intents.dominant_intent:
            dim = m.lexical.intents.dominant_intent
            counts[dim] = counts.get(dim, 0) + 1
    return counts


def mean_confidence(messages: Iterable[CanonicalMessage]) -> float:
    values = [m.lexical.intents.confidence for m in messages if m.lexical]
    return statistics.fmean(values) if values else 0.0
