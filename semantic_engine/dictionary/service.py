"""
semantic_engine/dictionary/service.py
Optional dictionary / thesaurus collaborator for the lexical layer.

To add a new backend: subclass DictionaryService and implement
init(), close() and _lookup(). The lexical analyzer only calls
synonyms(); it never knows which backend is running.

Lifecycle: constructed explicitly and injected. init() is lazy and runs
at most once; a failed init marks the service unavailable and is not
retried until close() resets it. Callers treat any exception from a
dictionary as "no dictionary" and fall back to pure keyword matching.

WordNetDictionary uses NLTK's WordNet corpus. The corpus is a separate
download:
    python -m nltk.downloader wordnet
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# {part_of_speech: [{"meaning": str, "synonyms": [str, ...]}, ...]}
Entry = Dict[str, List[Dict[str, object]]]


class DictionaryUnavailable(RuntimeError):
    """The backend could not be initialized."""


class DictionaryService(ABC):

    def __init__(self):
        self._lock   = threading.Lock()
        self._ready  = False
        self._failed: Optional[str] = None
        self._cache: Dict[str, Optional[Entry]] = {}

    # ── LIFECYCLE ────────────────────────────────────────────
    @abstractmethod
    def init(self) -> None:
        """Load the backend. Raise on failure."""
        ...

    def close(self) -> None:
        with self._lock:
            self._ready  = False
            self._failed = None
            self._cache.clear()

    def ensure_ready(self) -> bool:
        """Initialize once. Returns availability; never raises."""
        with self._lock:
            if self._ready:
                return True
            if self._failed is not None:
                return False
            try:
                self.init()
                self._ready = True
                logger.info(f"{type(self).__name__} initialized")
            except Exception as e:
                self._failed = str(e) or type(e).__name__
                logger.warning(f"{type(self).__name__} unavailable: {self._failed}")
            return self._ready

    @property
    def available(self) -> bool:
        return self.ensure_ready()

    @property
    def failure_reason(self) -> Optional[str]:
        return self._failed

    # ── LOOKUP ───────────────────────────────────────────────
    def lookup(self, word: str) -> Optional[Entry]:
        """Entry for a lowercased word, or None if unknown. Raises DictionaryUnavailable."""
        if not self.ensure_ready():
            raise DictionaryUnavailable(self._failed or 'not initialized')
        key = word.lower()
        if key not in self._cache:
            self._cache[key] = self._lookup(key)
        return self._cache[key]

    def synonyms(self, word: str) -> List[str]:
        entry = self.lookup(word)
        if not entry:
            return []
        seen: List[str] = []
        for senses in entry.values():
            for sense in senses:
                for syn in sense.get('synonyms', []):
                    syn = str(syn).lower()
                    if syn != word.lower() and syn not in seen:
                        seen.append(syn)
        return seen

    @abstractmethod
    def _lookup(self, word: str) -> Optional[Entry]:
        ...


class WordNetDictionary(DictionaryService):

    POS_NAMES = {
        'n': 'noun',
        'v': 'verb',
        'a': 'adjective',
        's': 'adjective',
        'r': 'adverb',
    }

    def __init__(self, allow_download: bool = False, max_senses: int = 5):
        super().__init__()
        self.allow_download = allow_download
        self.max_senses     = max_senses
        self._wordnet       = None

    def init(self) -> None:
        import nltk
        try:
            nltk.data.find('corpora/wordnet')
        except LookupError:
            if not self.allow_download:
                raise DictionaryUnavailable(
                    "WordNet corpus not found. Run: python -m nltk.downloader wordnet"
                )
            logger.info("Downloading WordNet corpus, this may take a minute...")
            if not nltk.download('wordnet', quiet=True):
                raise DictionaryUnavailable("WordNet download failed")

        from nltk.corpus import wordnet
        wordnet.ensure_loaded()
        self._wordnet = wordnet

    def close(self) -> None:
        super().close()
        self._wordnet = None

    def _lookup(self, word: str) -> Optional[Entry]:
        synsets = self._wordnet.synsets(word.replace(' ', '_'))
        if not synsets:
            return None
        entry: Entry = {}
        for synset in synsets[: self.max_senses]:
            pos = self.POS_NAMES.get(synset.pos(), synset.pos())
            entry.setdefault(pos, []).append({
                'meaning':  synset.definition(),
                'synonyms': [name.replace('_', ' ') for name in synset.lemma_names()],
            })
        return entry
