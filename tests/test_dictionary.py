"""
tests/test_dictionary.py
Dictionary service lifecycle and the WordNet backend (corpus mocked).
"""

from unittest.mock import MagicMock

import pytest

from semantic_engine.dictionary import DictionaryService, DictionaryUnavailable, WordNetDictionary


class CountingDictionary(DictionaryService):

    def __init__(self, fail=False):
        super().__init__()
        self.fail  = fail
        self.inits = 0

    def init(self):
        self.inits += 1
        if self.fail:
            raise RuntimeError("backend down")

    def _lookup(self, word):
        if word == "quick":
            return {"adjective": [{"meaning": "fast", "synonyms": ["Quick", "fast", "speedy"]}],
                    "adverb":    [{"meaning": "fast", "synonyms": ["fast", "rapidly"]}]}
        return None


def _synset(pos, definition, lemmas):
    s = MagicMock()
    s.pos.return_value = pos
    s.definition.return_value = definition
    s.lemma_names.return_value = lemmas
    return s


class TestLifecycle:

    def test_init_runs_once(self):
        d = CountingDictionary()
        assert d.available is True
        assert d.available is True
        assert d.inits == 1

    def test_failure_is_sticky_until_close(self):
        d = CountingDictionary(fail=True)
        assert d.ensure_ready() is False
        assert d.ensure_ready() is False
        assert d.inits == 1
        assert d.failure_reason == "backend down"
        d.close()
        assert d.failure_reason is None
        d.ensure_ready()
        assert d.inits == 2

    def test_lookup_when_unavailable_raises(self):
        with pytest.raises(DictionaryUnavailable):
            CountingDictionary(fail=True).lookup("quick")


class TestSynonyms:

    def test_deduplicated_lowercase_without_self(self):
        assert CountingDictionary().synonyms("quick") == ["fast", "speedy", "rapidly"]

    def test_unknown_word(self):
        assert CountingDictionary().synonyms("zzz") == []

    def test_lookup_is_cached(self):
        d = CountingDictionary()
        d._lookup = MagicMock(return_value=None)
        d.lookup("Word")
        d.lookup("word")
        d._lookup.assert_called_once_with("word")


class TestWordNet:

    def test_lookup_groups_by_part_of_speech(self, monkeypatch):
        fake = MagicMock()
        fake.synsets.return_value = [
            _synset('v', 'express agreement', ['agree', 'concur']),
            _synset('s', 'in harmony', ['accordant']),
        ]
        d = WordNetDictionary()
        monkeypatch.setattr(d, 'init', lambda: setattr(d, '_wordnet', fake))

        entry = d.lookup("concur")
        assert set(entry) == {'verb', 'adjective'}
        assert d.synonyms("concur") == ["agree", "accordant"]

    def test_multiword_lookup_uses_underscores(self, monkeypatch):
        fake = MagicMock()
        fake.synsets.return_value = []
        d = WordNetDictionary()
        monkeypatch.setattr(d, 'init', lambda: setattr(d, '_wordnet', fake))
        assert d.lookup("look up") is None
        fake.synsets.assert_called_once_with("look_up")

    def test_missing_corpus_is_unavailable(self, monkeypatch):
        import nltk

        def not_found(*args, **kwargs):
            raise LookupError("wordnet")

        monkeypatch.setattr(nltk.data, 'find', not_found)
        d = WordNetDictionary(allow_download=False)
        assert d.ensure_ready() is False
        assert "WordNet corpus not found" in d.failure_reason
