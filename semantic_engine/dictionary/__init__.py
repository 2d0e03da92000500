from semantic_engine.dictionary.service import (
    DictionaryService,
    DictionaryUnavailable,
    WordNetDictionary,
)

__all__ = ["DictionaryService", "DictionaryUnavailable", "WordNetDictionary"]
