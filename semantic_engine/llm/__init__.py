from semantic_engine.llm.base import NarrativeAdapter, NarrativeResponse
from semantic_engine.llm.ollama_adapter import OllamaNarrativeAdapter

__all__ = ["NarrativeAdapter", "NarrativeResponse", "OllamaNarrativeAdapter"]
