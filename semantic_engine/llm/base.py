"""
semantic_engine/llm/base.py
Abstract base class for narrative adapters.
To add a new backend: subclass NarrativeAdapter and implement generate().
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class NarrativeResponse:
    summary:       str
    insights:      List[str]  = field(default_factory=list)
    model_used:    str        = ''
    raw_response:  str        = ''      # Debugging only, never persisted


class NarrativeAdapter(ABC):
    """
    All narrative backends implement this interface.
    The engine hands over a text-free analysis summary and gets back a
    NarrativeResponse. The caller never knows which backend is running.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Returns True if the backend is reachable and ready.
        Called before generation so the caller can fail fast and skip
        the narrative step.
        """
        ...

    @abstractmethod
    def generate(self, summary: Dict[str, Any]) -> Optional[NarrativeResponse]:
        """
        Write a narrative for one conversation summary.
        Returns None on backend failure.
        Never raises: catch internally and return None.
        """
        ...

    def build_prompt(self, summary: Dict[str, Any]) -> str:
        """
        Shared prompt builder. The summary holds segment statistics and
        critical moments only; message text never reaches a model.
        """
        return (
            "You are a communication-dynamics analyst. "
            "Below is a structured, deterministic analysis of a chat "
            "conversation: segments with intent scores, participation "
            "figures, and detected critical moments. No message text is "
            "included.\n\n"
            f"ANALYSIS:\n{json.dumps(summary, indent=2, default=str)[:6000]}\n\n"
            "Respond ONLY with a valid JSON object. No markdown, no explanation.\n\n"
            "{\n"
            '  "summary": "3-5 sentence plain English story of how the conversation evolved",\n'
            '  "insights": ["short actionable observation", "..."]\n'
            "}\n\n"
            "Base every statement on the figures given. Do not invent events, "
            "quotes or motives. Scores are keyword-derived signals, not "
            "psychological assessments."
        )
