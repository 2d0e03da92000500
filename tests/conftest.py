"""
tests/conftest.py
Shared synthetic conversation fixtures. No real messages.
"""

from datetime import datetime, timedelta

import pytest

from semantic_engine.models.record import ConversationMetadata, RawMessage
from semantic_engine.pipeline import run_pipeline

BASE = datetime(2024, 1, 2, 10, 0)

TEAM_LINES = [
    (0,   "Alice", "Morning team, the launch deadline is tomorrow"),
    (2,   "Bob",   "No, that is a problem. The build is blocked"),
    (3,   "Alice", "Can you escalate the blocker?"),
    (5,   "Bob",   "Not sure, maybe after lunch"),
    (400, "Alice", "Build fixed, yes agreed, sounds good"),
    (402, "Bob",   "Done, thanks! Looks good"),
    (403, "Alice", "Perfect, all set, thank you"),
]


@pytest.fixture
def team_raws():
    return [
        RawMessage(timestamp=BASE + timedelta(minutes=m), sender=s, text=t)
        for m, s, t in TEAM_LINES
    ]


@pytest.fixture
def team_result(team_raws):
    return run_pipeline(team_raws, ConversationMetadata(source="json", chat_id="team"))
