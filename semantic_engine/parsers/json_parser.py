"""
semantic_engine/parsers/json_parser.py
Parses generic JSON chat exports.

Accepted shapes:
  {"messages": [{"sender", "text", "timestamp"}, ...], "exportedAt": ...}
  [{"sender", "text", "timestamp"}, ...]

"Message read by <name>" entries are receipts, not messages. Their name is
used for messages whose sender is missing when exactly one other sender
exists. Timestamps are passed through untouched; the transform layer
coerces them.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple

from semantic_engine.models.record import ConversationMetadata, RawMessage

logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'

_READ_RECEIPT_RE = re.compile(r'message read by\s*(.*)', re.IGNORECASE)


class JSONChatError(ValueError):
    """Raised when the input is not a chat export this parser understands."""


def _entries(data: Any) -> List[dict]:
    if isinstance(data, dict):
        data = data.get('messages', [])
    if not isinstance(data, list):
        raise JSONChatError("expected a list of messages or an object with a 'messages' list")
    return [e for e in data if isinstance(e, dict)]


def parse_json_data(data: Any, chat_id: str = '') -> Tuple[List[RawMessage], ConversationMetadata]:
    entries = _entries(data)

    receipt_name: Optional[str] = None
    kept: List[dict] = []
    for entry in entries:
        text   = entry.get('text')
        sender = entry.get('sender') or UNKNOWN
        receipt = _READ_RECEIPT_RE.match(str(sender))
        if receipt:
            receipt_name = receipt.group(1).strip() or receipt_name
            continue
        if not isinstance(text, str) or not text.strip():
            continue
        kept.append(entry)

    named = {str(e.get('sender')) for e in kept if e.get('sender')}
    fill_name = receipt_name if receipt_name and len(named) == 1 else None

    messages = [
        RawMessage(
            timestamp = e.get('timestamp'),
            sender    = e.get('sender') or fill_name or UNKNOWN,
            text      = e['text'].strip(),
        )
        for e in kept
    ]

    participants = list(dict.fromkeys(m.sender for m in messages))
    metadata = ConversationMetadata(
        source       = 'json',
        participants = participants,
        chat_id      = chat_id or (str(data.get('chatId', '')) if isinstance(data, dict) else ''),
    )
    logger.info(f"Parsed {len(messages)} JSON messages ({len(entries) - len(messages)} skipped)")
    return messages, metadata


def parse_json_text(content: str, chat_id: str = '') -> Tuple[List[RawMessage], ConversationMetadata]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise JSONChatError(f"invalid JSON: {e}") from e
    return parse_json_data(data, chat_id)


def parse_json_file(path: Path) -> Tuple[List[RawMessage], ConversationMetadata]:
    path = Path(path)
    return parse_json_text(path.read_text(encoding='utf-8-sig'), chat_id=path.stem)
