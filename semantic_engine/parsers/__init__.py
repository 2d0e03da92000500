from pathlib import Path
from typing import List, Tuple

from semantic_engine.models.record import ConversationMetadata, RawMessage
from semantic_engine.parsers.json_parser import JSONChatError, parse_json_file, parse_json_text
from semantic_engine.parsers.whatsapp_parser import parse_whatsapp_file, parse_whatsapp_text

FORMATS = ('auto', 'whatsapp', 'json')


def detect_format(path: Path) -> str:
    return 'json' if Path(path).suffix.lower() == '.json' else 'whatsapp'


def parse_file(path: Path, fmt: str = 'auto') -> Tuple[List[RawMessage], ConversationMetadata]:
    """Dispatch to the parser for fmt ('auto' picks by file extension)."""
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format {fmt!r}; expected one of {FORMATS}")
    if fmt == 'auto':
        fmt = detect_format(path)
    if fmt == 'json':
        return parse_json_file(path)
    return parse_whatsapp_file(path)


__all__ = [
    "FORMATS", "JSONChatError", "detect_format", "parse_file",
    "parse_json_file", "parse_json_text", "parse_whatsapp_file", "parse_whatsapp_text",
]
