"""
semantic_engine/parsers/whatsapp_parser.py
Parses WhatsApp "Export chat" text files (without media).

Android:  1/1/23, 12:00 PM - John: Hello
iOS:      [1/1/23, 12:00:00 PM] John: Hello

Day/month order is detected from the first lines: DD/MM unless a second
field > 12 proves MM/DD. Lines that do not start a message are appended to
the previous message. Encryption notices, media placeholders and group
events are dropped.

Encoding: a UTF-8 BOM is stripped; UTF-16 exports are detected by BOM;
anything else falls back to utf-8 with errors='replace'.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from semantic_engine.models.record import ConversationMetadata, RawMessage

logger = logging.getLogger(__name__)

BOM_UTF8     = b'\xef\xbb\xbf'
BOM_UTF16_LE = b'\xff\xfe'
BOM_UTF16_BE = b'\xfe\xff'

DETECT_LINES = 50

_DATE = r'(\d{1,2})[/.](\d{1,2})[/.](\d{2,4})'
_TIME = r'(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp]\.?\s?[Mm]\.?)?'

# Android separator is a hyphen or en dash.
ANDROID_RE = re.compile(rf'^{_DATE},?\s+{_TIME}\s*[-–]\s*(.*)$')
IOS_RE     = re.compile(rf'^\[{_DATE},?\s+{_TIME}\]\s*(.*)$')

# iOS exports carry invisible direction marks before the bracket.
_INVISIBLE_RE = re.compile('[\u200e\u200f\u202a-\u202e\ufeff]')

SYSTEM_MESSAGE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r'^Messages and calls are end-to-end encrypted',
        r'^<Media omitted>$',
        r'^This message was deleted\.?$',
        r'^You deleted this message\.?$',
        r'^Missed (voice|video) call',
        r'^(image|video|audio|document|sticker|GIF|Contact card) omitted$',
        r'^location: ',
        r'^Live location shared',
        r'^Waiting for this message',
        r'^<This message was edited>$',
        r'^null$',
    )
]

# Group events arrive without a "Name:" prefix.
SYSTEM_EVENT_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"joined using this group's invite link",
        r'\badded\b',
        r'\bleft$',
        r'\bremoved\b',
        r'changed the subject',
        r"changed this group's icon",
        r'changed the group description',
        r'security code (with .+ )?changed',
        r'created group',
        r'changed their phone number',
        r'end-to-end encrypted',
    )
]


def _read_text(path: Path) -> str:
    raw = path.read_bytes()
    if raw.startswith(BOM_UTF8):
        return raw[len(BOM_UTF8):].decode('utf-8', errors='replace')
    if raw.startswith(BOM_UTF16_LE):
        return raw[len(BOM_UTF16_LE):].decode('utf-16-le', errors='replace')
    if raw.startswith(BOM_UTF16_BE):
        return raw[len(BOM_UTF16_BE):].decode('utf-16-be', errors='replace')
    try:
        return raw.decode('utf-8', errors='strict')
    except UnicodeDecodeError:
        return raw.decode('utf-8', errors='replace')


def is_system_message(text: str) -> bool:
    return any(p.search(text.strip()) for p in SYSTEM_MESSAGE_PATTERNS)


def _match_header(line: str):
    return ANDROID_RE.match(line) or IOS_RE.match(line)


def detect_date_format(lines: List[str]) -> str:
    """'DMY' unless a line within the first DETECT_LINES proves month-first."""
    for line in lines[:DETECT_LINES]:
        m = _match_header(line)
        if not m:
            continue
        first, second = int(m.group(1)), int(m.group(2))
        if first > 12:
            return 'DMY'
        if second > 12:
            return 'MDY'
    return 'DMY'


def parse_timestamp(groups: Tuple, date_format: str = 'DMY') -> Optional[datetime]:
    """Build a datetime from the seven date/time regex groups. None if invalid."""
    a, b, year, hour, minute, second, meridiem = groups
    day, month = (int(a), int(b)) if date_format == 'DMY' else (int(b), int(a))
    year = int(year)
    if year < 100:
        year += 2000
    hour = int(hour)
    if meridiem:
        pm = meridiem.lower().startswith('p')
        if pm and hour != 12:
            hour += 12
        elif not pm and hour == 12:
            hour = 0
    try:
        return datetime(year, month, day, hour, int(minute), int(second or 0))
    except ValueError:
        return None


def _split_sender(body: str) -> Tuple[Optional[str], str]:
    sender, sep, text = body.partition(': ')
    if not sep:
        if body.endswith(':'):
            return body[:-1].strip() or None, ''
        return None, body
    return sender.strip() or None, text


def parse_whatsapp_text(content: str, chat_id: str = '') -> Tuple[List[RawMessage], ConversationMetadata]:
    """
    Parse the text of a WhatsApp export.
    Returns (messages in file order, metadata). Unparseable headers are
    logged and skipped.
    """
    lines = [_INVISIBLE_RE.sub('', l).rstrip('\r') for l in content.split('\n')]
    date_format = detect_date_format(lines)

    messages: List[RawMessage] = []
    current: Optional[dict] = None
    skipped = 0

    def _flush():
        nonlocal skipped
        if current is None:
            return
        text = current['text'].strip()
        if not text or is_system_message(text):
            skipped += 1
            return
        messages.append(RawMessage(timestamp=current['timestamp'], sender=current['sender'], text=text))

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        m = _match_header(stripped)
        if not m:
            if current is not None:
                current['text'] += '\n' + stripped
            continue

        _flush()
        current = None
        ts = parse_timestamp(m.groups()[:7], date_format)
        sender, text = _split_sender(m.group(8))
        if ts is None:
            logger.debug(f"Skipped line with invalid date: {stripped[:40]!r}")
            skipped += 1
            continue
        if sender is None:
            # "date - Alice added Bob" style event without a sender
            if not any(p.search(text) for p in SYSTEM_EVENT_PATTERNS):
                logger.debug(f"Dropped sender-less line: {text[:40]!r}")
            skipped += 1
            continue
        current = {'timestamp': ts, 'sender': sender, 'text': text}
    _flush()

    participants = list(dict.fromkeys(m.sender for m in messages))
    metadata = ConversationMetadata(
        source       = 'whatsapp',
        participants = participants,
        start_date   = messages[0].timestamp if messages else None,
        end_date     = messages[-1].timestamp if messages else None,
        chat_id      = chat_id,
    )
    logger.info(f"Parsed {len(messages)} WhatsApp messages ({date_format}, {skipped} skipped)")
    return messages, metadata


def parse_whatsapp_file(path: Path) -> Tuple[List[RawMessage], ConversationMetadata]:
    """Read and parse a WhatsApp export. OSError propagates to the caller."""
    path = Path(path)
    return parse_whatsapp_text(_read_text(path), chat_id=path.stem)
