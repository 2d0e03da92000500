"""
tests/test_parsers.py
Unit tests for the WhatsApp and JSON parsers.
Generates synthetic exports, no real messages needed.
"""

import json
from datetime import datetime

import pytest

from semantic_engine.parsers import detect_format, parse_file
from semantic_engine.parsers.json_parser import JSONChatError, parse_json_data, parse_json_text
from semantic_engine.parsers.whatsapp_parser import (
    BOM_UTF16_LE,
    detect_date_format,
    is_system_message,
    parse_timestamp,
    parse_whatsapp_file,
    parse_whatsapp_text,
)


# ── FIXTURE: Synthetic exports ───────────────────────────────

ANDROID_EXPORT = """12/01/2024, 09:14 - Messages and calls are end-to-end encrypted. No one outside of this chat can read them.
12/01/2024, 09:15 - Alice: Morning team
12/01/2024, 09:16 - Bob: Hi!
second line
12/01/2024, 09:17 - Bob: <Media omitted>
12/01/2024, 09:18 - Alice added Carol
13/01/2024, 10:00 - Alice: done
"""

IOS_EXPORT = (
    "\u200e[1/13/24, 9:15:30 PM] Alice: hi\n"
    "[1/13/24, 9:16:00 PM] Bob: time is 10: 30\n"
    "[1/14/24, 12:05:00 AM] Bob: late\n"
)

JSON_EXPORT = {
    "chatId": "team-chat",
    "exportedAt": "2024-01-14T10:00:00Z",
    "messages": [
        {"sender": "Alice", "text": "Hello", "timestamp": "2024-01-12T09:15:00"},
        {"sender": "Message read by Bob", "text": "", "timestamp": "2024-01-12T09:16:00"},
        {"text": "  Hi Alice  ", "timestamp": 1705051020000},
        {"sender": "Alice", "text": "", "timestamp": "2024-01-12T09:18:00"},
        {"sender": "Alice", "text": None},
        "not a message",
    ],
}


@pytest.fixture
def export_dir(tmp_path):
    (tmp_path / 'WhatsApp Chat.txt').write_text(ANDROID_EXPORT, encoding='utf-8')
    (tmp_path / 'team.json').write_text(json.dumps(JSON_EXPORT), encoding='utf-8')
    return tmp_path


# ── WHATSAPP ─────────────────────────────────────────────────

class TestWhatsAppParser:

    def test_android_messages(self):
        msgs, meta = parse_whatsapp_text(ANDROID_EXPORT, chat_id="team")
        assert [(m.sender, m.text) for m in msgs] == [
            ("Alice", "Morning team"),
            ("Bob", "Hi!\nsecond line"),
            ("Alice", "done"),
        ]
        assert msgs[0].timestamp == datetime(2024, 1, 12, 9, 15)
        assert msgs[-1].timestamp == datetime(2024, 1, 13, 10, 0)
        assert meta.source == 'whatsapp'
        assert meta.participants == ["Alice", "Bob"]
        assert meta.start_date == datetime(2024, 1, 12, 9, 15)
        assert meta.chat_id == "team"

    def test_ios_month_first_with_meridiem(self):
        msgs, _ = parse_whatsapp_text(IOS_EXPORT)
        assert msgs[0].timestamp == datetime(2024, 1, 13, 21, 15, 30)
        assert msgs[1].text == "time is 10: 30"
        assert msgs[2].timestamp == datetime(2024, 1, 14, 0, 5)

    def test_en_dash_separator(self):
        msgs, _ = parse_whatsapp_text("12/01/2024, 09:15 – Alice: hi\n")
        assert msgs[0].sender == "Alice"

    def test_empty_export(self):
        msgs, meta = parse_whatsapp_text("")
        assert msgs == []
        assert meta.start_date is None

    def test_utf16_file(self, tmp_path):
        path = tmp_path / 'chat.txt'
        path.write_bytes(BOM_UTF16_LE + ANDROID_EXPORT.encode('utf-16-le'))
        msgs, meta = parse_whatsapp_file(path)
        assert len(msgs) == 3
        assert meta.chat_id == "chat"

    def test_utf8_bom_file(self, tmp_path):
        path = tmp_path / 'chat.txt'
        path.write_text(ANDROID_EXPORT, encoding='utf-8-sig')
        assert len(parse_whatsapp_file(path)[0]) == 3

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            parse_whatsapp_file(tmp_path / 'missing.txt')


class TestWhatsAppHelpers:

    def test_detect_date_format(self):
        assert detect_date_format(["1/2/24, 10:00 - A: x"]) == 'DMY'
        assert detect_date_format(["3/25/24, 10:00 - A: x"]) == 'MDY'
        assert detect_date_format(["25/3/24, 10:00 - A: x", "3/25/24, 10:00 - A: x"]) == 'DMY'
        assert detect_date_format(["no headers here"]) == 'DMY'

    def test_parse_timestamp(self):
        assert parse_timestamp(('5', '1', '24', '12', '30', None, 'pm')) == datetime(2024, 1, 5, 12, 30)
        assert parse_timestamp(('5', '1', '24', '12', '30', None, 'AM')) == datetime(2024, 1, 5, 0, 30)
        assert parse_timestamp(('1', '5', '2024', '7', '00', '15', None), 'MDY') == datetime(2024, 1, 5, 7, 0, 15)

    def test_invalid_date_is_none(self):
        assert parse_timestamp(('31', '02', '2024', '10', '00', None, None)) is None

    @pytest.mark.parametrize("text", [
        "<Media omitted>",
        "This message was deleted",
        "Missed voice call",
        "image omitted",
        "Messages and calls are end-to-end encrypted. Tap to learn more.",
    ])
    def test_system_messages(self, text):
        assert is_system_message(text) is True

    def test_regular_message(self):
        assert is_system_message("the image was omitted from the deck") is False


# ── JSON ─────────────────────────────────────────────────────

class TestJsonParser:

    def test_object_export(self):
        msgs, meta = parse_json_data(JSON_EXPORT)
        assert [(m.sender, m.text) for m in msgs] == [("Alice", "Hello"), ("Bob", "Hi Alice")]
        assert msgs[1].timestamp == 1705051020000
        assert meta.source == 'json'
        assert meta.chat_id == "team-chat"
        assert meta.participants == ["Alice", "Bob"]

    def test_list_export(self):
        msgs, _ = parse_json_data([{"sender": "A", "text": "x", "timestamp": 1}])
        assert len(msgs) == 1

    def test_missing_sender_without_receipt(self):
        msgs, _ = parse_json_data([{"text": "who am i"}])
        assert msgs[0].sender == "Unknown"

    def test_receipt_not_used_with_several_senders(self):
        data = [
            {"sender": "Alice", "text": "a"},
            {"sender": "Carol", "text": "c"},
            {"sender": "Message read by Bob", "text": ""},
            {"text": "anon"},
        ]
        msgs, _ = parse_json_data(data)
        assert msgs[-1].sender == "Unknown"

    def test_invalid_json(self):
        with pytest.raises(JSONChatError):
            parse_json_text("{not json")

    def test_wrong_shape(self):
        with pytest.raises(JSONChatError):
            parse_json_data("just a string")


# ── DISPATCH ─────────────────────────────────────────────────

class TestParseFile:

    def test_detect_format(self, export_dir):
        assert detect_format(export_dir / 'team.json') == 'json'
        assert detect_format(export_dir / 'WhatsApp Chat.txt') == 'whatsapp'

    def test_auto(self, export_dir):
        msgs, meta = parse_file(export_dir / 'team.json')
        assert meta.source == 'json'
        assert meta.chat_id == 'team'
        msgs, meta = parse_file(export_dir / 'WhatsApp Chat.txt')
        assert meta.source == 'whatsapp'
        assert len(msgs) == 3

    def test_forced_format(self, export_dir):
        with pytest.raises(JSONChatError):
            parse_file(export_dir / 'WhatsApp Chat.txt', 'json')

    def test_unknown_format(self, export_dir):
        with pytest.raises(ValueError):
            parse_file(export_dir / 'team.json', 'xml')
