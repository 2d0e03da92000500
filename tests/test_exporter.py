"""
tests/test_exporter.py
SQLite persistence: schema, rows, re-export overwrite, readers.
"""

import sqlite3

from semantic_engine.exporters.sqlite_exporter import (
    SCHEMA_VERSION,
    conversation_key,
    export,
    last_run,
    list_conversations,
    load_conversation,
)
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.pipeline import result_to_dict


def _count(db, table):
    conn = sqlite3.connect(str(db))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class TestSQLiteExporter:

    def test_export_creates_db(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        cid = export(db, team_result, run_label='unit')
        assert cid == 'team'
        assert db.exists()

    def test_rows_queryable(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result)
        assert _count(db, 'messages') == 7
        assert _count(db, 'segments') == 2
        evo = team_result.evolution
        assert _count(db, 'critical_moments') == (
            len(evo.escalations) + len(evo.breakthroughs) + len(evo.resolutions)
        )

        conn = sqlite3.connect(str(db))
        try:
            row = conn.execute(
                "SELECT sender, segment_id, is_response FROM messages WHERE position = 1"
            ).fetchone()
        finally:
            conn.close()
        assert row == ("Bob", team_result.segments[0].id, 1)

    def test_reexport_overwrites(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result)
        export(db, team_result)
        assert _count(db, 'conversations') == 1
        assert _count(db, 'messages') == 7
        assert _count(db, 'engine_meta') == 2

    def test_explicit_conversation_id(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        assert export(db, team_result, conversation_id='custom') == 'custom'
        assert load_conversation(db, 'custom') is not None


class TestReaders:

    def test_load_round_trips_contract(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result)
        assert load_conversation(db, 'team') == result_to_dict(team_result)

    def test_list_conversations(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result)
        rows = list_conversations(db)
        assert len(rows) == 1
        assert rows[0]['participants'] == ["Alice", "Bob"]
        assert rows[0]['health_score'] == team_result.evolution.health_score
        assert rows[0]['source'] == 'json'

    def test_last_run(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result, run_label='nightly')
        meta = last_run(db)
        assert meta['run_label'] == 'nightly'
        assert meta['schema_version'] == SCHEMA_VERSION
        assert meta['message_count'] == 7

    def test_missing_db(self, tmp_path):
        db = tmp_path / 'nope.db'
        assert load_conversation(db, 'x') is None
        assert list_conversations(db) == []
        assert last_run(db) is None

    def test_unknown_conversation(self, team_result, tmp_path):
        db = tmp_path / 'engine.db'
        export(db, team_result)
        assert load_conversation(db, 'other') is None


class TestConversationKey:

    def test_prefers_chat_id(self, team_result):
        assert conversation_key(team_result) == 'team'

    def test_hash_without_chat_id(self, team_result):
        anon = PipelineResult(
            messages  = team_result.messages,
            segments  = team_result.segments,
            evolution = team_result.evolution,
            metadata  = {**team_result.metadata, 'conversation': {'chat_id': ''}},
        )
        key = conversation_key(anon)
        assert key.startswith('conv_')
        assert key == conversation_key(anon)
