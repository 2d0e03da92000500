"""
semantic_engine/exporters/sqlite_exporter.py
Persists PipelineResults to SQLite.

SCHEMA DESIGN NOTES:
- conversations is keyed by conversation_id and keeps the full JSON
  contract (result_json) so load_conversation() round-trips exactly
- messages / segments / critical_moments are the queryable layer
- engine_meta logs every export run with schema and engine versions
- Re-exporting a conversation id replaces its rows (INSERT OR REPLACE
  plus a delete of the old child rows) inside one transaction
- All timestamps stored as INTEGER milliseconds (Unix epoch * 1000)
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from semantic_engine import __version__
from semantic_engine.models.timeline import PipelineResult
from semantic_engine.pipeline import result_to_dict
from semantic_engine.transform.canonical import hash32, to_base36

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'


def _ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def conversation_key(result: PipelineResult) -> str:
    """chat_id when the source supplied one, else a hash of the message ids."""
    chat_id = result.metadata.get('conversation', {}).get('chat_id')
    if chat_id:
        return chat_id
    ids = '_'.join(m.id for m in result.messages[:1] + result.messages[-1:])
    return f"conv_{to_base36(hash32(ids or 'empty'))}"


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")   # Safe concurrent reads
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def export(
    db_path:          Path,
    result:           PipelineResult,
    conversation_id:  Optional[str] = None,
    run_label:        str           = '',
) -> str:
    """
    Write one analyzed conversation. Safe to call repeatedly: the same
    conversation_id overwrites its previous rows. Returns the conversation id.
    """
    conversation_id = conversation_id or conversation_key(result)

    conn = connect(Path(db_path))
    try:
        create_schema(conn)
        _clear_conversation(conn, conversation_id)
        _write_conversation(conn, conversation_id, result)
        _write_messages(conn, conversation_id, result)
        _write_segments(conn, conversation_id, result)
        _write_moments(conn, conversation_id, result)
        _write_meta(conn, conversation_id, result, run_label)
        conn.commit()
        logger.info(
            f"SQLite export complete → {db_path}\n"
            f"  Conversation: {conversation_id} | Messages: {len(result.messages)} | "
            f"Segments: {len(result.segments)}"
        )
    except Exception as e:
        conn.rollback()
        logger.error(f"SQLite export failed: {e}")
        raise
    finally:
        conn.close()

    return conversation_id


# ── SCHEMA ───────────────────────────────────────────────────

def create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS engine_meta (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            run_at          TEXT    NOT NULL,
            run_label       TEXT,
            schema_version  TEXT    NOT NULL,
            engine_version  TEXT    NOT NULL,
            conversation_id TEXT,
            message_count   INTEGER DEFAULT 0,
            segment_count   INTEGER DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS conversations (
            conversation_id         TEXT PRIMARY KEY,
            chat_id                 TEXT,
            source                  TEXT,
            taxonomy                TEXT,
            cultural_context        TEXT,
            participants            TEXT,    -- JSON array
            message_count           INTEGER DEFAULT 0,
            segment_count           INTEGER DEFAULT 0,
            start_ms                INTEGER,
            end_ms                  INTEGER,
            health_score            INTEGER,
            conversation_health     TEXT,
            overall_directionality  TEXT,
            layer_errors            TEXT,    -- JSON object
            result_json             TEXT NOT NULL,
            exported_at             TEXT
        );

        CREATE TABLE IF NOT EXISTS messages (
            conversation_id     TEXT    NOT NULL,
            message_id          TEXT    NOT NULL,
            position            INTEGER NOT NULL,
            timestamp_ms        INTEGER NOT NULL,
            sender              TEXT,
            text                TEXT,
            segment_id          TEXT,
            dominant_intent     TEXT,
            confidence          REAL,
            intent_scores       TEXT,    -- JSON object
            toxicity_severity   TEXT,
            is_response         INTEGER DEFAULT 0,
            response_latency    REAL,
            is_after_silence    INTEGER DEFAULT 0,
            PRIMARY KEY (conversation_id, message_id),
            FOREIGN KEY (conversation_id) REFERENCES conversations(conversation_id)
        );

        CREATE TABLE IF NOT EXISTS segments (
            conversation_id        TEXT    NOT NULL,
            segment_id             TEXT    NOT NULL,
            position               INTEGER NOT NULL,
            start_ms               INTEGER,
            end_ms                 INTEGER,
            message_count          INTEGER,
            boundary_type          TEXT,
            dominant_speaker       TEXT,
            dominant_intent        TEXT,
            aggregate_intent       TEXT,    -- JSON object
            participation_balance  REAL,
            alignment_score        REAL,
            topic_coherence        REAL,
            has_resolution         INTEGER DEFAULT 0,
            has_escalation         INTEGER DEFAULT 0,
            has_breakthrough       INTEGER DEFAULT 0,
            PRIMARY KEY (conversation_id, segment_id),
            FOREIGN KEY (conversation_id) REFERENCES conversations(conversation_id)
        );

        CREATE TABLE IF NOT EXISTS critical_moments (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id  TEXT    NOT NULL,
            segment_id       TEXT,
            timestamp_ms     INTEGER,
            type             TEXT,
            severity         TEXT,
            reason           TEXT,
            FOREIGN KEY (conversation_id) REFERENCES conversations(conversation_id)
        );

        CREATE INDEX IF NOT EXISTS idx_msg_ts      ON messages(conversation_id, timestamp_ms);
        CREATE INDEX IF NOT EXISTS idx_msg_sender  ON messages(sender);
        CREATE INDEX IF NOT EXISTS idx_seg_pos     ON segments(conversation_id, position);
        CREATE INDEX IF NOT EXISTS idx_moment_type ON critical_moments(conversation_id, type);
    """)


# ── WRITERS ──────────────────────────────────────────────────

def _clear_conversation(conn: sqlite3.Connection, conversation_id: str) -> None:
    for table in ('messages', 'segments', 'critical_moments'):
        conn.execute(f"DELETE FROM {table} WHERE conversation_id = ?", (conversation_id,))


def _write_conversation(conn: sqlite3.Connection, conversation_id: str, result: PipelineResult) -> None:
    meta = result.metadata
    conv = meta.get('conversation', {})
    evo  = result.evolution
    msgs = result.messages
    conn.execute("""
        INSERT OR REPLACE INTO conversations
        (conversation_id, chat_id, source, taxonomy, cultural_context, participants,
         message_count, segment_count, start_ms, end_ms, health_score,
         conversation_health, overall_directionality, layer_errors,
         result_json, exported_at)
        VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
    """, (
        conversation_id,
        conv.get('chat_id', ''),
        conv.get('source', 'unknown'),
        meta.get('taxonomy'),
        meta.get('cultural_context'),
        json.dumps(meta.get('participants', [])),
        len(msgs),
        len(result.segments),
        msgs[0].timestamp_ms if msgs else None,
        msgs[-1].timestamp_ms if msgs else None,
        evo.health_score if evo else None,
        evo.conversation_health if evo else None,
        evo.overall_directionality if evo else None,
        json.dumps(meta.get('layer_errors', {})),
        json.dumps(result_to_dict(result)),
        datetime.now().isoformat(),
    ))


def _write_messages(conn: sqlite3.Connection, conversation_id: str, result: PipelineResult) -> None:
    rows = []
    for m in result.messages:
        lex = m.lexical
        beh = m.behavioral
        rows.append((
            conversation_id, m.id, m.index, m.timestamp_ms, m.sender, m.text, m.segment_id,
            lex.intents.dominant_intent if lex else None,
            lex.intents.confidence if lex else None,
            json.dumps(lex.intents.scores) if lex else None,
            lex.toxicity.severity if lex else None,
            int(beh.response.is_response) if beh else 0,
            beh.response.response_latency_minutes if beh else None,
            int(beh.silence.is_after_silence) if beh else 0,
        ))
    conn.executemany("""
        INSERT OR REPLACE INTO messages
        (conversation_id, message_id, position, timestamp_ms, sender, text, segment_id,
         dominant_intent, confidence, intent_scores, toxicity_severity,
         is_response, response_latency, is_after_silence)
        VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)
    """, rows)
    logger.debug(f"Wrote {len(rows)} message rows")


def _write_segments(conn: sqlite3.Connection, conversation_id: str, result: PipelineResult) -> None:
    rows = [
        (
            conversation_id, s.id, s.index, _ms(s.start_time), _ms(s.end_time),
            s.message_count, s.boundary_type, s.dominant_speaker,
            s.aggregate_intent.dominant_intent, json.dumps(s.aggregate_intent.scores),
            s.participation_balance, s.alignment_score, s.topic_coherence,
            int(s.has_resolution), int(s.has_escalation), int(s.has_breakthrough),
        )
        for s in result.segments
    ]
    conn.executemany("""
        INSERT OR REPLACE INTO segments
        (conversation_id, segment_id, position, start_ms, end_ms, message_count,
         boundary_type, dominant_speaker, dominant_intent, aggregate_intent,
         participation_balance, alignment_score, topic_coherence,
         has_resolution, has_escalation, has_breakthrough)
        VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
    """, rows)
    logger.debug(f"Wrote {len(rows)} segment rows")


def _write_moments(conn: sqlite3.Connection, conversation_id: str, result: PipelineResult) -> None:
    evo = result.evolution
    if evo is None:
        return
    rows = [
        (conversation_id, m.segment_id, _ms(m.timestamp), m.type, m.severity, m.reason)
        for m in (*evo.escalations, *evo.breakthroughs, *evo.resolutions)
    ]
    conn.executemany("""
        INSERT INTO critical_moments
        (conversation_id, segment_id, timestamp_ms, type, severity, reason)
        VALUES (?,?,?,?,?,?)
    """, rows)
    logger.debug(f"Wrote {len(rows)} critical moment rows")


def _write_meta(
    conn:             sqlite3.Connection,
    conversation_id:  str,
    result:           PipelineResult,
    run_label:        str,
) -> None:
    conn.execute("""
        INSERT INTO engine_meta
        (run_at, run_label, schema_version, engine_version, conversation_id,
         message_count, segment_count)
        VALUES (?,?,?,?,?,?,?)
    """, (
        datetime.now().isoformat(),
        run_label or 'semantic-engine-run',
        SCHEMA_VERSION,
        __version__,
        conversation_id,
        len(result.messages),
        len(result.segments),
    ))


# ── READERS ──────────────────────────────────────────────────

def load_conversation(db_path: Path, conversation_id: str) -> Optional[Dict[str, Any]]:
    """The stored JSON contract for one conversation, or None."""
    db_path = Path(db_path)
    if not db_path.exists():
        return None
    conn = sqlite3.connect(str(db_path))
    try:
        row = conn.execute(
            "SELECT result_json FROM conversations WHERE conversation_id = ?",
            (conversation_id,),
        ).fetchone()
    except sqlite3.OperationalError as e:
        logger.warning(f"load_conversation: {e}")
        return None
    finally:
        conn.close()
    return json.loads(row[0]) if row else None


def list_conversations(db_path: Path) -> List[Dict[str, Any]]:
    """Summary rows for every stored conversation, newest export first."""
    db_path = Path(db_path)
    if not db_path.exists():
        return []
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        rows = conn.execute("""
            SELECT conversation_id, chat_id, source, taxonomy, cultural_context,
                   participants, message_count, segment_count, start_ms, end_ms,
                   health_score, conversation_health, overall_directionality, exported_at
            FROM conversations ORDER BY exported_at DESC
        """).fetchall()
    except sqlite3.OperationalError as e:
        logger.warning(f"list_conversations: {e}")
        return []
    finally:
        conn.close()

    out = []
    for r in rows:
        d = dict(r)
        d['participants'] = json.loads(d['participants'] or '[]')
        out.append(d)
    return out


def last_run(db_path: Path) -> Optional[Dict[str, Any]]:
    db_path = Path(db_path)
    if not db_path.exists():
        return None
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        row = conn.execute("SELECT * FROM engine_meta ORDER BY id DESC LIMIT 1").fetchone()
    except sqlite3.OperationalError:
        return None
    finally:
        conn.close()
    return dict(row) if row else None
