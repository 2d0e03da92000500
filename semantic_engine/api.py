"""
semantic_engine/api.py
─────────────────────────────────────────────────────────────────────────────
Semantic Engine: dual-mode API layer

TWO USAGE MODES:
  1. Importable module:
         from semantic_engine.api import EngineAPI
         api = EngineAPI(db_path=Path("engine.db"))
         conversations = api.list_conversations()

  2. FastAPI HTTP server:
         python -m semantic_engine.api            # default: port 8765
         python -m semantic_engine.api --port 9000
         uvicorn semantic_engine.api:app --port 8765

ENDPOINTS:
  GET  /health                       server status and db existence
  POST /analyze                      run the pipeline over posted messages
  GET  /conversations                stored conversation summaries
  GET  /conversations/{id}           stored result contract for one conversation
  GET  /meta                         last export run metadata

CORS: localhost-only. The server binds to 127.0.0.1 by default.
SQL is parameterized only; posted messages are analyzed in-process.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from semantic_engine import __version__
from semantic_engine.config import EngineConfig, load_config
from semantic_engine.errors import SemanticEngineError
from semantic_engine.exporters import sqlite_exporter
from semantic_engine.models.record import ConversationMetadata, RawMessage
from semantic_engine.pipeline import run_pipeline
from semantic_engine.report import build_report, report_to_dict

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class EngineAPI:
    """
    Pure-Python wrapper around an engine database.
    No HTTP layer required; import and call directly.
    """

    def __init__(self, db_path: Path = Path("engine.db"), config: Optional[EngineConfig] = None):
        self.db_path = Path(db_path)
        self.config  = config

    # ── QUERY ─────────────────────────────────────────────────────────────

    def list_conversations(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        limit  = min(max(int(limit), 1), MAX_LIST_LIMIT)
        offset = max(int(offset), 0)
        return sqlite_exporter.list_conversations(self.db_path)[offset:offset + limit]

    def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        return sqlite_exporter.load_conversation(self.db_path, conversation_id)

    def get_meta(self) -> Optional[Dict[str, Any]]:
        return sqlite_exporter.last_run(self.db_path)

    # ── ANALYZE ───────────────────────────────────────────────────────────

    def analyze(
        self,
        raws:      List[RawMessage],
        metadata:  Optional[ConversationMetadata] = None,
        taxonomy:  Optional[str]                  = None,
        persist:   bool                           = True,
        run_label: str                            = "api-analyze",
    ) -> Dict[str, Any]:
        """
        Run the pipeline over raw messages. Persists to db_path when
        persist is set. Returns the conversation id and the text-free report.
        """
        config = self.config or load_config(Path.cwd())
        if taxonomy:
            config = replace(config, lexical=replace(config.lexical, taxonomy=taxonomy))

        logger.info(f"Analyze started | messages={len(raws)} | db={self.db_path if persist else '-'}")
        result = run_pipeline(raws, metadata, config)

        conversation_id = sqlite_exporter.conversation_key(result)
        if persist:
            conversation_id = sqlite_exporter.export(
                db_path   = self.db_path,
                result    = result,
                run_label = run_label,
            )

        summary = {
            "status":          "ok",
            "conversation_id": conversation_id,
            "persisted":       persist,
            "report":          report_to_dict(build_report(result)),
        }
        logger.info(f"Analyze complete: {conversation_id} ({len(result.segments)} segments)")
        return summary


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

class MessageIn(BaseModel):
    sender:    Optional[str] = None
    text:      Optional[str] = None
    timestamp: Any           = None


class AnalyzeRequest(BaseModel):
    messages:  List[MessageIn]
    chat_id:   str           = ""
    source:    str           = "json"
    taxonomy:  Optional[str] = Field(None, pattern="^(business|relationship)$")
    persist:   bool          = True
    run_label: str           = "api-analyze"


def build_app(db_path: Path = Path("engine.db"), config: Optional[EngineConfig] = None) -> FastAPI:
    _api = EngineAPI(db_path=db_path, config=config)

    _app = FastAPI(
        title       = "Semantic Engine API",
        description = "Local API over deterministic conversation analysis",
        version     = __version__,
        docs_url    = "/docs",
        redoc_url   = None,
    )

    _app.add_middleware(
        CORSMiddleware,
        allow_origins     = [
            "http://localhost",
            "http://localhost:8765",
            "http://127.0.0.1",
            "http://127.0.0.1:8765",
            "null",   # file:// origin
        ],
        allow_methods     = ["GET", "POST", "OPTIONS"],
        allow_headers     = ["Content-Type"],
        allow_credentials = False,
    )

    @_app.get("/health", summary="Health check")
    def health():
        return {
            "status":    "ok",
            "db_exists": _api.db_path.exists(),
            "db_path":   str(_api.db_path),
            "version":   __version__,
        }

    @_app.post("/analyze", summary="Analyze a conversation")
    def analyze(req: AnalyzeRequest):
        """
        Run the full pipeline over the posted messages.
        The response carries scores, segments and critical moments only.
        """
        if not req.messages:
            raise HTTPException(status_code=400, detail="messages must not be empty")
        raws = [RawMessage(timestamp=m.timestamp, sender=m.sender, text=m.text) for m in req.messages]
        metadata = ConversationMetadata(source=req.source, chat_id=req.chat_id)
        try:
            return _api.analyze(
                raws,
                metadata  = metadata,
                taxonomy  = req.taxonomy,
                persist   = req.persist,
                run_label = req.run_label,
            )
        except SemanticEngineError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        except Exception as exc:
            logger.error(f"Analyze endpoint error: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Analysis failed: {exc}")

    @_app.get("/conversations", summary="List stored conversations")
    def list_conversations(
        limit:  int = Query(100, ge=1, le=MAX_LIST_LIMIT),
        offset: int = Query(0,   ge=0),
    ):
        data = _api.list_conversations(limit=limit, offset=offset)
        return {"count": len(data), "conversations": data}

    @_app.get("/conversations/{conversation_id}", summary="Get one stored conversation")
    def get_conversation(conversation_id: str):
        data = _api.get_conversation(conversation_id)
        if data is None:
            raise HTTPException(status_code=404, detail=f"Conversation not found: {conversation_id}")
        return data

    @_app.get("/meta", summary="Last run metadata")
    def get_meta():
        data = _api.get_meta()
        if data is None:
            raise HTTPException(status_code=404, detail="No run metadata found. Analyze something first.")
        return data

    return _app


# Module-level app instance, used by uvicorn semantic_engine.api:app
app = build_app()


# ═══════════════════════════════════════════════════════════════════════════
# CLI ENTRYPOINT: python -m semantic_engine.api
# ═══════════════════════════════════════════════════════════════════════════

def serve(argv=None) -> None:
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(
        prog        = "semantic_engine.api",
        description = "Semantic Engine API Server (localhost)",
    )
    parser.add_argument("--port", type=int, default=8765,
                        help="Port to bind (default: 8765)")
    parser.add_argument("--db",   type=str, default="engine.db",
                        help="Path to engine database (default: engine.db)")
    parser.add_argument("--host", type=str, default="127.0.0.1",
                        help="Host to bind. Keep 127.0.0.1 on shared networks")
    args = parser.parse_args(argv)

    print(f"""
+--------------------------------------------------+
|   Semantic Engine API Server v{__version__:<19}|
+--------------------------------------------------+
|  Local:    http://{args.host}:{args.port}
|  DB:       {args.db}
|  Docs:     http://{args.host}:{args.port}/docs
+--------------------------------------------------+
""")

    uvicorn.run(
        build_app(db_path=Path(args.db)),
        host      = args.host,
        port      = args.port,
        log_level = "info",
    )


if __name__ == "__main__":
    serve()
