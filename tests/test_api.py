"""
tests/test_api.py
HTTP layer over a temporary database. FastAPI TestClient, no server process.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import BASE, TEAM_LINES

from semantic_engine.api import EngineAPI, build_app
from semantic_engine.config import EngineConfig


def _payload(**extra):
    body = {
        "chat_id":  "team",
        "messages": [
            {"timestamp": (BASE + timedelta(minutes=m)).isoformat(), "sender": s, "text": t}
            for m, s, t in TEAM_LINES
        ],
    }
    body.update(extra)
    return body


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "engine.db"


@pytest.fixture
def client(db_path):
    return TestClient(build_app(db_path=db_path, config=EngineConfig()))


class TestHealth:

    def test_health(self, client, db_path):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["db_exists"] is False
        assert data["db_path"] == str(db_path)


class TestAnalyze:

    def test_analyze_persists(self, client, db_path):
        resp = client.post("/analyze", json=_payload())
        assert resp.status_code == 200
        data = resp.json()
        assert data["conversation_id"] == "team"
        assert data["persisted"] is True
        assert data["report"]["summary"]["message_count"] == 7
        assert db_path.exists()

    def test_report_has_no_text(self, client):
        text = client.post("/analyze", json=_payload()).text
        for _, _, line in TEAM_LINES:
            assert line not in text

    def test_empty_messages(self, client):
        assert client.post("/analyze", json=_payload(messages=[])).status_code == 400

    def test_bad_taxonomy(self, client):
        assert client.post("/analyze", json=_payload(taxonomy="astrology")).status_code == 422

    def test_no_persist(self, client, db_path):
        resp = client.post("/analyze", json=_payload(persist=False))
        assert resp.status_code == 200
        assert resp.json()["persisted"] is False
        assert not db_path.exists()

    def test_relationship_taxonomy(self, client):
        data = client.post("/analyze", json=_payload(taxonomy="relationship")).json()
        assert data["report"]["summary"]["taxonomy"] == "relationship"


class TestStored:

    def test_list_and_get(self, client):
        client.post("/analyze", json=_payload())
        listing = client.get("/conversations").json()
        assert listing["count"] == 1
        assert listing["conversations"][0]["conversation_id"] == "team"

        stored = client.get("/conversations/team")
        assert stored.status_code == 200
        assert len(stored.json()["messages"]) == 7

    def test_unknown_conversation(self, client):
        assert client.get("/conversations/nope").status_code == 404

    def test_list_limit_validated(self, client):
        assert client.get("/conversations", params={"limit": 0}).status_code == 422

    def test_meta(self, client):
        assert client.get("/meta").status_code == 404
        client.post("/analyze", json=_payload(run_label="nightly"))
        meta = client.get("/meta")
        assert meta.status_code == 200
        assert meta.json()["run_label"] == "nightly"


class TestEngineAPI:

    def test_list_empty_db(self, db_path):
        assert EngineAPI(db_path=db_path).list_conversations() == []
        assert EngineAPI(db_path=db_path).get_meta() is None

    def test_analyze_without_persist(self, team_raws, db_path):
        api = EngineAPI(db_path=db_path, config=EngineConfig())
        out = api.analyze(team_raws, persist=False)
        assert out["status"] == "ok"
        assert out["conversation_id"].startswith("conv_")
        assert not db_path.exists()
