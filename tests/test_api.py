"""End-to-end tests of the HTTP API with a scripted model."""

import pytest
from fastapi.testclient import TestClient

from dreamweaver.config import Settings
from dreamweaver.models import Perspective, get_perspective_description
from main import create_app

from fakes import ScriptedChatModel, report_json


@pytest.fixture
def make_client():
    def _make(replies):
        llm = ScriptedChatModel(replies)
        app = create_app(Settings(openai_api_key=None), llm=llm)
        return TestClient(app), llm
    return _make


def test_root_and_health(make_client):
    client, _ = make_client([])
    with client:
        assert client.get("/").json()["message"] == "Dream Weaver API"
        assert client.get("/health").json()["status"] == "healthy"


def test_options(make_client):
    client, _ = make_client([])
    with client:
        perspectives = client.get("/perspectives").json()
        tag_types = client.get("/tag-types").json()

    assert [p["value"] for p in perspectives] == ["Psychological", "Cultural", "Creative"]
    assert all(p["description"] for p in perspectives)
    assert perspectives[1]["description"] == get_perspective_description(Perspective.CULTURAL)
    assert [t["value"] for t in tag_types] == ["emotion", "object", "person", "location"]


def test_form_editing(make_client):
    client, _ = make_client([])
    with client:
        client.put("/draft/content", json={"content": "a garden full of clocks"})
        client.put("/draft/tag-type", json={"type": "location"})
        snapshot = client.post("/draft/tags", json={"label": "garden"}).json()
        tag_id = snapshot["draft"]["tags"][0]["id"]
        client.post("/draft/tags", json={"label": "  "})
        client.post("/draft/tags", json={"label": "clock", "type": "object"})
        snapshot = client.delete(f"/draft/tags/{tag_id}").json()

    assert snapshot["view"] == "form"
    assert snapshot["draft"]["content"] == "a garden full of clocks"
    assert [(t["type"], t["label"]) for t in snapshot["draft"]["tags"]] == [("object", "clock")]


def test_last_perspective_conflict(make_client):
    client, _ = make_client([])
    with client:
        added = client.post("/draft/perspectives/Creative")
        removed = client.post("/draft/perspectives/Psychological")
        rejected = client.post("/draft/perspectives/Creative")

    assert added.json()["draft"]["perspectives"] == ["Psychological", "Creative"]
    assert removed.json()["draft"]["perspectives"] == ["Creative"]
    assert rejected.status_code == 409


def test_submit_empty_dream(make_client):
    client, llm = make_client([])
    with client:
        response = client.post("/dreams", json={"content": "   "})

    assert response.status_code == 422
    assert llm.calls == []


def test_nightmare_report_and_chat(make_client):
    client, llm = make_client([
        report_json(isNightmare=True, healingMessage="The fall is also a letting go."),
        "What did the air feel like?",
    ])
    with client:
        snapshot = client.post(
            "/dreams?wait=true",
            json={"content": "I was falling endlessly", "tags": [], "perspectives": ["Psychological"]},
        ).json()
        chat = client.post("/chat", json={"message": "Why was I falling?"}).json()
        session = client.get("/session").json()

    report = snapshot["report"]
    assert snapshot["view"] == "report"
    assert report["status"] == "ready"
    assert report["report"]["isNightmare"] is True
    assert report["sections"][-1]["kind"] == "healing"

    assert chat["accepted"] is True
    assert [m["role"] for m in chat["session"]["report"]["chat"]["messages"]] == ["user", "model"]
    assert session["report"]["chat"]["messages"][1]["text"] == "What did the air feel like?"
    assert len(llm.calls) == 2


def test_ordinary_report_has_no_healing(make_client):
    client, _ = make_client([report_json()])
    with client:
        snapshot = client.post("/dreams?wait=true", json={"content": "a quiet lake"}).json()

    assert [s["kind"] for s in snapshot["report"]["sections"]] == [
        "synthesis", "perspective", "guidance", "adjustment",
    ]


def test_malformed_report_fails_without_sections(make_client):
    client, _ = make_client(["this is not json"])
    with client:
        snapshot = client.post("/dreams?wait=true", json={"content": "a dream"}).json()
        chat = client.post("/chat", json={"message": "hello"}).json()

    assert snapshot["report"]["status"] == "failed"
    assert snapshot["report"]["message"]
    assert snapshot["report"]["sections"] == []
    assert chat["accepted"] is False


def test_reset_returns_to_form(make_client):
    client, _ = make_client([report_json()])
    with client:
        client.post("/dreams?wait=true", json={"content": "a dream"})
        conflict = client.put("/draft/content", json={"content": "too late"})
        snapshot = client.post("/reset").json()

    assert conflict.status_code == 409
    assert snapshot["view"] == "form"
    assert snapshot["report"] is None
    assert snapshot["draft"]["content"] == ""


def test_chat_requires_report_view(make_client):
    client, _ = make_client([])
    with client:
        response = client.post("/chat", json={"message": "hello"})

    assert response.status_code == 409


def test_startup_requires_api_key():
    app = create_app(Settings(openai_api_key=None))

    with pytest.raises(ValueError):
        with TestClient(app):
            pass
