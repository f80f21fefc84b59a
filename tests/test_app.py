"""Tests for the FastAPI app in contentformer.app.main."""

from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from contentformer.app.main import app, get_invoker
from contentformer.app.sessions import SessionStore, get_session_store

from conftest import SAMPLE_IDEAS, StatusError

KEYS = {"anthropicApiKey": "sk-ant-body", "preferredProvider": "anthropic"}


@pytest.fixture
def client(invoker, monkeypatch):
    for name in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PREFERRED_PROVIDER"):
        monkeypatch.delenv(name, raising=False)

    store = SessionStore(max_age=3600)
    app.dependency_overrides[get_invoker] = lambda: invoker
    app.dependency_overrides[get_session_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def idea_payload() -> dict:
    return {"id": "idea-1", "title": "Data before models", "description": "Clean data first."}


@pytest.fixture
def script_payload() -> dict:
    return {"id": "script-1", "ideaId": "idea-1", "title": "Data before models", "script": "Hi."}


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestCredentials:
    def test_set_credentials_cookies(self, client) -> None:
        response = client.post("/api/set-credentials", json=KEYS)
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert response.cookies.get("hasApiConfig") == "true"
        assert response.cookies.get("anthropic-api-key") == "sk-ant-body"

    def test_cookie_credentials_used(self, client, factory_calls) -> None:
        client.post("/api/set-credentials", json=KEYS)
        response = client.post("/api/generate-ideas", json={"transcript": "Some talk"})
        assert response.status_code == 200
        assert factory_calls[-1][1] == "sk-ant-body"

    def test_env_beats_request_body(self, client, factory_calls, monkeypatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        client.post("/api/generate-ideas", json={"transcript": "Some talk", **KEYS})
        assert factory_calls[-1][1] == "sk-ant-env"


class TestConnection:
    def test_success(self, client) -> None:
        response = client.post("/api/test-connection", json=KEYS)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Anthropic API connection successful",
            "provider": "anthropic",
        }

    def test_missing_key(self, client, factory_calls) -> None:
        response = client.post("/api/test-connection", json={"preferredProvider": "openai"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "OpenAI API key is missing. Please add your API key in settings.",
        }
        assert factory_calls == []


class TestGeneration:
    def test_generate_ideas(self, client) -> None:
        response = client.post(
            "/api/generate-ideas", json={"transcript": "Some talk", "instructions": "", **KEYS}
        )
        assert response.status_code == 200
        body = response.json()
        assert [i["title"] for i in body] == [i["title"] for i in SAMPLE_IDEAS]
        assert all(re.fullmatch(r"idea-[0-9a-f]{8}", i["id"]) for i in body)

    def test_blank_transcript_rejected(self, client) -> None:
        response = client.post("/api/generate-ideas", json={"transcript": "  ", **KEYS})
        assert response.status_code == 422

    def test_missing_key(self, client) -> None:
        response = client.post("/api/generate-ideas", json={"transcript": "Some talk"})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "Anthropic API key is missing" in response.json()["message"]

    def test_missing_key_names_preferred_provider(self, client) -> None:
        response = client.post(
            "/api/generate-ideas", json={"transcript": "Some talk", "preferredProvider": "openai"}
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("OpenAI API key is missing")

    def test_parse_failure(self, client, fake_provider) -> None:
        fake_provider.reply = lambda prompt: "no json"
        response = client.post("/api/generate-ideas", json={"transcript": "Some talk", **KEYS})
        assert response.status_code == 502
        assert response.json()["message"].startswith("Failed to parse response from AI service.")

    def test_auth_failure(self, client, fake_provider) -> None:
        fake_provider.error = StatusError("bad key", status_code=401)
        response = client.post("/api/generate-ideas", json={"transcript": "Some talk", **KEYS})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Authentication failed with Fake. Please check your API key.",
        }

    def test_generate_script(self, client, idea_payload) -> None:
        response = client.post(
            "/api/generate-script",
            json={"idea": idea_payload, "transcript": "Some talk", **KEYS},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["ideaId"] == "idea-1"
        assert body["script"] == "Script for: Data before models"
        assert re.fullmatch(r"script-[0-9a-f]{8}", body["id"])

    def test_refine_script(self, client, script_payload) -> None:
        response = client.post(
            "/api/refine-script",
            json={"script": script_payload, "instructions": "Shorter", **KEYS},
        )
        assert response.status_code == 200
        assert response.json() == {
            "id": "script-1",
            "ideaId": "idea-1",
            "title": "Data before models",
            "script": "Refined script text",
        }

    def test_regenerate_script(self, client, idea_payload) -> None:
        response = client.post(
            "/api/regenerate-script",
            json={"idea": idea_payload, "transcript": "Some talk", "instructions": "x", **KEYS},
        )
        assert response.status_code == 200
        assert response.json()["script"] == "Regenerated script text"

    def test_linkedin_post(self, client, script_payload) -> None:
        response = client.post(
            "/api/generate-linkedin-post", json={"script": script_payload, **KEYS}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["scriptId"] == "script-1"
        assert re.fullmatch(r"linkedin-[0-9a-f]{8}", body["id"])


class TestPipelineEndpoints:
    def test_run_all(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        response = client.post("/api/pipeline/run-all", json=KEYS)
        assert response.status_code == 200
        body = response.json()
        assert body["state"]["stage"] == "complete"
        assert body["state"]["progress"] == 100
        assert len(body["scripts"]) == 3
        assert len(body["posts"]) == 1

        state = client.get("/api/pipeline/state").json()
        assert state == body

    def test_run_all_without_transcript(self, client) -> None:
        response = client.post("/api/pipeline/run-all", json=KEYS)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_step_through(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        client.post("/api/pipeline/next-step", json=KEYS)
        client.post("/api/pipeline/step-prompt", json={"prompt": "Focus on ROI"})
        body = client.post("/api/pipeline/next-step", json=KEYS).json()
        assert body["state"]["stage"] == "scripts"
        assert body["state"]["stepPrompts"]["ideas"] == "Focus on ROI"

        second = body["ideas"][1]["id"]
        body = client.post("/api/pipeline/select-idea", json={"ideaId": second}).json()
        assert body["selectedIdeaId"] == second

        body = client.post("/api/pipeline/next-step", json=KEYS).json()
        assert body["scripts"][0]["ideaId"] == second
        body = client.post("/api/pipeline/next-step", json=KEYS).json()
        assert body["state"]["stage"] == "idle"
        assert body["state"]["completedSteps"] == {
            "ideas": True,
            "scripts": True,
            "linkedin": True,
        }

    def test_select_unknown_idea(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        response = client.post("/api/pipeline/select-idea", json={"ideaId": "idea-nope"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Selected idea not found"}

    def test_pause_and_resume(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        assert client.post("/api/pipeline/pause").json()["state"]["paused"] is True
        assert client.post("/api/pipeline/resume").json()["state"]["paused"] is False

    def test_refine_and_regenerate(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        body = client.post("/api/pipeline/run-all", json=KEYS).json()
        script = body["scripts"][0]

        body = client.post(
            "/api/pipeline/refine",
            json={"scriptId": script["id"], "instructions": "Shorter", **KEYS},
        ).json()
        assert body["scripts"][0]["id"] == script["id"]
        assert body["scripts"][0]["script"] == "Refined script text"

        body = client.post(
            "/api/pipeline/regenerate",
            json={"ideaId": script["ideaId"], "instructions": "Funnier", **KEYS},
        ).json()
        assert body["scripts"][0]["id"] != script["id"]
        assert body["scripts"][0]["script"] == "Regenerated script text"

    def test_update_script_keeps_idea(self, client) -> None:
        client.post("/api/pipeline/start", json={"transcript": "Some talk"})
        body = client.post("/api/pipeline/run-all", json=KEYS).json()
        script = dict(body["scripts"][0], script="Hand edited", ideaId="idea-other")

        body = client.post("/api/pipeline/update-script", json={"script": script}).json()
        assert body["scripts"][0]["script"] == "Hand edited"
        assert body["scripts"][0]["ideaId"] == body["ideas"][0]["id"]


class TestSessionStore:
    def test_each_client_gets_a_session(self) -> None:
        store = SessionStore(max_age=3600)
        app.dependency_overrides[get_session_store] = lambda: store
        try:
            for _ in range(3):
                with TestClient(app) as fresh_client:
                    fresh_client.get("/api/pipeline/state")
        finally:
            app.dependency_overrides.clear()
        assert len(store) == 3

    def test_idle_sessions_are_evicted(self) -> None:
        now = [0.0]
        store = SessionStore(max_age=60, clock=lambda: now[0])
        first = store.get_or_create("a")
        store.get_or_create("b")

        now[0] = 30.0
        assert store.get_or_create("a") is first

        now[0] = 80.0
        store.get_or_create("c")
        assert len(store) == 2
        assert store.get_or_create("a") is first

        now[0] = 200.0
        assert store.get_or_create("b") is not None
        assert len(store) == 1

    def test_discard(self) -> None:
        store = SessionStore(max_age=60)
        store.get_or_create("a")
        store.discard("a")
        store.discard("missing")
        assert len(store) == 0
