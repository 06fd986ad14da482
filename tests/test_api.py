"""Tests for the chat, profile, memory and trend API routes."""

import json

import pytest
from postgrest.exceptions import APIError

from conftest import ExplodingChatModel, summary_json

from app.routes.chat import TurnRecorder, stream_events
from trendseer.core.memory import UserContext


def _events(response):
    return [
        json.loads(chunk[len("data: "):])
        for chunk in response.text.split("\n\n")
        if chunk.strip()
    ]


def _chat_body(text="hello", user_id="u1"):
    body = {"messages": [{"id": "m1", "role": "user", "content": text}]}
    if user_id:
        body["userId"] = user_id
    return body


class TestStreamingChat:
    def test_streams_tokens_then_done(self, make_services, make_client, db):
        services = make_services(["Hi!", summary_json(industries=["fashion"])])
        client = make_client(services)

        response = client.post("/api/chat", json=_chat_body())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _events(response)
        assert events[-1] == {"done": True}
        assert "".join(e["token"] for e in events[:-1]) == "Hi!"

        assert [row["id"] for row in db.tables["users"]] == ["u1"]
        turn = db.tables["chat_history"][0]
        assert (turn["user_message"], turn["assistant_message"]) == ("hello", "Hi!")
        assert db.tables["memories"][0]["content"]["industries"] == ["fashion"]

    def test_model_failure_emits_error_event(self, make_services, make_client, db):
        client = make_client(make_services(llm=ExplodingChatModel(responses=["unused"])))

        response = client.post("/api/chat", json=_chat_body())

        assert _events(response) == [{"error": "An error occurred during the request"}]
        assert db.tables["chat_history"] == []
        assert db.tables["memories"] == []


class TestSimpleChat:
    def test_reply_and_memory(self, make_services, make_client, db):
        services = make_services(["Resale is booming.", summary_json(goals="grow reach")])
        client = make_client(services)

        response = client.post("/api/chat/simple", json=_chat_body("what should I post?"))

        assert response.status_code == 200
        assert response.json() == {"role": "assistant", "content": "Resale is booming."}
        assert db.tables["chat_history"][0]["assistant_message"] == "Resale is booming."
        memory = db.tables["memories"][0]
        assert memory["user_id"] == "u1"
        assert memory["content"]["goals"] == "grow reach"

    def test_keywords_trigger_live_data(self, make_services, make_client, api):
        client = make_client(make_services(["ok", summary_json()]))

        client.post("/api/chat/simple", json=_chat_body("latest fashion news and trends"))

        assert [r.url.host for r in api.requests] == ["newsapi.org", "google.serper.dev"]

    def test_real_time_data_disabled(self, make_services, make_client, api, settings):
        settings.enable_real_time_data = False
        client = make_client(make_services(["ok", summary_json()]))

        client.post("/api/chat/simple", json=_chat_body("latest news"))

        assert api.requests == []

    def test_empty_summary_not_stored(self, make_services, make_client, db):
        client = make_client(make_services(["Hi!", "nothing to extract"]))

        client.post("/api/chat/simple", json=_chat_body())

        assert len(db.tables["chat_history"]) == 1
        assert db.tables["memories"] == []

    def test_memory_disabled(self, make_services, make_client, db, settings):
        settings.enable_memory = False
        client = make_client(make_services(["Hi!", summary_json(goals="grow")]))

        client.post("/api/chat/simple", json=_chat_body())

        assert len(db.tables["chat_history"]) == 1
        assert db.tables["memories"] == []

    def test_model_failure(self, make_services, make_client):
        client = make_client(make_services(llm=ExplodingChatModel(responses=["unused"])))

        response = client.post("/api/chat/simple", json=_chat_body())

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to generate response",
            "details": "model unavailable",
        }


class TestChatValidation:
    @pytest.mark.parametrize("path", ["/api/chat", "/api/chat/simple"])
    def test_user_id_required(self, make_services, make_client, path):
        client = make_client(make_services())
        response = client.post(path, json=_chat_body(user_id=None))
        assert response.status_code == 400
        assert response.json() == {"error": "User ID is required"}

    @pytest.mark.parametrize("path", ["/api/chat", "/api/chat/simple"])
    def test_messages_required(self, make_services, make_client, path):
        client = make_client(make_services())
        response = client.post(path, json={"messages": [], "userId": "u1"})
        assert response.status_code == 400
        assert response.json() == {"error": "At least one message is required"}

    def test_malformed_body(self, make_services, make_client):
        client = make_client(make_services())
        response = client.post("/api/chat/simple", json={"messages": [{"role": "user"}], "userId": "u1"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["details"]


class TestChatHistory:
    @pytest.fixture
    def seeded(self, db):
        for i in range(3):
            db.tables["chat_history"].append(
                {
                    "id": i,
                    "user_id": "u1",
                    "user_message": f"q{i}",
                    "assistant_message": f"a{i}",
                    "created_at": f"2024-01-0{i + 1}T00:00:00+00:00",
                }
            )
        db.tables["chat_history"].append(
            {"id": 9, "user_id": "u2", "user_message": "x", "assistant_message": "y",
             "created_at": "2024-01-05T00:00:00+00:00"}
        )
        return db

    def test_full_history_oldest_first(self, seeded, make_services, make_client):
        client = make_client(make_services())
        rows = client.get("/api/chat/history", params={"userId": "u1"}).json()["chatHistory"]
        assert [r["user_message"] for r in rows] == ["q0", "q1", "q2"]
        assert rows[0]["timestamp"] == "2024-01-01T00:00:00+00:00"

    def test_limit_keeps_most_recent(self, seeded, make_services, make_client):
        client = make_client(make_services())
        rows = client.get("/api/chat/history", params={"userId": "u1", "limit": 2}).json()["chatHistory"]
        assert [r["user_message"] for r in rows] == ["q1", "q2"]

    def test_database_error(self, db, make_services, make_client):
        db.errors["chat_history"] = APIError({"message": "boom", "code": "XX000"})
        client = make_client(make_services())
        response = client.get("/api/chat/history", params={"userId": "u1"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch chat history"}


class TestUserProfile:
    def test_profile_from_memories(self, db, make_services, make_client):
        db.tables["users"].append({"id": "u1"})
        db.tables["memories"].extend(
            [
                {"user_id": "u1", "created_at": "2024-01-01", "content": {"industries": ["beauty"], "goals": "grow"}},
                {"user_id": "u1", "created_at": "2024-01-02", "content": {"industries": ["fashion"], "trends": ["resale"]}},
            ]
        )
        client = make_client(make_services())

        body = client.get("/api/user/profile", params={"userId": "u1"}).json()

        assert body == {
            "userId": "u1",
            "profile": {
                "industries": ["fashion", "beauty"],
                "audience": "",
                "goals": "grow",
                "trends": ["resale"],
            },
            "memoryCount": 2,
            "databaseStatus": "ready",
        }

    def test_preview_skips_database(self, db, make_services, make_client, settings):
        settings.app_env = "preview"
        client = make_client(make_services())

        body = client.get("/api/user/profile", params={"userId": "u1"}).json()

        assert body["databaseStatus"] == "skipped_build"
        assert body["memoryCount"] == 0
        assert db.calls == []

    def test_missing_table(self, db, make_services, make_client):
        db.errors["users"] = APIError({"message": 'relation "public.users" does not exist', "code": "42P01"})
        client = make_client(make_services())

        response = client.get("/api/user/profile", params={"userId": "u1"})

        assert response.status_code == 500
        assert response.json()["setupRequired"] is True

    def test_other_database_error(self, db, make_services, make_client):
        db.errors["memories"] = APIError({"message": "permission denied", "code": "42501"})
        client = make_client(make_services())

        response = client.get("/api/user/profile", params={"userId": "u1"})

        assert response.status_code == 500
        assert response.json() == {"error": "Database error"}


class TestMemorySearch:
    def test_search(self, db, make_services, make_client):
        db.rpc_results["match_memories"] = [{"id": 7, "content": {"goals": "grow"}, "similarity": 0.8}]
        client = make_client(make_services())

        response = client.post("/api/memories/search", json={"userId": "u1", "query": "growth", "limit": 3})

        assert response.json() == {"userId": "u1", "memories": db.rpc_results["match_memories"]}
        assert db.rpc_calls[0][1]["match_count"] == 3

    def test_blank_query(self, make_services, make_client):
        client = make_client(make_services())
        response = client.post("/api/memories/search", json={"userId": "u1", "query": "  "})
        assert response.status_code == 400
        assert response.json() == {"error": "Query is required"}


class TestTrendAnalysis:
    def test_analysis(self, make_services, make_client, api):
        client = make_client(make_services(['{"overview": "Resale is mainstream"}']))

        response = client.post("/api/trends/analyze", json={"topic": "resale", "industries": ["fashion"]})

        assert response.status_code == 200
        assert response.json() == {
            "topic": "resale",
            "analysis": {"overview": "Resale is mainstream"},
            "sources": {"news": 2, "search": 2},
        }
        assert sorted(r.url.host for r in api.requests) == ["google.serper.dev", "newsapi.org"]

    def test_topic_required(self, make_services, make_client):
        client = make_client(make_services())
        response = client.post("/api/trends/analyze", json={"topic": ""})
        assert response.status_code == 400
        assert response.json() == {"error": "Topic is required"}

    def test_model_failure(self, make_services, make_client):
        client = make_client(make_services(llm=ExplodingChatModel(responses=["unused"])))
        response = client.post("/api/trends/analyze", json={"topic": "resale"})
        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred during the request"}


class TestAppBasics:
    def test_health(self, make_services, make_client):
        assert make_client(make_services()).get("/health").json() == {"status": "ok"}

    def test_unknown_route_uses_error_shape(self, make_services, make_client):
        response = make_client(make_services()).get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}


class TestStreamPersistence:
    def test_turn_saved_when_client_disconnects(self, make_services, db):
        services = make_services(["Hello there", summary_json(goals="grow")])
        recorder = TurnRecorder(services, "u1", [{"role": "user", "content": "hi"}])
        events = stream_events(services, recorder, UserContext(), {})

        next(events)
        next(events)
        events.close()

        assert db.tables["chat_history"][0]["assistant_message"] == "He"
        assert db.tables["memories"][0]["content"]["goals"] == "grow"

    def test_turn_saved_once(self, make_services, db):
        services = make_services(["Hi", summary_json(goals="grow")])
        recorder = TurnRecorder(services, "u1", [{"role": "user", "content": "hi"}])

        assert list(stream_events(services, recorder, UserContext(), {}))[-1] == 'data: {"done": true}\n\n'
        recorder.save()
        recorder.save()

        assert len(db.tables["chat_history"]) == 1
