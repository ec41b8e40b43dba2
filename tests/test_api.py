"""Tests for the HTTP API."""
import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLMProvider, text_response, tool_call_response
from kaiyo.api import create_app
from kaiyo.config import Settings
from kaiyo.runtime import build_runtime
from kaiyo.streaming import StreamEvent, parse_frames


@pytest.fixture
def make_client(nominatim_handler, monkeypatch, tmp_path):
    """Build a TestClient around a runtime with a scripted provider."""
    monkeypatch.chdir(tmp_path)

    def _make(llm: FakeLLMProvider) -> TestClient:
        settings = Settings(_env_file=None, llm_provider="openai", model_name="fake-model")
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(nominatim_handler()))
        runtime = build_runtime(settings, llm=llm, http_client=http_client)
        return TestClient(create_app(runtime=runtime))

    return _make


class TestRoutes:
    """Tests for the chat routes."""

    def test_root(self, make_client):
        with make_client(FakeLLMProvider()) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Welcome to Kaiyo AI!"

    def test_healthz(self, make_client):
        with make_client(FakeLLMProvider()) as client:
            body = client.get("/healthz").json()

        assert body == {
            "status": "ok",
            "provider": "openai",
            "model": "fake-model",
            "tools": ["get_geocode_data"],
        }

    @pytest.mark.parametrize("payload", [{"content": ""}, {}])
    def test_empty_content_is_rejected(self, make_client, payload):
        llm = FakeLLMProvider()
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "content is missing"
        assert llm.calls == []

    def test_whitespace_content_runs_a_turn(self, make_client):
        llm = FakeLLMProvider(streams=[["Tell me more"]])
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "   ", "chatID": "chat-1"})
            history = client.get("/api/v1/chats/history/chat-1").json()

        assert response.status_code == 200
        assert {"role": "user", "content": "   "} in history

    def test_narration_failure_before_first_fragment_returns_502(self, make_client, sample_itinerary):
        llm = FakeLLMProvider(
            responses=[
                text_response(""),
                tool_call_response(("save_1", "save_itinerary", sample_itinerary)),
            ],
            streams=[[RuntimeError("stream refused")]],
        )
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "Plan Paris", "chatID": "chat-1"})
            itinerary = client.get("/api/v1/chats/itinerary/chat-1")

        assert response.status_code == 502
        assert "stream refused" in response.json()["detail"]
        assert response.headers["x-chat-id"] == "chat-1"
        # Extraction still runs after the failed narration
        assert itinerary.status_code == 200
        assert itinerary.json() == sample_itinerary

    def test_malformed_json_is_rejected(self, make_client):
        with make_client(FakeLLMProvider()) as client:
            response = client.post(
                "/api/v1/chats/",
                content=b'{"content": ',
                headers={"Content-Type": "application/json"},
            )

        assert response.status_code == 400

    def test_streams_fragments(self, make_client):
        llm = FakeLLMProvider(
            responses=[
                tool_call_response(("geo_1", "get_geocode_data", {"locations": [{"city": "Paris", "country": "France"}]})),
                text_response(""),
            ],
            streams=[["Day 1\nVisit Louvre", " then lunch"]],
        )
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "Plan Paris", "chatID": "chat-1"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-chat-id"] == "chat-1"
        assert response.text.startswith("data: Day 1\\nVisit Louvre\n\n")
        assert parse_frames(response.text) == [
            StreamEvent(data="Day 1\nVisit Louvre"),
            StreamEvent(data=" then lunch"),
        ]

    def test_new_chat_id_assigned(self, make_client):
        llm = FakeLLMProvider(streams=[["Hello"]])
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "Hi"})
            chat_id = response.headers["x-chat-id"]
            history = client.get(f"/api/v1/chats/history/{chat_id}")

        assert chat_id
        assert history.status_code == 200

    def test_planning_failure_returns_502(self, make_client):
        llm = FakeLLMProvider(responses=[RuntimeError("invalid api key")])
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "Plan Paris"})

        assert response.status_code == 502
        assert "invalid api key" in response.json()["detail"]

    def test_narration_failure_after_fragments_ends_with_error_event(self, make_client):
        llm = FakeLLMProvider(
            responses=[text_response("")],
            streams=[["Day 1", RuntimeError("stream reset")]],
        )
        with make_client(llm) as client:
            response = client.post("/api/v1/chats/", json={"content": "Plan Paris"})

        events = parse_frames(response.text)
        assert response.status_code == 200
        assert events[0] == StreamEvent(data="Day 1")
        assert events[-1].event == "error"
        assert "stream reset" in events[-1].data

    def test_history_and_itinerary(self, make_client, sample_itinerary):
        llm = FakeLLMProvider(
            responses=[
                text_response(""),
                tool_call_response(("save_1", "save_itinerary", sample_itinerary)),
            ],
            streams=[["Your plan"]],
        )
        with make_client(llm) as client:
            client.post("/api/v1/chats/", json={"content": "Plan Paris", "chatID": "chat-1", "userID": "u-1"})
            history = client.get("/api/v1/chats/history/chat-1").json()
            itinerary = client.get("/api/v1/chats/itinerary/chat-1")

        assert history[0]["role"] == "system"
        assert history[1] == {"role": "user", "content": "Plan Paris"}
        assert {"role": "assistant", "content": "Your plan"} in history
        assert itinerary.status_code == 200
        assert itinerary.json() == sample_itinerary

    def test_itinerary_null_before_extraction(self, make_client):
        llm = FakeLLMProvider(streams=[["Hi there"]])
        with make_client(llm) as client:
            client.post("/api/v1/chats/", json={"content": "Hello", "chatID": "chat-1"})
            response = client.get("/api/v1/chats/itinerary/chat-1")

        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.parametrize("path", ["history", "itinerary"])
    def test_unknown_chat_is_404(self, make_client, path):
        with make_client(FakeLLMProvider()) as client:
            response = client.get(f"/api/v1/chats/{path}/missing")

        assert response.status_code == 404
