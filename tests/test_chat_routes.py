"""Tests for the chat HTTP surface.

The app is built with the real factory; the LLM client is replaced by an
AsyncMock so no network calls are made.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import DEFAULT_SYSTEM_PROMPT, LLMSettings, Settings
from app.core.errors import QuotaStoreError, UpstreamAPIError, UpstreamUnavailableError
from app.core.identity import hash_identity
from app.services.chat_service import ChatService
from app.services.quota_service import QuotaTracker, usage_key


@pytest.fixture
def app(llm, tracker):
    application = create_app(Settings())
    application.state.chat_service = ChatService(llm=llm, quota=tracker)
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestChatSuccess:
    def test_returns_reply_usage_and_model(self, client, llm) -> None:
        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {
            "reply": "Hello there!",
            "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
            "model": "gpt-4o-mini-2024-07-18",
        }

        sent = llm.complete.await_args.args[0]
        assert sent.messages == [
            {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": "hi"},
        ]
        assert sent.temperature == 0.7

    def test_messages_forwarded_verbatim(self, client, llm) -> None:
        conversation = [
            {"role": "system", "content": "Answer in German."},
            {"role": "user", "content": "Wie geht's?"},
        ]

        response = client.post("/chat", json={"message": "Wie geht's?", "messages": conversation})

        assert response.status_code == 200
        assert llm.complete.await_args.args[0].messages == conversation

    def test_list_with_non_object_turn_is_not_rejected(self, client, llm) -> None:
        response = client.post("/chat", json={"message": "hi", "messages": ["hello"]})

        assert response.status_code == 200
        assert llm.complete.await_args.args[0].messages == ["hello"]

    def test_responses_carry_cors_and_request_id_headers(self, client) -> None:
        response = client.post("/chat", json={"message": "hi"}, headers={"X-Request-ID": "req-1"})

        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert response.headers["X-Request-ID"] == "req-1"

    def test_forwarded_for_address_is_the_quota_subject(self, client, store) -> None:
        client.post("/chat", json={"message": "hi"}, headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert store._records.keys() == {usage_key(hash_identity("203.0.113.9"))}


class TestChatMethods:
    def test_options_preflight(self, client) -> None:
        response = client.options("/chat")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    def test_get_is_not_allowed(self, client) -> None:
        response = client.get("/chat")

        assert response.status_code == 405
        assert response.json()["error"] == "Method not allowed"


class TestChatInputErrors:
    def test_malformed_json(self, client, llm) -> None:
        response = client.post(
            "/chat", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be valid JSON"
        llm.complete.assert_not_called()

    @pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}, {"message": 42}])
    def test_missing_or_blank_message(self, client, body) -> None:
        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "message (non-empty string) is required"

    def test_non_object_body(self, client) -> None:
        response = client.post("/chat", json=["hi"])

        assert response.status_code == 400


class TestChatQuota:
    def test_21st_request_is_rejected_with_429(self, client, llm) -> None:
        for _ in range(20):
            assert client.post("/chat", json={"message": "hi", "userId": "u-1"}).status_code == 200

        response = client.post("/chat", json={"message": "hi", "userId": "u-1"})

        assert response.status_code == 429
        assert response.json()["error"] == "Rate limit exceeded. You can try again in 7 day(s)."
        assert response.headers["Retry-After"] == str(7 * 24 * 60 * 60)
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert llm.complete.await_count == 20

    def test_other_callers_are_unaffected(self, client) -> None:
        for _ in range(21):
            client.post("/chat", json={"message": "hi", "userId": "u-1"})

        assert client.post("/chat", json={"message": "hi", "userId": "u-2"}).status_code == 200

    def test_store_outage_fails_open(self, app, client, llm, clock) -> None:
        failing = AsyncMock()
        failing.get.side_effect = QuotaStoreError("unreachable")
        app.state.chat_service = ChatService(llm=llm, quota=QuotaTracker(failing, clock=clock))

        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 200


class TestChatUpstreamErrors:
    def test_upstream_status_and_message_pass_through(self, client, llm) -> None:
        body = {"message": "The model `gpt-9` does not exist", "type": "invalid_request_error"}
        llm.complete.side_effect = UpstreamAPIError(
            code="upstream_api_error",
            message=body["message"],
            details=body,
            upstream_status=404,
        )

        response = client.post("/chat", json={"message": "hi", "model": "gpt-9"})

        assert response.status_code == 404
        assert response.json()["error"] == "The model `gpt-9` does not exist"
        assert response.json()["details"] == body

    def test_unreachable_upstream_is_502(self, client, llm) -> None:
        llm.complete.side_effect = UpstreamUnavailableError(
            code="upstream_unreachable",
            message="Failed to reach the LLM provider. Please try again later.",
        )

        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to reach the LLM provider. Please try again later."


class TestMissingCredential:
    def test_chat_returns_500_and_health_still_works(self) -> None:
        settings = Settings(llm=LLMSettings(provider="openai", model="gpt-4o-mini", api_key=None))
        client = TestClient(create_app(settings))

        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json()["error"] == "LLM_API_KEY is not configured"

        health = client.get("/health")
        assert health.status_code == 200
        assert health.json() == {"status": "ok", "chat": "unconfigured"}


class TestShutdown:
    def test_usage_store_is_closed_on_shutdown(self, app, llm, clock) -> None:
        store = AsyncMock()
        app.state.chat_service = ChatService(llm=llm, quota=QuotaTracker(store, clock=clock))

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            store.close.assert_not_awaited()

        store.close.assert_awaited_once()

    def test_shutdown_without_chat_service(self) -> None:
        settings = Settings(llm=LLMSettings(provider="openai", model="gpt-4o-mini", api_key=None))

        with TestClient(create_app(settings)) as client:
            assert client.get("/health").status_code == 200
