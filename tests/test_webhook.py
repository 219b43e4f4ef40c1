import pytest
from fastapi.testclient import TestClient

from nest_assistant.main import app
from nest_assistant.routers.webhook import get_message_router
from nest_assistant.services.reply_service import format_answer
from nest_assistant.services.router_service import MSG_APOLOGY, MSG_HANDOFF


@pytest.fixture
def client(message_router):
    app.dependency_overrides[get_message_router] = lambda: message_router
    yield TestClient(app)
    app.dependency_overrides.clear()


def _payload(clock, **overrides):
    payload = {
        "senderId": "447700900001",
        "text": "Is the flat on Main St still available?",
        "messageId": "wa-100",
        "timestamp": clock.now.timestamp(),
        "fromSelf": False,
    }
    payload.update(overrides)
    return payload


class TestHealth:
    def test_health(self):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestWebhook:
    def test_answers_question(self, client, clock, llm, transport):
        response = client.post("/webhook", json=_payload(clock))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["action"] == "answered"
        assert data["intent"] == "assist"
        assert data["replies"] == [format_answer(llm.answer)]
        assert transport.sent == [("447700900001", format_answer(llm.answer))]

    def test_accepts_snake_case_fields(self, client, clock):
        payload = {
            "sender_id": "447700900001",
            "text": "Do you manage student lets?",
            "message_id": "wa-101",
            "timestamp": clock.now.timestamp(),
            "from_self": True,
        }

        response = client.post("/webhook", json=payload)

        assert response.json()["action"] == "from_self"

    def test_human_request(self, client, clock, llm):
        llm.intent = "human"

        data = client.post("/webhook", json=_payload(clock, text="I want a human")).json()

        assert data["action"] == "handoff_started"
        assert data["replies"] == [MSG_HANDOFF]

    def test_duplicate_delivery(self, client, clock):
        client.post("/webhook", json=_payload(clock))

        data = client.post("/webhook", json=_payload(clock)).json()

        assert data["action"] == "duplicate"
        assert data["replies"] == []

    def test_generation_failure_reports_error(self, client, clock, llm):
        llm.answer_error = RuntimeError("model unavailable")

        response = client.post("/webhook", json=_payload(clock))

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["replies"] == [MSG_APOLOGY]

    def test_non_text_body_is_not_relevant(self, client, clock):
        data = client.post("/webhook", json=_payload(clock, text={"type": "image"})).json()
        assert data["action"] == "not_relevant"

    def test_missing_sender_is_rejected(self, client, clock):
        payload = _payload(clock)
        del payload["senderId"]

        response = client.post("/webhook", json=payload)

        assert response.status_code == 422

    def test_negative_timestamp_is_rejected(self, client, clock, transport):
        response = client.post("/webhook", json=_payload(clock, timestamp=-1))

        assert response.status_code == 422
        assert transport.sent == []

    def test_non_finite_timestamp_is_rejected(self, client, clock, transport):
        response = client.post("/webhook", json=_payload(clock, timestamp="inf"))

        assert response.status_code == 422
        assert transport.sent == []

    def test_millisecond_timestamp_is_answered(self, client, clock, llm):
        data = client.post("/webhook", json=_payload(clock, timestamp=clock.now.timestamp() * 1000)).json()

        assert data["action"] == "answered"
        assert data["replies"] == [format_answer(llm.answer)]
