"""Tests for the /ai/{slug} agent endpoints, including the SSE turn flow."""

from messageai.db.models import Lead, MessageRole, Product
from messageai.orchestrator.agent.stream_events import TextDelta, TurnFinished
from tests.helpers import text_turn, tool_call
from tests.helpers.ids import AUTH_HEADERS, OTHER_TEAM_ID, TEAM_ID, USER_ID
from tests.helpers.sse import comment_lines, parse_sse

BASE = "/api/v1/ai"


def _start(client, slug: str, body: dict | None = None) -> str:
    response = client.post(f"{BASE}/{slug}/start", json=body or {}, headers=AUTH_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()["conversation_id"]


def _send(client, slug: str, conversation_id: str, message: str):
    return client.post(
        f"{BASE}/{slug}/message",
        json={"conversationId": conversation_id, "message": message},
        headers=AUTH_HEADERS,
    )


class TestStart:
    def test_product_definer_start_returns_greeting(self, client):
        response = client.post(
            f"{BASE}/product-definer/start", json={}, headers=AUTH_HEADERS
        )
        assert response.status_code == 201
        body = response.json()
        assert body["conversation_id"]
        assert "product" in body["message"].lower()

    def test_start_without_body(self, client):
        response = client.post(f"{BASE}/product-definer/start", headers=AUTH_HEADERS)
        assert response.status_code == 201

    def test_missing_identity_is_401(self, client):
        response = client.post(f"{BASE}/product-definer/start", json={})
        assert response.status_code == 401

    def test_unknown_agent_is_404(self, client):
        response = client.post(f"{BASE}/nope/start", json={}, headers=AUTH_HEADERS)
        assert response.status_code == 404

    def test_new_icp_requires_product_id(self, client):
        response = client.post(
            f"{BASE}/product-definer/start",
            json={"mode": "new_icp"},
            headers=AUTH_HEADERS,
        )
        assert response.status_code == 400

    def test_invalid_mode_is_400(self, client):
        response = client.post(
            f"{BASE}/product-definer/start",
            json={"mode": "sideways"},
            headers=AUTH_HEADERS,
        )
        assert response.status_code == 400

    def test_campaign_advisor_start_writes_context_and_greeting(
        self, client, store, product, icp
    ):
        conversation_id = _start(
            client,
            "campaign-advisor",
            {"product_id": product.id, "icp_id": icp.id},
        )
        messages = store.list_messages(conversation_id, USER_ID, TEAM_ID)
        assert [m["role"] for m in messages] == ["system", "assistant"]
        assert messages[0]["content"].startswith("Product context:")
        assert "Acme CRM" in messages[1]["content"]

    def test_campaign_advisor_rejects_foreign_product(self, client, db_session, icp):
        other = Product(team_id=OTHER_TEAM_ID, name="Not yours")
        db_session.add(other)
        db_session.commit()
        response = client.post(
            f"{BASE}/campaign-advisor/start",
            json={"product_id": other.id, "icp_id": icp.id},
            headers=AUTH_HEADERS,
        )
        assert response.status_code == 404

    def test_discovery_bot_start_creates_lead(self, client, db_session, product):
        conversation_id = _start(
            client,
            "discovery-bot",
            {"product_id": product.id, "name": "Dana Lee", "email": "dana@example.com"},
        )
        lead = db_session.query(Lead).one()
        assert lead.first_name == "Dana"
        assert lead.last_name == "Lee"
        status = client.get(
            f"{BASE}/discovery-bot/status/{conversation_id}", headers=AUTH_HEADERS
        ).json()
        assert status["lead_id"] == lead.id
        assert status["score_calculated"] is False


class TestMessageStream:
    """One turn streams content, tool results and a terminal frame."""

    def test_end_to_end_turn(self, client, backend, store):
        conversation_id = _start(client, "product-definer")
        backend.add_script(
            [TextDelta("Hello, "), TextDelta("world")]
            + tool_call(0, "save_product", {"name": "Acme"})
            + [TurnFinished("tool_use")]
        )

        response = _send(client, "product-definer", conversation_id, "Define Acme")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

        frames = parse_sse(response.text)
        assert [f["event"] for f in frames] == [
            "content",
            "content",
            "tool_result",
            "complete",
        ]
        assert frames[0]["data"] == {"type": "content", "delta": "Hello, "}
        assert frames[1]["data"] == {"type": "content", "delta": "world"}
        tool_frame = frames[2]["data"]
        assert tool_frame["type"] == "tool_result"
        assert tool_frame["tool"] == "save_product"
        assert tool_frame["success"] is True
        product_id = tool_frame["product_id"]
        assert frames[3]["data"] == {"type": "complete"}
        assert "connected" in comment_lines(response.text)

        messages = store.list_messages(conversation_id, USER_ID, TEAM_ID)
        assert [m["role"] for m in messages] == [
            MessageRole.user.value,
            MessageRole.system.value,
            MessageRole.assistant.value,
        ]
        assert messages[0]["content"] == "Define Acme"
        assert product_id in messages[1]["content"]
        assert messages[2]["content"] == "Hello, world"

    def test_status_reflects_saved_product(self, client, backend):
        conversation_id = _start(client, "product-definer")
        backend.add_script(tool_call(0, "save_product", {"name": "Acme"}) + [TurnFinished()])
        _send(client, "product-definer", conversation_id, "save")

        status = client.get(
            f"{BASE}/product-definer/status/{conversation_id}", headers=AUTH_HEADERS
        ).json()
        assert status["status"] == "active"
        assert status["product_saved"] is True
        assert status["icp_saved"] is False
        assert status["product_id"]

    def test_failed_tool_reports_error_and_completes(self, client, backend, store):
        conversation_id = _start(client, "product-definer")
        backend.add_script(
            tool_call(0, "save_icp", {"name": "Founders", "product_id": "missing"})
            + [TurnFinished()]
        )

        frames = parse_sse(_send(client, "product-definer", conversation_id, "icp").text)

        assert [f["event"] for f in frames] == ["tool_result", "complete"]
        assert frames[0]["data"]["success"] is False
        assert "not found" in frames[0]["data"]["error"]
        assert frames[0]["data"]["code"] == "E-2003"
        system = [
            m
            for m in store.list_messages(conversation_id, USER_ID, TEAM_ID)
            if m["role"] == "system"
        ]
        assert system[0]["content"] == "Error saving ICP. Please try again."

    def test_backend_error_emits_error_frame(self, client, backend, store):
        conversation_id = _start(client, "product-definer")
        backend.add_script([TextDelta("Par"), RuntimeError("socket closed")])

        frames = parse_sse(_send(client, "product-definer", conversation_id, "hi").text)

        assert [f["event"] for f in frames] == ["content", "error"]
        assert frames[1]["data"]["type"] == "error"
        assert frames[1]["data"]["code"] == "E-3001"
        assert "socket" not in frames[1]["data"]["error"]
        roles = [m["role"] for m in store.list_messages(conversation_id, USER_ID, TEAM_ID)]
        assert roles == ["user"]

    def test_empty_message_is_400_before_stream(self, client, backend):
        conversation_id = _start(client, "product-definer")
        response = _send(client, "product-definer", conversation_id, "")
        assert response.status_code == 400
        assert response.json()["error_code"] == "E-2001"
        assert backend.calls == []

    def test_unknown_conversation_is_404(self, client):
        response = _send(client, "product-definer", "does-not-exist", "hi")
        assert response.status_code == 404
        assert response.json()["error_code"] == "E-2003"

    def test_archived_conversation_is_409(self, client, store):
        conversation_id = _start(client, "product-definer")
        store.archive(conversation_id, USER_ID, TEAM_ID)
        response = _send(client, "product-definer", conversation_id, "hi")
        assert response.status_code == 409
        assert response.json()["error_code"] == "E-2002"

    def test_other_team_cannot_send(self, client):
        conversation_id = _start(client, "product-definer")
        response = client.post(
            f"{BASE}/product-definer/message",
            json={"conversation_id": conversation_id, "message": "hi"},
            headers={"X-User-Id": USER_ID, "X-Team-Id": OTHER_TEAM_ID},
        )
        assert response.status_code == 404

    def test_text_turn_persists_assistant_entry(self, client, backend, store):
        conversation_id = _start(client, "product-definer")
        backend.add_script(text_turn("What does it do?"))
        _send(client, "product-definer", conversation_id, "I have a product")
        contents = [
            m["content"] for m in store.list_messages(conversation_id, USER_ID, TEAM_ID)
        ]
        assert contents == ["I have a product", "What does it do?"]


class TestComplete:
    def test_complete_marks_conversation(self, client):
        conversation_id = _start(client, "product-definer")
        response = client.post(
            f"{BASE}/product-definer/complete",
            json={"conversation_id": conversation_id},
            headers=AUTH_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_complete_with_wrong_agent_is_404(self, client):
        conversation_id = _start(client, "product-definer")
        response = client.post(
            f"{BASE}/campaign-advisor/complete",
            json={"conversation_id": conversation_id},
            headers=AUTH_HEADERS,
        )
        assert response.status_code == 404
