# tests/api_server/routers/test_routes.py
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api_server.main import app
from funnels.engine import LEAD_SUBSCRIBED, NEW_POST_PUBLISHED, get_funnel_engine

EMAIL_FUNNEL = {
    "name": "Welcome",
    "trigger": LEAD_SUBSCRIBED,
    "nodes": [
        {"id": "e", "type": "EMAIL", "data": {"subject": "Hi {{name}}", "content": "Body"}, "next_node_id": None},
    ],
    "start_node_id": "e",
}


@pytest.fixture
def client(engine):
    """Test client bound to the in-memory engine, without the worker lifespan."""
    app.dependency_overrides[get_funnel_engine] = lambda: engine
    with patch("api_server.auth.get_api_key", return_value=None):
        yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestFunnelRoutes:
    """Test /api/v1/funnels."""

    def test_create_list_get_delete(self, client):
        created = client.post("/api/v1/funnels", json=EMAIL_FUNNEL)
        assert created.status_code == 201
        funnel_id = created.json()["id"]

        listed = client.get("/api/v1/funnels").json()["funnels"]
        assert [f["id"] for f in listed] == [funnel_id]

        fetched = client.get(f"/api/v1/funnels/{funnel_id}").json()
        assert fetched["nodes"][0]["type"] == "EMAIL"

        assert client.delete(f"/api/v1/funnels/{funnel_id}").status_code == 204
        assert client.get(f"/api/v1/funnels/{funnel_id}").status_code == 404
        assert client.delete(f"/api/v1/funnels/{funnel_id}").status_code == 404

    def test_rejects_dangling_reference(self, client):
        body = dict(EMAIL_FUNNEL, start_node_id="missing")
        assert client.post("/api/v1/funnels", json=body).status_code == 422

    def test_rejects_unknown_node_type(self, client):
        body = dict(EMAIL_FUNNEL, nodes=[{"id": "e", "type": "SMS"}])
        assert client.post("/api/v1/funnels", json=body).status_code == 422

    def test_default_post_update_funnel(self, client):
        response = client.post("/api/v1/funnels/defaults/post-update")

        assert response.status_code == 201
        assert response.json()["trigger"] == NEW_POST_PUBLISHED
        assert len(client.get("/api/v1/whatsapp-templates").json()["templates"]) == 1

    def test_save_template(self, client):
        response = client.post("/api/v1/whatsapp-templates", json={"id": "t1", "content": "Oi {{name}}"})
        assert response.status_code == 201
        assert response.json()["type"] == "text"


class TestLeadAndTriggerRoutes:
    """Test /api/v1/leads and /api/v1/triggers."""

    def test_subscribe_starts_funnel(self, client, email_sender):
        client.post("/api/v1/funnels", json=EMAIL_FUNNEL)

        response = client.post("/api/v1/leads", json={"email": "Ana@Example.com", "name": "Ana"})

        assert response.status_code == 201
        lead = response.json()
        assert lead["email"] == "ana@example.com"
        email_sender.send.assert_called_once_with("ana@example.com", "Hi Ana", "Body")

        executions = client.get("/api/v1/executions", params={"lead_id": lead["id"]}).json()
        assert executions["total"] == 1
        assert executions["executions"][0]["status"] == "completed"

    def test_get_lead(self, client, lead):
        assert client.get(f"/api/v1/leads/{lead.id}").json()["email"] == lead.email
        assert client.get("/api/v1/leads/nope").status_code == 404
        assert len(client.get("/api/v1/leads", params={"status": "active"}).json()["leads"]) == 1

    def test_tag_fires_trigger_once(self, client, lead, email_sender):
        client.post("/api/v1/funnels", json=dict(EMAIL_FUNNEL, trigger="tag_added:vip"))

        first = client.post(f"/api/v1/leads/{lead.id}/tags", json={"tag": "vip"}).json()
        second = client.post(f"/api/v1/leads/{lead.id}/tags", json={"tag": "vip"}).json()

        assert first["added"] is True
        assert second["added"] is False
        email_sender.send.assert_called_once()

    def test_tag_missing_lead(self, client):
        assert client.post("/api/v1/leads/nope/tags", json={"tag": "vip"}).status_code == 404

    def test_trigger_for_lead(self, client, lead):
        client.post("/api/v1/funnels", json=dict(EMAIL_FUNNEL, trigger="webinar"))

        response = client.post("/api/v1/triggers", json={"trigger": "webinar", "lead_id": lead.id})

        assert response.status_code == 200
        assert response.json()["created"] == 1

    def test_trigger_missing_lead(self, client):
        response = client.post("/api/v1/triggers", json={"trigger": "webinar", "lead_id": "nope"})
        assert response.status_code == 404

    def test_broadcast(self, client, lead, email_sender):
        client.post("/api/v1/funnels", json=dict(EMAIL_FUNNEL, trigger=NEW_POST_PUBLISHED))

        response = client.post(
            "/api/v1/triggers/broadcast",
            json={"trigger": NEW_POST_PUBLISHED, "context": {"post_title": "T"}},
        )

        assert response.json()["created"] == 1
        email_sender.send.assert_called_once()


class TestExecutionRoutes:
    """Test /api/v1/executions."""

    def test_process_and_get(self, client, lead, clock, email_sender):
        funnel = dict(
            EMAIL_FUNNEL,
            nodes=[
                {"id": "d", "type": "DELAY", "data": {"hours": 1}, "next_node_id": "e"},
                EMAIL_FUNNEL["nodes"][0],
            ],
            start_node_id="d",
        )
        client.post("/api/v1/funnels", json=funnel)
        client.post("/api/v1/triggers", json={"trigger": LEAD_SUBSCRIBED, "lead_id": lead.id})

        [execution] = client.get("/api/v1/executions", params={"status": "waiting"}).json()["executions"]
        assert execution["current_node_id"] == "e"

        clock.advance(hours=1)
        report = client.post("/api/v1/executions/process").json()

        assert report["completed"] == 1
        assert client.get(f"/api/v1/executions/{execution['id']}").json()["status"] == "completed"
        email_sender.send.assert_called_once()

    def test_missing_execution(self, client):
        assert client.get("/api/v1/executions/nope").status_code == 404


def test_api_key_enforced(engine):
    app.dependency_overrides[get_funnel_engine] = lambda: engine
    try:
        with patch("api_server.auth.get_api_key", return_value="secret"):
            client = TestClient(app)
            assert client.get("/api/v1/funnels").status_code == 401
            assert client.get("/api/v1/funnels", headers={"X-API-Key": "wrong"}).status_code == 403
            assert client.get("/api/v1/funnels", headers={"X-API-Key": "secret"}).status_code == 200
    finally:
        app.dependency_overrides.clear()
