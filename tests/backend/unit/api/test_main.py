"""Tests for application wiring and lifespan."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from api import main
from core.orchestrator import SessionOrchestrator
from integrations.tool_clients import PersonalToolClient, StubToolClient
from models.session_models import AgentType


def fake_backend_factory() -> MagicMock:
    backend = MagicMock()
    backend.aclose = AsyncMock()
    return backend


def test_lifespan_wires_in_memory_core() -> None:
    backend = fake_backend_factory()
    with patch.object(main.OpenAICompletionBackend, "from_settings", return_value=backend):
        with TestClient(main.app) as client:
            state = main.app.state
            assert isinstance(state.orchestrator, SessionOrchestrator)
            assert state.db_pool is None
            assert state.gateway_http is None
            assert isinstance(state.tool_gateway.get_client(AgentType.GITHUB), StubToolClient)
            assert isinstance(state.tool_gateway.get_client(AgentType.PERSONAL), PersonalToolClient)

            assert client.get("/api/v1/health/live").json() == {"alive": True}
            agents = client.get("/api/v1/agents").json()["agents"]
            assert len(agents) == len(AgentType)

    backend.aclose.assert_awaited_once()


def test_request_id_header_and_metrics_mount() -> None:
    with patch.object(main.OpenAICompletionBackend, "from_settings", return_value=fake_backend_factory()):
        with TestClient(main.app) as client:
            response = client.get("/api/v1/health")
            metrics = client.get("/metrics/")

    assert response.status_code == 200
    assert response.headers["X-Request-ID"].startswith("req_")
    assert metrics.status_code == 200
    assert "opshub_sessions_active" in metrics.text


def test_session_round_trip_through_app() -> None:
    backend = fake_backend_factory()
    backend.complete = AsyncMock(return_value="Here are your repos.")
    with patch.object(main.OpenAICompletionBackend, "from_settings", return_value=backend):
        with TestClient(main.app) as client:
            created = client.post("/api/v1/sessions", json={"user_id": "u1", "agent_type": "github"}).json()
            reply = client.post(f"/api/v1/sessions/{created['session_id']}/messages", json={"content": "repos?"})

    assert reply.status_code == 200
    assert reply.json()["content"] == "Here are your repos."
    # Stub tool client exposes no tools, so none are offered to the model
    assert backend.complete.call_args.args[1] == []
