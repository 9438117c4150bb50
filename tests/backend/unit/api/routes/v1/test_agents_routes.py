"""Tests for the agent catalog endpoints."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.middleware.exception_handlers import register_exception_handlers
from api.routes.v1 import router as v1_router
from core.agent_catalog import DEFAULT_AGENTS, AgentCatalog


@pytest.fixture
def client(tool_gateway: Any) -> Generator[TestClient, None, None]:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(v1_router, prefix="/api/v1")
    app.state.catalog = AgentCatalog.with_disabled(["devops"])
    app.state.tool_gateway = tool_gateway
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


class TestListAgents:
    def test_lists_enabled_agents(self, client: TestClient) -> None:
        response = client.get("/api/v1/agents")

        assert response.status_code == 200
        agents = response.json()["agents"]
        assert len(agents) == len(DEFAULT_AGENTS) - 1
        assert "devops" not in {a["agent_type"] for a in agents}
        assert all(a["is_enabled"] for a in agents)
        assert "system_prompt" not in agents[0]

    def test_assigned_filter(self, client: TestClient) -> None:
        response = client.get("/api/v1/agents", params=[("assigned", "azure"), ("assigned", "github")])

        assert [a["agent_type"] for a in response.json()["agents"]] == ["github", "azure"]

    def test_assigned_but_disabled(self, client: TestClient) -> None:
        response = client.get("/api/v1/agents", params={"assigned": "devops"})
        assert response.json()["agents"] == []

    def test_invalid_assigned_type(self, client: TestClient) -> None:
        assert client.get("/api/v1/agents", params={"assigned": "bogus"}).status_code == 422


class TestAgentHealth:
    @pytest.mark.parametrize(
        ("agent_type", "healthy"),
        [("github", True), ("azure", False), ("personal", False)],
    )
    def test_probe(self, client: TestClient, agent_type: str, healthy: bool) -> None:
        response = client.get(f"/api/v1/agents/{agent_type}/health")

        assert response.status_code == 200
        assert response.json() == {"agent_type": agent_type, "healthy": healthy}

    def test_unknown_type(self, client: TestClient) -> None:
        response = client.get("/api/v1/agents/bogus/health")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "AGT_5001"
