"""
Health check endpoints (v1).

Provides health, readiness, and liveness probes. Readiness reflects the
tool backend behind every registered agent type.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import DB, AppSettings, Gateway, Orchestrator
from models.schemas.health import (
    DatabaseHealth,
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)
from utils.db_utils import check_pool_health

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Service health with session store statistics.",
    responses={
        200: {
            "description": "System health status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "session_store": "postgres",
                        "active_sessions": 3,
                        "database": {
                            "healthy": True,
                            "pool_size": 10,
                            "pool_free": 8,
                            "pool_used": 2,
                        },
                    }
                }
            },
        }
    },
)
async def health_check(settings: AppSettings, orchestrator: Orchestrator, db: DB) -> HealthResponse:
    """Basic health check endpoint."""
    database = None
    status = "healthy"
    if db is not None:
        pool_health = await check_pool_health(db)
        database = DatabaseHealth(
            healthy=pool_health.get("healthy", False),
            pool_size=pool_health.get("pool_size", 0),
            pool_free=pool_health.get("free_connections", 0),
            pool_used=pool_health.get("used_connections", 0),
        )
        if not database.healthy:
            status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        session_store=settings.session_store,
        active_sessions=orchestrator.active_session_count,
        database=database,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Probes the tool backend of every agent type. Degraded when any probe fails.",
    responses={
        200: {
            "description": "Per-agent tool backend health",
            "content": {
                "application/json": {
                    "example": {
                        "status": "Degraded",
                        "dependencies": {"github": "Healthy", "azure": "Unhealthy"},
                    }
                }
            },
        },
    },
)
async def readiness_check(gateway: Gateway) -> ReadinessResponse:
    """Aggregate tool backend health."""
    health = await gateway.get_health_status()
    return ReadinessResponse(
        status="Ready" if all(health.values()) else "Degraded",
        dependencies={t.value: "Healthy" if ok else "Unhealthy" for t, ok in health.items()},
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Kubernetes-style liveness probe to confirm process is running.",
    responses={
        200: {
            "description": "Process alive",
            "content": {"application/json": {"example": {"alive": True}}},
        }
    },
)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe."""
    return LivenessResponse(alive=True)
