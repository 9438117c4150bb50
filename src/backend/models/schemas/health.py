"""
Health check API schemas.

Provides response models for health, readiness, and liveness probes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DatabaseHealth(BaseModel):
    """Database connection pool health (postgres session store only)."""

    healthy: bool = Field(..., description="Database is accessible")
    pool_size: int = Field(default=0, ge=0, description="Total pool size")
    pool_free: int = Field(default=0, ge=0, description="Available connections")
    pool_used: int = Field(default=0, ge=0, description="Active connections")


class HealthResponse(BaseModel):
    """Basic service health."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "session_store": "memory",
                "active_sessions": 3,
            }
        }
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    session_store: str = Field(..., description="Configured session store backend")
    active_sessions: int = Field(default=0, ge=0, description="Sessions resident in memory")
    database: DatabaseHealth | None = Field(default=None, description="Database health")


class ReadinessResponse(BaseModel):
    """Readiness: per-agent tool backend health."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "Degraded",
                "dependencies": {"github": "Healthy", "azure": "Unhealthy", "personal": "Healthy"},
            }
        }
    )

    status: Literal["Ready", "Degraded"] = Field(..., description="Ready when every dependency is healthy")
    dependencies: dict[str, Literal["Healthy", "Unhealthy"]] = Field(
        default_factory=dict, description="Health per agent tool backend"
    )


class LivenessResponse(BaseModel):
    """Kubernetes-style liveness probe response."""

    alive: bool = Field(default=True, description="Process is running")
