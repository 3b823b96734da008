"""Health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Body of GET /health/, polled by load balancers."""

    status: Literal["ok"] = "ok"
    environment: str = Field(description="APP_ENV of the running instance")
    database: Literal["connected", "disconnected"]
