"""Schema for the health endpoint."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"] = Field(
        default="ok",
        description="degraded when the service runs but PostgreSQL is unreachable",
    )
    service: str = "medmap-auth"
    environment: Literal["dev", "prod"]
    database: Literal["connected", "disconnected"]
