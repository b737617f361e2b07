"""Connection status model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class ConnectionStatus(BaseModel):
    """Point-in-time view of session and push health."""

    model_config = ConfigDict(frozen=True)

    authenticated: bool
    push_connected: bool
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def healthy(self) -> bool:
        return self.authenticated and self.push_connected
