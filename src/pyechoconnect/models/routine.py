"""Routine (automation) models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from pyechoconnect.ingestion.normalize import dig, safe_str
from pyechoconnect.models._base import EchoBaseModel


class Routine(EchoBaseModel):
    """An Alexa routine from ``/api/behaviors/v2/automations``."""

    automation_id: str = Field(default="", validation_alias=AliasChoices("automationId", "automation_id"))
    name: str = ""
    """Routine name; falls back to the first voice trigger utterance."""
    status: str = ""
    """``"ENABLED"`` or ``"DISABLED"``."""
    sequence: dict[str, Any] = Field(default_factory=dict)
    """Sequence definition replayed when the routine is executed."""

    @model_validator(mode="before")
    @classmethod
    def _name_from_trigger(cls, values: Any) -> Any:
        if not isinstance(values, dict) or safe_str(values.get("name")):
            return values
        triggers = values.get("triggers")
        if isinstance(triggers, list):
            for trigger in triggers:
                utterance = safe_str(dig(trigger, "payload", "utterance"))
                if utterance:
                    return {**values, "name": utterance}
        return values

    @property
    def is_valid(self) -> bool:
        """Whether the routine can be listed and executed."""
        return bool(self.automation_id and self.name and self.sequence)

    @property
    def enabled(self) -> bool:
        return self.status.upper() != "DISABLED"
