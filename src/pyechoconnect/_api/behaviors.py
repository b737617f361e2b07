"""Sequence and routine endpoints: /api/behaviors/preview, /api/behaviors/v2/automations.

Speech, text commands and volume changes are all sent as single-node
behavior sequences.  Routines replay their stored sequence against the
target device.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pyechoconnect._constants import ROUTINES_ENDPOINT, SEQUENCE_ENDPOINT
from pyechoconnect._transport import Transport
from pyechoconnect.exceptions import EchoValidationError
from pyechoconnect.models.routine import Routine

_logger = logging.getLogger(__name__)

_SEQUENCE_TYPE = "com.amazon.alexa.behaviors.model.Sequence"
_NODE_TYPE = "com.amazon.alexa.behaviors.model.OpaquePayloadOperationNode"
_TELL_ALEXA_SKILL = "amzn1.ask.1p.tellalexa"

# Placeholders the vendor stores inside routine sequences.
_PLACEHOLDER_SERIAL = "ALEXA_CURRENT_DSN"
_PLACEHOLDER_TYPE = "ALEXA_CURRENT_DEVICE_TYPE"
_PLACEHOLDER_CUSTOMER = "ALEXA_CUSTOMER_ID"


def _locale(language: str) -> str:
    return language.replace("_", "-")


def build_sequence_node(
    command: str,
    value: Any,
    *,
    serial: str,
    device_type: str,
    customer_id: str,
    language: str,
) -> dict[str, Any]:
    """Build the operation node for one sequence *command*.

    Supported commands: ``speak``, ``ssml``, ``announcement``,
    ``textCommand`` and ``volume``.
    """
    locale = _locale(language)
    base_payload: dict[str, Any] = {
        "deviceType": device_type,
        "deviceSerialNumber": serial,
        "customerId": customer_id,
        "locale": locale,
    }

    if command in ("speak", "ssml"):
        return {
            "type": "Alexa.Speak",
            "operationPayload": {**base_payload, "textToSpeak": str(value)},
        }
    if command == "announcement":
        text = str(value)
        return {
            "type": "AlexaAnnouncement",
            "operationPayload": {
                "expireAfter": "PT5S",
                "content": [
                    {
                        "locale": locale,
                        "display": {"title": "Announcement", "body": text},
                        "speak": {"type": "text", "value": text},
                    }
                ],
                "target": {
                    "customerId": customer_id,
                    "devices": [{"deviceSerialNumber": serial, "deviceTypeId": device_type}],
                },
            },
        }
    if command == "textCommand":
        return {
            "type": "Alexa.TextCommand",
            "skillId": _TELL_ALEXA_SKILL,
            "operationPayload": {**base_payload, "text": str(value)},
        }
    if command == "volume":
        return {
            "type": "Alexa.DeviceControls.Volume",
            "operationPayload": {**base_payload, "value": int(value)},
        }
    raise EchoValidationError(f"Unsupported sequence command: {command!r}")


def build_sequence_body(node: Mapping[str, Any], *, behavior_id: str = "PREVIEW") -> dict[str, Any]:
    sequence = {
        "@type": _SEQUENCE_TYPE,
        "startNode": {"@type": _NODE_TYPE, **node},
    }
    return {
        "behaviorId": behavior_id,
        "sequenceJson": json.dumps(sequence),
        "status": "ENABLED",
    }


async def send_sequence(transport: Transport, body: Mapping[str, Any]) -> Any:
    return await transport.request("POST", SEQUENCE_ENDPOINT, json_body=dict(body))


def parse_routines(response: Any) -> list[Routine]:
    """Parse the automation list, dropping entries without id, name or sequence."""
    if not isinstance(response, list):
        return []
    routines: list[Routine] = []
    for item in response:
        if not isinstance(item, dict):
            continue
        routine = Routine.model_validate(item)
        if routine.is_valid:
            routines.append(routine)
        else:
            _logger.debug("Skipping incomplete routine %s", item.get("automationId"))
    return routines


async def fetch_routines(transport: Transport, limit: int = 2000) -> list[Routine]:
    response = await transport.request("GET", ROUTINES_ENDPOINT, params={"limit": str(limit)})
    return parse_routines(response)


def build_routine_body(
    routine: Routine,
    *,
    serial: str,
    device_type: str,
    customer_id: str,
) -> dict[str, Any]:
    """Bind *routine*'s sequence to one device and wrap it for execution."""
    sequence_json = (
        json.dumps(routine.sequence)
        .replace(_PLACEHOLDER_SERIAL, serial)
        .replace(_PLACEHOLDER_TYPE, device_type)
        .replace(_PLACEHOLDER_CUSTOMER, customer_id)
    )
    return {
        "behaviorId": routine.automation_id,
        "sequenceJson": sequence_json,
        "status": "ENABLED",
    }
