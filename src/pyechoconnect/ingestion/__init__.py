"""Ingestion layer.

This package contains adapters that receive telemetry from the Alexa push
channel and emit normalized domain events.
"""

__all__: list[str] = []
