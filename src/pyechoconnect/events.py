"""Domain events and the in-process event bus.

Every asynchronous notification the client produces is one of the frozen
models below, published on an :class:`EventBus`.  Subscriptions are keyed
by event class; subscribing to :class:`EchoEvent` receives everything.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from pyechoconnect.exceptions import EchoTimeoutError
from pyechoconnect.models.device import DeviceRecord
from pyechoconnect.models.player import PlayerDetail, QueueDetail

_logger = logging.getLogger(__name__)


class EchoEvent(BaseModel):
    """Base class of all domain events."""

    model_config = ConfigDict(frozen=True)

    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CredentialGenerated(EchoEvent):
    """A fresh credential is available and should be persisted by the host."""

    is_new_login: bool
    credential: dict[str, Any] = Field(repr=False)


class PushConnected(EchoEvent):
    pass


class PushDisconnected(EchoEvent):
    will_reconnect: bool
    reason: str = ""


class SessionConnected(EchoEvent):
    devices: tuple[DeviceRecord, ...] = ()


class SessionLost(EchoEvent):
    pass


class VolumeChanged(EchoEvent):
    serial: str
    volume: int


class PlayerChanged(EchoEvent):
    detail: PlayerDetail


class QueueChanged(EchoEvent):
    detail: QueueDetail


class VoiceTriggered(EchoEvent):
    """A device was voice-triggered (inferred from correlated telemetry)."""

    serial: str
    signals: tuple[str, ...] = ()
    detected_at: float
    """Clock time at which detection fired."""


E = TypeVar("E", bound=EchoEvent)
Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe keyed by event class."""

    def __init__(self) -> None:
        self._handlers: dict[type[EchoEvent], list[Handler]] = {}

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register *handler* for *event_type* (and its subclasses).

        Returns a callable that removes the subscription.
        """
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type)
            if handlers is None:
                return
            with contextlib.suppress(ValueError):
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(event_type, None)

        return _unsubscribe

    def publish(self, event: EchoEvent) -> None:
        """Deliver *event* to every matching handler.

        A failing handler is logged and does not stop delivery to the rest.
        """
        for event_type in type(event).__mro__:
            handlers = self._handlers.get(event_type)  # type: ignore[arg-type]
            if not handlers:
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:
                    _logger.exception("Event handler failed for %s", type(event).__name__)

    def handler_count(self, event_type: type[EchoEvent] | None = None) -> int:
        if event_type is None:
            return sum(len(handlers) for handlers in self._handlers.values())
        return len(self._handlers.get(event_type, []))

    def wait_for(
        self,
        event_type: type[E],
        *,
        predicate: Callable[[E], bool] | None = None,
        timeout: float,
    ) -> asyncio.Task[E]:
        """Wait for the next *event_type* event matching *predicate*.

        The subscription is registered when this method is called, so an
        event published between the call and the first ``await`` is not
        missed.  Cancel the returned task to give up early.

        Raises
        ------
        EchoTimeoutError
            If no matching event arrives within *timeout* seconds.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[E] = loop.create_future()

        def _on_event(event: E) -> None:
            if future.done():
                return
            if predicate is not None and not predicate(event):
                return
            future.set_result(event)

        unsubscribe = self.subscribe(event_type, _on_event)
        task = loop.create_task(self._wait(future, unsubscribe, event_type.__name__, timeout))
        # A task cancelled before its first step never reaches the finally block.
        task.add_done_callback(lambda _task: unsubscribe())
        return task

    @staticmethod
    async def _wait(
        future: asyncio.Future[E],
        unsubscribe: Callable[[], None],
        name: str,
        timeout: float,
    ) -> E:
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError as exc:
            raise EchoTimeoutError(f"No {name} event within {timeout:.1f}s", cause=exc) from exc
        finally:
            unsubscribe()
