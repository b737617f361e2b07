"""Voice-trigger ("call") detection from correlated telemetry.

The vendor has no "device was woken up" event.  When a user speaks to an
Echo, the device reliably reports an equalizer state change and a volume
change (ducking) within a few seconds.  :class:`CallDetector` tracks
those signals per device and fires :class:`~pyechoconnect.events.VoiceTriggered`
once both are seen inside the correlation window.  A global cooldown
then suppresses detection on every device, since one utterance is often
heard by several speakers.

Per-device lifecycle::

    idle -> accumulating -> fired -> idle
              |
              +-- inactivity timeout --> idle
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from pyechoconnect._clock import Clock, TimerHandle
from pyechoconnect.config import CallDetectionSettings
from pyechoconnect.events import EventBus, VoiceTriggered
from pyechoconnect.state.cooldown import GlobalCooldown
from pyechoconnect.state.registry import DeviceRegistry
from pyechoconnect.vendor import VendorEvent, VendorEventKind

_logger = logging.getLogger(__name__)

REQUIRED_SIGNALS: frozenset[VendorEventKind] = frozenset(
    {VendorEventKind.EQUALIZER_STATE_CHANGE, VendorEventKind.VOLUME_CHANGE}
)


@dataclass(frozen=True)
class TelemetryEvent:
    serial: str
    signal: VendorEventKind
    timestamp: float


@dataclass
class CallTracker:
    """Signals seen recently for one device."""

    serial: str
    events: deque[TelemetryEvent] = field(default_factory=deque)
    last_activity: float = 0.0
    inactivity_timer: TimerHandle | None = None

    def prune(self, cutoff: float) -> None:
        while self.events and self.events[0].timestamp < cutoff:
            self.events.popleft()

    def signals(self) -> frozenset[VendorEventKind]:
        return frozenset(event.signal for event in self.events)

    def cancel_timer(self) -> None:
        if self.inactivity_timer is not None:
            self.inactivity_timer.cancel()
            self.inactivity_timer = None

    def reset(self) -> None:
        self.cancel_timer()
        self.events.clear()


class CallDetector:
    """Infers voice triggers from telemetry for devices in the registry."""

    def __init__(
        self,
        *,
        registry: DeviceRegistry,
        cooldown: GlobalCooldown,
        bus: EventBus,
        clock: Clock,
        settings: CallDetectionSettings | None = None,
    ) -> None:
        self._registry = registry
        self._cooldown = cooldown
        self._bus = bus
        self._clock = clock
        self._settings = settings or CallDetectionSettings()
        self._trackers: dict[str, CallTracker] = {}
        self._sweep_timer: TimerHandle | None = None
        self._running = False

    @property
    def cooldown(self) -> GlobalCooldown:
        return self._cooldown

    @property
    def tracked_serials(self) -> frozenset[str]:
        return frozenset(self._trackers)

    def tracker(self, serial: str) -> CallTracker | None:
        return self._trackers.get(serial)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic idle-tracker sweep."""
        if self._running:
            return
        self._running = True
        self._schedule_sweep()

    def stop(self) -> None:
        self._running = False
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
            self._sweep_timer = None
        for tracker in self._trackers.values():
            tracker.cancel_timer()

    def reset(self) -> None:
        """Forget all trackers and lift the cooldown."""
        for tracker in self._trackers.values():
            tracker.cancel_timer()
        self._trackers.clear()
        self._cooldown.clear()

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def handle(self, event: VendorEvent) -> None:
        if event.kind not in REQUIRED_SIGNALS:
            return
        serial = event.serial
        if serial is None or serial not in self._registry:
            return

        if self._cooldown.active:
            _logger.debug(
                "Ignoring %s from %s: cooldown active (won by %s, %.1fs left)",
                event.kind,
                serial,
                self._cooldown.winning_serial,
                self._cooldown.remaining(),
            )
            return

        now = self._clock.now()
        tracker = self._trackers.get(serial)
        if tracker is None:
            tracker = CallTracker(serial=serial)
            self._trackers[serial] = tracker

        tracker.events.append(TelemetryEvent(serial=serial, signal=event.kind, timestamp=now))
        tracker.prune(now - self._settings.window)
        tracker.last_activity = now

        signals = tracker.signals()
        if REQUIRED_SIGNALS <= signals:
            self._fire(tracker, signals, now)
            return

        tracker.cancel_timer()
        tracker.inactivity_timer = self._clock.call_later(
            self._settings.inactivity,
            lambda: self._on_inactivity(serial),
        )

    def _fire(self, tracker: CallTracker, signals: frozenset[VendorEventKind], now: float) -> None:
        serial = tracker.serial
        self._cooldown.activate(serial, self._settings.cooldown)

        for other_serial, other in list(self._trackers.items()):
            if other_serial != serial:
                other.cancel_timer()
                del self._trackers[other_serial]

        tracker.reset()
        _logger.info("Voice trigger detected on %s", serial)
        self._bus.publish(
            VoiceTriggered(
                serial=serial,
                signals=tuple(sorted(str(signal) for signal in signals)),
                detected_at=now,
            )
        )

    def _on_inactivity(self, serial: str) -> None:
        tracker = self._trackers.get(serial)
        if tracker is None:
            return
        tracker.inactivity_timer = None
        if tracker.events:
            _logger.debug("Clearing %d unmatched signal(s) for %s", len(tracker.events), serial)
        tracker.events.clear()

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def _schedule_sweep(self) -> None:
        self._sweep_timer = self._clock.call_later(self._settings.sweep_interval, self._on_sweep)

    def _on_sweep(self) -> None:
        self._sweep_timer = None
        self.sweep()
        if self._running:
            self._schedule_sweep()

    def sweep(self) -> int:
        """Drop trackers idle longer than the configured limit; return how many."""
        cutoff = self._clock.now() - self._settings.tracker_idle
        stale = [serial for serial, tracker in self._trackers.items() if tracker.last_activity < cutoff]
        for serial in stale:
            self._trackers.pop(serial).cancel_timer()
        if stale:
            _logger.debug("Swept %d idle call tracker(s)", len(stale))
        return len(stale)
