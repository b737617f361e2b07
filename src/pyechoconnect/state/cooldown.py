"""Global cross-device call cooldown."""

from __future__ import annotations

import logging

from pyechoconnect._clock import Clock, TimerHandle

_logger = logging.getLogger(__name__)


class GlobalCooldown:
    """Suppresses voice-trigger detection on every device for a while.

    At most one cooldown is active at a time.  Expiry is driven purely by
    a clock timer; :attr:`active` does not compare timestamps.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._active = False
        self._winning_serial: str | None = None
        self._expires_at: float | None = None
        self._timer: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def winning_serial(self) -> str | None:
        """Serial whose detection started the current cooldown."""
        return self._winning_serial

    @property
    def expires_at(self) -> float | None:
        return self._expires_at

    def remaining(self) -> float:
        if not self._active or self._expires_at is None:
            return 0.0
        return max(self._expires_at - self._clock.now(), 0.0)

    def activate(self, serial: str, duration: float) -> None:
        """Start a cooldown won by *serial*, replacing any running one."""
        self._cancel_timer()
        self._active = True
        self._winning_serial = serial
        self._expires_at = self._clock.now() + duration
        self._timer = self._clock.call_later(duration, self._expire)
        _logger.debug("Call cooldown active for %.1fs (device %s)", duration, serial)

    def clear(self) -> None:
        self._cancel_timer()
        self._active = False
        self._winning_serial = None
        self._expires_at = None

    def _expire(self) -> None:
        _logger.debug("Call cooldown expired (device %s)", self._winning_serial)
        self._timer = None
        self._active = False
        self._winning_serial = None
        self._expires_at = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
