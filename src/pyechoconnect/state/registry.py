"""Device registry with whole-generation swaps."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from pyechoconnect.models.device import DeviceRecord

_logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Read-mostly map of serial -> :class:`DeviceRecord`.

    The registry is never mutated in place: :meth:`replace` builds a new
    generation and swaps it in with a single assignment, so readers see
    either the previous complete generation or the new one.
    """

    def __init__(self) -> None:
        self._devices: MappingProxyType[str, DeviceRecord] = MappingProxyType({})
        self._generation = 0

    @property
    def generation(self) -> int:
        """Incremented on every successful :meth:`replace`."""
        return self._generation

    def replace(self, devices: Iterable[DeviceRecord]) -> None:
        snapshot: dict[str, DeviceRecord] = {}
        for device in devices:
            if device.serial in snapshot:
                _logger.debug("Duplicate serial %s in device list, keeping last", device.serial)
            snapshot[device.serial] = device
        self._devices = MappingProxyType(snapshot)
        self._generation += 1
        _logger.debug("Device registry generation %d: %d devices", self._generation, len(snapshot))

    def clear(self) -> None:
        self.replace(())

    def get(self, serial: str) -> DeviceRecord | None:
        return self._devices.get(serial)

    def contains(self, serial: str) -> bool:
        return serial in self._devices

    def is_online(self, serial: str) -> bool:
        device = self._devices.get(serial)
        return device is not None and device.online

    @property
    def devices(self) -> tuple[DeviceRecord, ...]:
        return tuple(self._devices.values())

    @property
    def serials(self) -> frozenset[str]:
        return frozenset(self._devices)

    def __contains__(self, serial: object) -> bool:
        return serial in self._devices

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self._devices)
