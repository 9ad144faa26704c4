from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from ..domain.errors import DeviceFailure, DeviceUnavailable

logger = logging.getLogger(__name__)


class GpioDeviceController:
    """
    Relay board on Raspberry Pi GPIO pins (one pin per actor).
    gpiozero calls are blocking, so they run in the default executor.
    """

    def __init__(self, outputs: Mapping[str, Mapping[str, Any]], active_high: bool = True) -> None:
        self._pins: dict[str, int] = {}
        for actor_id, out in outputs.items():
            if "pin" not in out:
                logger.error("Actor %s has no GPIO pin configured, it cannot be driven", actor_id)
                continue
            self._pins[actor_id] = int(out["pin"])
        self._active_high = active_high
        self._devices: dict[str, Any] = {}

    async def open(self) -> None:
        if not self._pins:
            raise DeviceUnavailable("No GPIO outputs configured")
        try:
            from gpiozero import OutputDevice
        except ImportError as e:
            raise DeviceUnavailable("gpiozero is not installed") from e

        for actor_id, pin in self._pins.items():
            try:
                # initial_value=False: every output starts OFF until the first tick decides.
                self._devices[actor_id] = OutputDevice(
                    pin, active_high=self._active_high, initial_value=False
                )
            except Exception as e:
                await self.close()
                raise DeviceUnavailable(f"GPIO{pin} for {actor_id}: {e}") from e
        logger.info("GPIO controller ready (pins=%s)", self._pins)

    async def close(self) -> None:
        for dev in self._devices.values():
            dev.close()
        self._devices.clear()

    async def apply(self, actor_id: str, active: bool) -> None:
        dev = self._devices.get(actor_id)
        if dev is None:
            raise DeviceFailure(actor_id, "no GPIO output configured")
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, dev.on if active else dev.off)
        except Exception as e:
            raise DeviceFailure(actor_id, f"GPIO{self._pins[actor_id]}: {e}") from e
        logger.info("GPIO%d (%s) -> %s", self._pins[actor_id], actor_id, "ON" if active else "OFF")
