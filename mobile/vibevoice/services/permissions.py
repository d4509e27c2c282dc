"""Capture permission checks."""

from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger("vibevoice.permissions")


class PermissionOracle(Protocol):
    def has_capture_permission(self) -> bool:
        ...

    def request_capture_permission(self) -> None:
        ...


class InputDevicePermission:
    """Desktop stand-in: capture is allowed when PortAudio exposes an input device."""

    def has_capture_permission(self) -> bool:
        try:
            import sounddevice as sd  # type: ignore

            device = sd.query_devices(kind="input")
        except Exception as exc:
            LOGGER.warning("No usable input device: %s", exc)
            return False
        return bool(device) and int(device.get("max_input_channels", 0)) > 0

    def request_capture_permission(self) -> None:
        # Desktop platforms grant microphone access outside the app.
        LOGGER.info("Microphone access is granted by the operating system settings")


__all__ = ["InputDevicePermission", "PermissionOracle"]
