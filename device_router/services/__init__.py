"""Service layer for Device Router."""

from device_router.services.device_router import DeviceRouter, ProbeResult

__all__ = [
    "DeviceRouter",
    "ProbeResult",
]
