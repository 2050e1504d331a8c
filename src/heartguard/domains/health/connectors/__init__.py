"""Health data producers: the source of readings fed into the record store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class HealthDataProducer(Protocol):
    """Abstract interface for reading the current health metrics.

    The monitoring loop calls these methods without knowing whether values
    come from a device, a simulator, or a scripted test fixture.
    """

    async def get_heart_rate(self) -> int:
        """Current heart rate in BPM."""
        ...

    async def get_blood_oxygen(self) -> int:
        """Blood oxygen saturation in percent."""
        ...

    async def get_steps(self) -> int:
        """Steps taken today."""
        ...

    async def get_calories(self) -> int:
        """Calories burned today."""
        ...

    async def get_distance(self) -> float:
        """Distance walked today in kilometers."""
        ...

    async def get_respiratory_rate(self) -> int:
        """Breaths per minute."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the producer: 'simulated', 'scripted', ..."""
        ...
