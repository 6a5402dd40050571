"""Delivery ETA estimation.

The default estimator is crude: a fixed preparation window plus
one minute per kilometre, with no traffic or routing. Callers depend on the
``DeliveryEstimator`` interface so that a routed estimator can replace it.
"""

import math
from abc import ABC, abstractmethod

UNKNOWN_ETA = "N/A"


def format_duration(total_minutes: int) -> str:
    """``"1h 5m"``, ``"2h"`` or ``"45 mins"``."""
    if total_minutes >= 60:
        hours, minutes = divmod(total_minutes, 60)
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{total_minutes} mins"


class DeliveryEstimator(ABC):
    """Maps a delivery distance to an expected duration."""

    @abstractmethod
    def estimate_minutes(self, distance_km: float) -> int:
        """Return the expected delivery time in whole minutes."""
        ...

    def estimate(self, distance_km: float | None) -> str:
        if distance_km is None:
            return UNKNOWN_ETA
        return format_duration(self.estimate_minutes(distance_km))


class FixedBaseEstimator(DeliveryEstimator):
    """``base_minutes`` plus ``minutes_per_km`` for every started kilometre."""

    def __init__(self, base_minutes: int = 60, minutes_per_km: int = 1) -> None:
        self.base_minutes = base_minutes
        self.minutes_per_km = minutes_per_km

    def estimate_minutes(self, distance_km: float) -> int:
        return self.base_minutes + math.ceil(max(distance_km, 0.0)) * self.minutes_per_km


DEFAULT_ESTIMATOR = FixedBaseEstimator()
