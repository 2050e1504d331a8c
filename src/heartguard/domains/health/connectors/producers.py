"""Concrete HealthDataProducer implementations."""

from __future__ import annotations

import itertools
import random
from datetime import date, datetime
from typing import Callable, Iterable

from heartguard.core.storage.models import now_ms
from heartguard.domains.health.domain_logic.aggregator import round_half_up

CALORIES_PER_STEP = 0.045
METERS_PER_STEP = 0.762  # average stride
MAX_DAILY_STEPS = 30000

# (base multiplier, variation span) per activity level
ACTIVITY_PROFILES = {
    "resting": (1.0, 5),
    "walking": (1.3, 10),
    "running": (1.8, 15),
    "exercising": (2.0, 20),
}


def calories_for_steps(steps: int) -> int:
    return round_half_up(steps * CALORIES_PER_STEP)


def distance_for_steps(steps: int) -> float:
    """Kilometers walked, to two decimal places."""
    return round(steps * METERS_PER_STEP / 1000, 2)


class SimulatedHealthProducer:
    """Random-walk readings for a median healthy adult.

    Step and calorie counters accumulate through the day and reset when the
    local date changes. Pass a seeded ``random.Random`` for reproducible runs.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or now_ms
        self._steps = 0
        self._calories = 0
        self._day = self._local_date()

    def _local_date(self) -> date:
        return datetime.fromtimestamp(self._clock() / 1000).date()

    def _roll_day(self) -> None:
        today = self._local_date()
        if today != self._day:
            self._steps = 0
            self._calories = 0
            self._day = today

    async def get_heart_rate(self) -> int:
        """70 BPM +/- 10, with a 10% chance of a spike of up to +/- 20."""
        variation = self._rng.random() * 20 - 10
        spike = (self._rng.random() - 0.5) * 40 if self._rng.random() < 0.1 else 0
        heart_rate = round_half_up(70 + variation + spike)
        return max(45, min(180, heart_rate))

    async def get_blood_oxygen(self) -> int:
        return round_half_up(97 + self._rng.random() * 3 - 1)

    async def get_steps(self) -> int:
        """Adds 10-30 steps per call, capped at the daily maximum."""
        self._roll_day()
        self._steps = min(self._steps + self._rng.randint(10, 30), MAX_DAILY_STEPS)
        return self._steps

    async def get_calories(self) -> int:
        self._roll_day()
        self._calories = calories_for_steps(self._steps)
        return self._calories

    async def get_distance(self) -> float:
        self._roll_day()
        return distance_for_steps(self._steps)

    async def get_respiratory_rate(self) -> int:
        return round_half_up(16 + self._rng.random() * 4 - 2)

    def simulate_heart_rate(self, base_rate: int = 70, activity: str = "resting") -> int:
        """Heart rate for an activity level; unknown activities count as resting."""
        multiplier, span = ACTIVITY_PROFILES.get(activity, ACTIVITY_PROFILES["resting"])
        variation = (self._rng.random() - 0.5) * span
        return round_half_up(base_rate * multiplier + variation)

    def daily_totals(self) -> dict[str, int]:
        self._roll_day()
        return {"steps": self._steps, "calories": self._calories}

    def reset_daily_counters(self) -> None:
        self._steps = 0
        self._calories = 0
        self._day = self._local_date()

    @property
    def data_source(self) -> str:
        return "simulated"


class ScriptedHealthProducer:
    """Replays fixed readings in a loop. Used as a deterministic fixture.

    Calories and distance are derived from the most recent step count.
    """

    def __init__(
        self,
        heart_rates: Iterable[int] = (72,),
        blood_oxygen: Iterable[int] = (97,),
        steps: Iterable[int] = (1000,),
        respiratory_rates: Iterable[int] = (16,),
    ) -> None:
        self._heart_rates = itertools.cycle(list(heart_rates))
        self._blood_oxygen = itertools.cycle(list(blood_oxygen))
        self._steps = itertools.cycle(list(steps))
        self._respiratory_rates = itertools.cycle(list(respiratory_rates))
        self._last_steps = 0

    async def get_heart_rate(self) -> int:
        return next(self._heart_rates)

    async def get_blood_oxygen(self) -> int:
        return next(self._blood_oxygen)

    async def get_steps(self) -> int:
        self._last_steps = next(self._steps)
        return self._last_steps

    async def get_calories(self) -> int:
        return calories_for_steps(self._last_steps)

    async def get_distance(self) -> float:
        return distance_for_steps(self._last_steps)

    async def get_respiratory_rate(self) -> int:
        return next(self._respiratory_rates)

    @property
    def data_source(self) -> str:
        return "scripted"
