"""Threshold evaluation for single heart-rate and blood-oxygen readings.

All functions here are pure: no I/O and no hidden state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

from heartguard.core.storage.models import Thresholds
from heartguard.domains.health.domain_logic.aggregator import round_half_up

Status = Literal["normal", "low", "high", "critical"]
Severity = Literal["normal", "warning", "danger"]

DEFAULT_AGE = 30

# Fraction of the age-predicted maximum (220 - age) above which a high
# heart rate is dangerous rather than elevated.
DANGER_FRACTION = 0.85

CRITICAL_BLOOD_OXYGEN = 90

# Target zones as fractions of the age-predicted maximum heart rate
HEART_RATE_ZONES = {
    "light": (0.5, 0.6),
    "moderate": (0.6, 0.7),
    "vigorous": (0.7, 0.85),
}

LOW_STEPS = 5000
HIGH_STEPS = 10000


@dataclass(frozen=True)
class ThresholdResult:
    """Classification of one reading."""

    status: Status
    severity: Severity
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "severity": self.severity, "message": self.message}


def max_heart_rate(age: int) -> int:
    """Age-predicted maximum heart rate."""
    return 220 - age


def evaluate_heart_rate(
    value: float,
    thresholds: Thresholds,
    age: int = DEFAULT_AGE,
) -> ThresholdResult:
    """Classify a heart-rate reading (BPM) against the configured bounds."""
    if value < thresholds.min:
        return ThresholdResult(
            status="low",
            severity="warning",
            message=f"Heart rate is low ({value} BPM)\nRest and monitor carefully",
        )

    if value > thresholds.max:
        if value > max_heart_rate(age) * DANGER_FRACTION:
            return ThresholdResult(
                status="high",
                severity="danger",
                message=f"Heart rate is too high ({value} BPM)\nStop activity and rest immediately",
            )
        return ThresholdResult(
            status="high",
            severity="warning",
            message=f"Heart rate is elevated ({value} BPM)\nReduce activity intensity",
        )

    return ThresholdResult(status="normal", severity="normal", message="Heart rate is normal")


def evaluate_blood_oxygen(value: float, thresholds: Thresholds) -> ThresholdResult:
    """Classify a blood-oxygen saturation reading (%)."""
    if value < CRITICAL_BLOOD_OXYGEN:
        return ThresholdResult(
            status="critical",
            severity="danger",
            message=(
                f"Blood oxygen level is critical ({value}%)\n"
                "Seek immediate medical attention"
            ),
        )
    if value < thresholds.min_blood_oxygen:
        return ThresholdResult(
            status="low",
            severity="warning",
            message=(
                f"Blood oxygen level is low ({value}%)\n"
                "Try deep breathing or outdoor activity"
            ),
        )
    return ThresholdResult(
        status="normal", severity="normal", message="Blood oxygen level is normal"
    )


def validate_thresholds(raw: Mapping[str, Any], current: Thresholds | None = None) -> Thresholds:
    """Validate threshold input as submitted by the settings screen.

    Keys are ``min``, ``max`` and ``minBloodOxygen``; missing keys keep the
    values of ``current`` (or the defaults).

    Raises:
        ValidationError: If the merged values are malformed.
    """
    base = current or Thresholds()
    return Thresholds.validated(
        raw.get("min", base.min),
        raw.get("max", base.max),
        raw.get("minBloodOxygen", base.min_blood_oxygen),
    )


def target_heart_rate_zone(age: int, intensity: str = "moderate") -> dict[str, int]:
    """Exercise target zone for ``intensity`` (unknown intensities use moderate)."""
    maximum = max_heart_rate(age)
    low, high = HEART_RATE_ZONES.get(intensity, HEART_RATE_ZONES["moderate"])
    return {
        "min": round_half_up(maximum * low),
        "max": round_half_up(maximum * high),
        "maxHeartRate": maximum,
    }


def health_recommendations(
    heart_rate: float,
    blood_oxygen: float,
    steps: int,
    thresholds: Thresholds | None = None,
) -> list[str]:
    """Plain-language suggestions for the current readings."""
    limits = thresholds or Thresholds()
    recommendations = []

    if heart_rate < limits.min:
        recommendations.append(
            "Consider increasing physical activity to improve cardiovascular fitness"
        )
    elif heart_rate > limits.max:
        recommendations.append("Make sure to rest and avoid overexertion")
    else:
        recommendations.append("Heart rate is normal. Maintain good lifestyle habits")

    if blood_oxygen < limits.min_blood_oxygen:
        recommendations.append(
            "Increase outdoor activities and maintain good ventilation indoors"
        )

    if steps < LOW_STEPS:
        recommendations.append("Daily steps are low. Try to increase activity level")
    elif steps > HIGH_STEPS:
        recommendations.append("Excellent activity level. Remember to rest appropriately")

    return recommendations
