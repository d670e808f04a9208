"""Trend, velocity and forecast helpers for build analytics.

Pure functions with no external dependencies.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class TrendAnalysis:
    trend: str  # increasing, decreasing, stable
    slope: float
    confidence: float  # R^2 as 0-100
    prediction: float


@dataclass(frozen=True)
class CompletionForecast:
    estimated_days: int | None
    estimated_date: date | None
    confidence: str  # high, medium, low


def calculate_trend(values: list[float]) -> TrendAnalysis:
    """Least-squares linear trend over evenly spaced values.

    A slope magnitude above 0.1 per step counts as a trend; fewer than two
    points is always stable.
    """
    if len(values) < 2:
        return TrendAnalysis(
            trend="stable",
            slope=0.0,
            confidence=0.0,
            prediction=values[0] if values else 0.0,
        )

    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_xx = sum(i * i for i in range(n))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    total_ss = sum((v - y_mean) ** 2 for v in values)
    residual_ss = sum((v - (slope * i + intercept)) ** 2 for i, v in enumerate(values))
    # A flat series is perfectly explained by its own mean
    r_squared = 1.0 if total_ss == 0 else 1 - residual_ss / total_ss
    confidence = max(0.0, min(100.0, r_squared * 100))

    trend = "stable"
    if abs(slope) > 0.1:
        trend = "increasing" if slope > 0 else "decreasing"

    return TrendAnalysis(
        trend=trend,
        slope=round(slope, 3),
        confidence=round(confidence, 2),
        prediction=round(slope * n + intercept, 2),
    )


def calculate_velocity(daily_counts: list[int], window: int = 7) -> float:
    """Mean items completed per day over the trailing window."""
    if not daily_counts:
        return 0.0
    recent = daily_counts[-window:]
    return sum(recent) / len(recent)


def forecast_completion(
    current_completion: float,
    velocity: float,
    remaining_items: int,
    today: date,
) -> CompletionForecast:
    """Estimate when the remaining items finish at the given daily velocity."""
    if velocity <= 0:
        return CompletionForecast(estimated_days=None, estimated_date=None, confidence="low")

    days = math.ceil(remaining_items / velocity)

    confidence = "medium"
    if velocity > 5 and current_completion > 25:
        confidence = "high"
    elif velocity < 2 or current_completion < 10:
        confidence = "low"

    return CompletionForecast(
        estimated_days=days,
        estimated_date=today + timedelta(days=days),
        confidence=confidence,
    )
