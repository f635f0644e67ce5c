"""Exponentially smoothed moving average for weight series.

Daily scale readings swing with water retention and gut contents. The
trend is a low-pass filter over the readings:
    T_n = T_{n-1} + α × (W_n - T_{n-1})

For readings that are not one day apart the factor is time-scaled:
    α_adjusted = 1 - (1 - α)^t
where t is the number of days since the previous reading.

The calibration can use the change of this trend, instead of the raw
last-minus-first difference, as the observed weight change.
"""

from __future__ import annotations

from datetime import date

# Hacker's Diet value, roughly a 10 day time constant
DEFAULT_SMOOTHING = 0.1


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """
    Adjust smoothing factor for non-daily measurements.

    Args:
        base_alpha: Base smoothing factor (typically 0.1)
        days_elapsed: Days since last measurement (values below 1 count as 1)

    Returns:
        Adjusted smoothing factor

    Example:
        >>> time_scaled_alpha(0.1, 1)
        0.1
        >>> round(time_scaled_alpha(0.1, 3), 3)
        0.271
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    weight: float,
    smoothing: float = DEFAULT_SMOOTHING,
    days_elapsed: int = 1,
) -> float:
    """
    Calculate the next trend value.

    Args:
        prev_trend: Previous trend value (T_{n-1})
        weight: New scale reading (W_n), same unit as the trend
        smoothing: Base smoothing factor
        days_elapsed: Days since the previous reading

    Returns:
        New trend value (T_n)
    """
    adjusted_alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + adjusted_alpha * (weight - prev_trend)


def calculate_trend(
    readings: list[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> list[float]:
    """
    Calculate trend values for a chronological series of dated readings.

    The first reading seeds the trend. Gaps between dates scale the
    smoothing factor; several readings on one day each count as one day.

    Args:
        readings: (date, weight) tuples in chronological order
        smoothing: Base smoothing factor

    Returns:
        List of trend values, same length as readings
    """
    if not readings:
        return []

    trends = [readings[0][1]]
    for (prev_date, _), (curr_date, weight) in zip(readings, readings[1:]):
        days_elapsed = (curr_date - prev_date).days
        trends.append(update_trend(trends[-1], weight, smoothing, days_elapsed))
    return trends


def trend_change(
    readings: list[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> float:
    """
    Change of the smoothed trend from the first to the last reading.

    Returns 0.0 for fewer than two readings.
    """
    if len(readings) < 2:
        return 0.0
    trends = calculate_trend(readings, smoothing)
    return trends[-1] - trends[0]
