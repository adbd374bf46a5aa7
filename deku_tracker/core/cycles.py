"""
Cycle model - maps recurrence tokens to durations.

Months are a fixed 30 days. An absent or unrecognized token maps to a zero
duration, meaning the entity never becomes overdue through its cycle.
"""

from datetime import timedelta
from typing import Dict, Optional

from deku_tracker.models.enums import Cycle
from deku_tracker.utils.exceptions import InvalidParameterError

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

CYCLE_DURATIONS_MS: Dict[str, int] = {
    Cycle.FIVE_MINUTES.value: 5 * MINUTE_MS,
    Cycle.ONE_HOUR.value: HOUR_MS,
    Cycle.FOUR_HOURS.value: 4 * HOUR_MS,
    Cycle.TWELVE_HOURS.value: 12 * HOUR_MS,
    Cycle.ONE_DAY.value: DAY_MS,
    Cycle.THREE_DAYS.value: 3 * DAY_MS,
    Cycle.ONE_WEEK.value: 7 * DAY_MS,
    Cycle.ONE_MONTH.value: 30 * DAY_MS,
    Cycle.THREE_MONTHS.value: 90 * DAY_MS,
}


def cycle_to_duration(token: Optional[str]) -> int:
    """Duration of a cycle token in milliseconds; 0 when absent or unknown."""
    if not token:
        return 0
    if isinstance(token, Cycle):
        token = token.value
    return CYCLE_DURATIONS_MS.get(token, 0)


def cycle_to_timedelta(token: Optional[str]) -> timedelta:
    return timedelta(milliseconds=cycle_to_duration(token))


def is_known_cycle(token: Optional[str]) -> bool:
    if isinstance(token, Cycle):
        return True
    return token in CYCLE_DURATIONS_MS


def normalize_cycle(token: Optional[str]) -> Optional[str]:
    """
    Validate a cycle supplied by a caller.

    None and blank strings mean "no cycle". Anything else must be one of the
    recognized tokens.

    Raises:
        InvalidParameterError: token is not a recognized cycle
    """
    if token is None:
        return None
    if isinstance(token, Cycle):
        return token.value
    cleaned = str(token).strip()
    if not cleaned:
        return None
    if cleaned not in CYCLE_DURATIONS_MS:
        raise InvalidParameterError(
            "cycle",
            f"unrecognized cycle '{cleaned}'",
            expected_type=", ".join(CYCLE_DURATIONS_MS),
            actual_value=cleaned,
        )
    return cleaned
