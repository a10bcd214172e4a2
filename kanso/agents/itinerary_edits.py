"""In-place itinerary mutations (tool calls and manual edits)"""
import logging
from typing import List, Optional

from ..schemas.itinerary import Activity, Itinerary

logger = logging.getLogger(__name__)


def replace_day_activities(
    itinerary: Itinerary,
    day: int,
    activities: List[Activity],
    theme: Optional[str] = None
) -> bool:
    """
    Replace the whole activity list of one day, keeping the given order.

    The theme is only replaced when a non-empty one is supplied. Other days
    are not touched.

    Returns:
        True if a day with that number exists, False otherwise (no-op)
    """
    target = itinerary.get_day(day)
    if target is None:
        return False

    target.activities = [a.model_copy(deep=True) for a in activities]
    if theme:
        target.theme = theme
    return True


def toggle_booked(itinerary: Itinerary, day: int, index: int) -> bool:
    """
    Flip the booked flag of one activity

    Returns:
        True if the flag changed, False for an unknown day or index
    """
    target = itinerary.get_day(day)
    if target is None or not 0 <= index < len(target.activities):
        logger.warning(f"No activity {index} on day {day} of itinerary {itinerary.id}")
        return False

    activity = target.activities[index]
    activity.booked = not activity.booked
    return True
