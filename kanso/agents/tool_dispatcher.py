"""Applies model-issued tool calls to the in-memory itinerary"""
import logging
from dataclasses import dataclass, field
from typing import List

from ..schemas.chat import ToolCall, UpdateDayActivitiesCall
from ..schemas.itinerary import Itinerary
from .itinerary_edits import replace_day_activities

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of dispatching one chat turn's tool calls"""
    updated_days: List[int] = field(default_factory=list)
    ignored_calls: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.updated_days)

    def confirmations(self) -> List[str]:
        return [f"Day {day} updated." for day in dict.fromkeys(self.updated_days)]


class ToolCallDispatcher:
    """
    Interprets tool calls from a chat response as itinerary mutations.

    Tool arguments are lossy external input: a call naming a day the
    itinerary does not have is ignored, never fatal. Persisting the
    mutated itinerary is the caller's job.
    """

    def apply(self, itinerary: Itinerary, call: ToolCall) -> bool:
        """Apply one call in place, returning whether anything changed"""
        if isinstance(call, UpdateDayActivitiesCall):
            applied = replace_day_activities(itinerary, call.day, call.activities, call.theme)
            if applied:
                logger.info(
                    f"🔧 update_day_activities: day {call.day} now has "
                    f"{len(call.activities)} activities (itinerary {itinerary.id})"
                )
            else:
                logger.warning(f"update_day_activities for unknown day {call.day} ignored")
            return applied

        logger.warning(f"No handler for tool call {type(call).__name__}")
        return False

    def dispatch(self, itinerary: Itinerary, tool_calls: List[ToolCall]) -> DispatchResult:
        """Apply every call in order"""
        result = DispatchResult()
        for call in tool_calls:
            if self.apply(itinerary, call):
                result.updated_days.append(call.day)
            else:
                result.ignored_calls += 1
        return result
