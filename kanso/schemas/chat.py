"""Chat transcript and tool-call schemas"""
from typing import Dict, List, Literal, Optional, Type
from pydantic import BaseModel, Field

from .itinerary import Activity


class GroundingSource(BaseModel):
    """Citation attached by the provider when it consulted search"""
    title: str
    uri: str


class ChatMessage(BaseModel):
    """One entry of the visible transcript"""
    id: str
    role: Literal["user", "model"]
    text: str
    timestamp: int = Field(..., description="Epoch milliseconds")
    sources: Optional[List[GroundingSource]] = None


class UpdateDayActivitiesCall(BaseModel):
    """Replace the whole activity list of one day, optionally retheming it"""
    name: Literal["update_day_activities"] = "update_day_activities"
    day: int
    activities: List[Activity]
    theme: Optional[str] = None


# Closed registry of tools the model may call. Add a new variant here and
# to ToolCall when a second tool is declared.
ToolCall = UpdateDayActivitiesCall

TOOL_CALL_TYPES: Dict[str, Type[BaseModel]] = {
    "update_day_activities": UpdateDayActivitiesCall,
}


class ChatResponse(BaseModel):
    """Parsed result of one chat turn"""
    text: str
    tool_calls: List[ToolCall] = Field(default_factory=list)
    sources: List[GroundingSource] = Field(default_factory=list)
