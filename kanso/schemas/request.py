"""Request schemas for API endpoints"""
from typing import List, Optional
from pydantic import BaseModel, Field

from .chat import ChatMessage
from .itinerary import Itinerary, TravelSuggestions, UserPreferences


class GenerateItineraryRequest(BaseModel):
    """
    Request body for /generate

    Suggestions picked on the previous planner step are attached to the
    generated itinerary as-is.
    """
    preferences: UserPreferences
    suggestions: Optional[TravelSuggestions] = None

    class Config:
        json_schema_extra = {
            "example": {
                "preferences": {
                    "destination": "Kyoto",
                    "days": 3,
                    "start_date": "2026-04-02",
                    "travelers": 2,
                    "group_composition": ["Couple"],
                    "budget": "Moderate",
                    "interests": ["temples", "food"]
                }
            }
        }


class ChatRequest(BaseModel):
    """One chat turn; the transcript so far is sent by the client"""
    message: str = Field(..., max_length=10000)
    history: List[ChatMessage] = Field(default_factory=list)
    itinerary_id: Optional[str] = None


class SpeechRequest(BaseModel):
    text: str = Field(..., max_length=10000)


class NearbyRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    query: str = Field(default="interesting places", max_length=500)


class SaveItineraryRequest(BaseModel):
    itinerary: Itinerary
