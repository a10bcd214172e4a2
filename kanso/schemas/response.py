"""Response schemas for API endpoints"""
from typing import List, Optional
from pydantic import BaseModel, Field

from .chat import ChatMessage
from .itinerary import Itinerary


class ChatTurnResponse(BaseModel):
    """Model reply plus the itinerary as it stands after any tool calls"""
    message: Optional[ChatMessage] = None
    itinerary: Optional[Itinerary] = None


class SpeechResponse(BaseModel):
    audio_base64: str = Field(..., description="Base64-encoded audio from the provider")


class ItineraryListResponse(BaseModel):
    itineraries: List[Itinerary]


class ErrorResponse(BaseModel):
    """Error response"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[dict] = Field(None, description="Additional error details")
