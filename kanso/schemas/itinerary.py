"""Itinerary data model shared by generation, chat and persistence"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityCategory(str, Enum):
    """Closed set of activity categories the model may emit"""
    FOOD = "food"
    CULTURE = "culture"
    NATURE = "nature"
    ADVENTURE = "adventure"
    RELAX = "relax"


class BudgetTier(str, Enum):
    """Closed set of budget tiers"""
    BUDGET = "Budget"
    MODERATE = "Moderate"
    LUXURY = "Luxury"


class Coordinates(BaseModel):
    """Geocoordinate of an activity"""
    lat: float = Field(..., ge=-90, le=90, description="Latitude of the location")
    lng: float = Field(..., ge=-180, le=180, description="Longitude of the location")


class Activity(BaseModel):
    """A single scheduled activity"""
    time: str = Field(..., description="Time of day (e.g., 09:00 AM)")
    activity: str = Field(..., description="Name of the activity")
    location: str = Field(..., description="Location name or address")
    description: str = Field(default="", description="Brief description of what to do there")
    type: ActivityCategory
    cost_estimate: str = Field(default="", description="Estimated cost in local currency")
    coordinates: Optional[Coordinates] = None
    booked: bool = False


class DayItinerary(BaseModel):
    """Plan for a single day"""
    day: int = Field(..., ge=1, description="Day number (1, 2, 3, etc.)")
    theme: str = Field(default="", description="Theme for the day")
    activities: List[Activity] = Field(default_factory=list)


class FlightSuggestion(BaseModel):
    # Search-grounded output often sends prices as bare numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    airline: str
    price: str
    route: str
    note: str = ""


class HotelSuggestion(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    price: str
    rating: str
    description: str = ""


class TravelSuggestions(BaseModel):
    """One recommended flight and one recommended hotel"""
    flight: FlightSuggestion
    hotel: HotelSuggestion

    @classmethod
    def fallback(cls) -> "TravelSuggestions":
        """Static placeholder used when live suggestions are unavailable"""
        return cls(
            flight=FlightSuggestion(
                airline="Search airlines",
                price="$---",
                route="Direct/Connecting",
                note="Live data unavailable"
            ),
            hotel=HotelSuggestion(
                name="Boutique Stay",
                price="$---",
                rating="4.5",
                description="Minimalist accommodation nearby."
            )
        )


class Itinerary(BaseModel):
    """Complete trip plan owned by one session"""
    id: str
    destination: str = Field(..., min_length=1)
    duration: int = Field(..., ge=1, description="Trip length in days")
    start_date: Optional[str] = None
    travelers: Optional[int] = None
    group_type: List[str] = Field(default_factory=list)
    budget: BudgetTier
    days: List[DayItinerary] = Field(default_factory=list)
    created_at: Optional[int] = Field(None, description="Epoch milliseconds")
    suggestions: Optional[TravelSuggestions] = None

    @field_validator("days")
    @classmethod
    def validate_unique_days(cls, v):
        """Day numbers identify days for tool calls, so they must be unique"""
        seen = set()
        for day in v:
            if day.day in seen:
                raise ValueError(f"Duplicate day number {day.day}")
            seen.add(day.day)
        return v

    def get_day(self, day_number: int) -> Optional[DayItinerary]:
        for day in self.days:
            if day.day == day_number:
                return day
        return None


class UserPreferences(BaseModel):
    """Planner input, consumed once by the generation gateway"""
    destination: str
    days: int = Field(..., ge=1, le=14)
    start_date: Optional[str] = None
    travelers: int = Field(default=1, ge=1)
    group_composition: List[str] = Field(default_factory=list, description="e.g. 'Kids', 'Elderly', 'Couple'")
    budget: BudgetTier = BudgetTier.MODERATE
    interests: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Profile blob stored per account"""
    name: str
    bio: str = ""
    home_base: str = ""
    default_budget: BudgetTier = BudgetTier.MODERATE
    default_interests: List[str] = Field(default_factory=list)
    has_completed_onboarding: bool = False

    @classmethod
    def default_for(cls, email: str) -> "UserProfile":
        return cls(name=email.split("@")[0], bio="Ready for the next adventure.")


class NearbyPlace(BaseModel):
    """A point of interest returned by nearby search"""
    id: int
    name: str
    lat: float
    lng: float
    category: str = "General"
    description: str = ""
    rating: float = 4.5
    open_time: str = "09:00 - 18:00"


# LLM output schemas - used to derive the provider response schema
# and to validate the structured response

class ActivityLLM(BaseModel):
    """Activity as the model must emit it - coordinates are required"""
    time: str = Field(..., description="Time of day (e.g., 09:00 AM)")
    activity: str = Field(..., description="Name of the activity")
    location: str = Field(..., description="Location name or address")
    description: Optional[str] = Field(None, description="Brief description of what to do there")
    type: ActivityCategory
    cost_estimate: Optional[str] = Field(None, description="Estimated cost in local currency")
    coordinates: Coordinates


class DayLLM(BaseModel):
    day: int = Field(..., description="Day number")
    theme: Optional[str] = Field(None, description="Theme for the day")
    activities: List[ActivityLLM]


class ItineraryLLM(BaseModel):
    """Schema for the itinerary generation response"""
    destination: str
    duration: Optional[int] = None
    budget: Optional[str] = None
    days: List[DayLLM]
