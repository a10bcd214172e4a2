"""
Generation Gateway - every Gemini call goes through here

Each operation is gated by the `ai` rate limiter, sanitizes its free text,
builds the provider request and parses the response shape it expects:

- generate_itinerary: schema-constrained JSON, hard failure on bad output
- get_travel_suggestions: search-grounded, JSON dug out of prose, static fallback
- chat: multi-turn with search grounding and the update_day_activities tool
- synthesize_speech: audio modality, base64 payload, hard failure when absent
- search_nearby_places: maps-grounded, JSON array dug out of prose, empty fallback
"""
import base64
import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import ParseError, ProviderError, RateLimitExceeded, ValidationError
from ..schemas.chat import ChatMessage, ChatResponse, GroundingSource, ToolCall, TOOL_CALL_TYPES
from ..schemas.itinerary import (
    Activity,
    ActivityLLM,
    DayItinerary,
    Itinerary,
    ItineraryLLM,
    NearbyPlace,
    TravelSuggestions,
    UserPreferences,
)
from ..utils.content_safety import check_content_safety, configure_safety_settings
from ..utils.gemini_schema import model_to_gemini_schema
from ..utils.json_extract import extract_first_json_value
from ..utils.rate_limiter import AI_PURPOSE, GovernanceContext
from ..utils.sanitizer import sanitize_input, sanitize_tags
from ..validators.input_validator import validate_destination, validate_preferences

logger = logging.getLogger(__name__)

CHAT_APOLOGY = "I am having trouble connecting right now."
CHAT_EMPTY_REPLY = "Processed."

ITINERARY_SYSTEM_INSTRUCTION = "You are an expert travel guide. Create authentic, personalized travel itineraries."
SUGGESTIONS_SYSTEM_INSTRUCTION = (
    "You are a travel booking expert. Provide realistic, grounded suggestions using current market data. "
    "Always respond with a single JSON object in a markdown code block."
)
CHAT_SYSTEM_INSTRUCTION = "You are a helpful, knowledgeable AI travel assistant for the Kanso app."
NEARBY_SYSTEM_INSTRUCTION = "You are a location finder. Format the response as a JSON array."

ITINERARY_RESPONSE_SCHEMA = model_to_gemini_schema(ItineraryLLM)
ACTIVITY_SCHEMA = model_to_gemini_schema(ActivityLLM)


def build_update_day_tool() -> types.FunctionDeclaration:
    """Declaration of the only tool the chat model may call"""
    return types.FunctionDeclaration(
        name="update_day_activities",
        description="Update the activities for a specific day in the itinerary.",
        parameters_json_schema={
            "type": "object",
            "properties": {
                "day": {"type": "integer", "description": "The day number to update (e.g., 1)"},
                "theme": {"type": "string", "description": "New theme for the day if changed"},
                "activities": {
                    "type": "array",
                    "items": ACTIVITY_SCHEMA,
                    "description": "The complete new list of activities for this day."
                }
            },
            "required": ["day", "activities"]
        }
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


class GenerationGateway:
    """Builds provider requests and parses their responses"""

    def __init__(
        self,
        governance: GovernanceContext,
        client: Optional[Any] = None,
        model_name: Optional[str] = None,
        tts_model_name: Optional[str] = None,
        voice_name: Optional[str] = None
    ):
        """
        Args:
            governance: Limiters shared by the process
            client: google-genai Client (created from settings when omitted)
            model_name: Text model, defaults to settings.model_name
            tts_model_name: Speech model, defaults to settings.tts_model_name
            voice_name: Prebuilt voice for speech
        """
        self.governance = governance
        self.client = client if client is not None else genai.Client(api_key=settings.gemini_api_key)
        self.model_name = model_name or settings.model_name
        self.tts_model_name = tts_model_name or settings.tts_model_name
        self.voice_name = voice_name or settings.tts_voice_name

    def _gate(self, action: str) -> None:
        """Consume one `ai` admission or fail fast with the wait time"""
        if not self.governance.check(AI_PURPOSE):
            wait_time = self.governance.time_to_reset(AI_PURPOSE)
            raise RateLimitExceeded(
                AI_PURPOSE,
                wait_time,
                f"Rate limit exceeded. Please wait {wait_time} seconds before {action}."
            )

    async def generate_itinerary(self, prefs: UserPreferences) -> Itinerary:
        """
        Generate a day-by-day itinerary with schema-constrained output

        Raises:
            RateLimitExceeded: `ai` quota exhausted
            ValidationError: Preferences invalid
            ProviderError: Provider call failed
            ParseError: Response did not match the itinerary schema
            ContentSafetyError: Response blocked
        """
        self._gate("generating a new plan")
        safe_destination = validate_preferences(prefs)["destination"]
        safe_interests = sanitize_tags(prefs.interests)
        safe_group = sanitize_tags(prefs.group_composition)
        safe_start = sanitize_input(prefs.start_date) or None

        prompt = f"""
    Create a detailed {prefs.days}-day travel itinerary for a trip to {safe_destination}.
    Start Date: {safe_start or 'flexible'}.
    Travelers: {prefs.travelers} person(s).
    Group Composition: {', '.join(safe_group) or 'Standard'}.
    Budget level: {prefs.budget.value}.
    Interests: {', '.join(safe_interests)}.
    Include accurate geolocation data.
  """

        logger.info(f"Generating {prefs.days}-day itinerary for {safe_destination} ({prefs.budget.value})")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=ITINERARY_SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=ITINERARY_RESPONSE_SCHEMA,
                    temperature=settings.model_temperature,
                    safety_settings=configure_safety_settings()
                )
            )
        except Exception as e:
            logger.error(f"❌ Gemini itinerary call failed: {type(e).__name__}: {str(e)}")
            raise ProviderError("Failed to generate itinerary.", {"original_error": str(e)}) from e

        check_content_safety(response)
        days = self._parse_itinerary_days(response.text, prefs.days)

        try:
            itinerary = Itinerary(
                id=str(uuid.uuid4()),
                destination=safe_destination,
                start_date=safe_start,
                duration=prefs.days,
                budget=prefs.budget,
                travelers=prefs.travelers,
                group_type=safe_group,
                days=days,
                created_at=_now_ms()
            )
        except PydanticValidationError as e:
            raise ParseError("Generated itinerary is malformed.", {"errors": str(e)}) from e

        logger.info(f"✓ Itinerary {itinerary.id} generated with {len(itinerary.days)} days")
        return itinerary

    def _parse_itinerary_days(self, text: Optional[str], duration: int) -> List[DayItinerary]:
        """Validate the structured response and convert it to stored days"""
        if not text:
            logger.error("❌ Empty itinerary response from Gemini")
            raise ParseError("Failed to generate itinerary.", {"reason": "empty response"})

        try:
            plan = ItineraryLLM.model_validate(json.loads(text))
        except json.JSONDecodeError as e:
            logger.error(f"❌ Failed to parse JSON response: {str(e)}")
            logger.debug(f"   Response text: {text[:500]}")
            raise ParseError("Failed to generate itinerary.", {"reason": "invalid JSON"}) from e
        except PydanticValidationError as e:
            logger.error(f"❌ Itinerary response failed schema validation: {e.error_count()} errors")
            raise ParseError("Failed to generate itinerary.", {"reason": "schema mismatch", "errors": str(e)}) from e

        day_numbers = sorted(day.day for day in plan.days)
        if day_numbers != list(range(1, duration + 1)):
            logger.error(f"❌ Day numbers {day_numbers} do not match requested duration {duration}")
            raise ParseError(
                "Failed to generate itinerary.",
                {"reason": "day numbers do not match duration", "days": day_numbers, "duration": duration}
            )

        return [
            DayItinerary(
                day=day.day,
                theme=day.theme or "",
                activities=[
                    Activity(
                        time=a.time,
                        activity=a.activity,
                        location=a.location,
                        description=a.description or "",
                        type=a.type,
                        cost_estimate=a.cost_estimate or "",
                        coordinates=a.coordinates
                    )
                    for a in day.activities
                ]
            )
            for day in plan.days
        ]

    async def get_travel_suggestions(self, prefs: UserPreferences) -> TravelSuggestions:
        """
        Find one flight and one hotel using search grounding

        Search grounding cannot be combined with a response schema, so the
        prompt asks for a JSON block and the first balanced object is parsed.
        Never fails on provider or parse errors: returns the static fallback.

        Raises:
            RateLimitExceeded: `ai` quota exhausted
            ValidationError: Destination empty
        """
        self._gate("requesting travel suggestions")
        safe_destination = validate_destination(prefs.destination)
        safe_start = sanitize_input(prefs.start_date)

        prompt = f"""
    Using Google Search, find one specific recommended flight and one specific recommended hotel for a trip to {safe_destination}.
    Dates: {safe_start or 'Upcoming months'}.
    Budget level: {prefs.budget.value}.
    Travelers: {prefs.travelers}.

    IMPORTANT: Your response MUST be valid JSON wrapped in a code block.

    JSON Schema:
    {{
      "flight": {{
        "airline": string,
        "price": string,
        "route": string,
        "note": string
      }},
      "hotel": {{
        "name": string,
        "price": string,
        "rating": string,
        "description": string
      }}
    }}
  """

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=SUGGESTIONS_SYSTEM_INSTRUCTION,
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                    safety_settings=configure_safety_settings()
                )
            )
            check_content_safety(response)
            data = extract_first_json_value(response.text, "{")
            if data is None:
                raise ParseError("Could not parse suggestions JSON.")
            return TravelSuggestions.model_validate(data)
        except Exception as e:
            logger.warning(f"⚠️ Suggestions unavailable, using fallback: {type(e).__name__}: {str(e)}")
            return TravelSuggestions.fallback()

    async def chat(
        self,
        history: List[ChatMessage],
        message: str,
        itinerary_context: Optional[Itinerary] = None
    ) -> ChatResponse:
        """
        Send one chat turn

        With an itinerary context the full itinerary is embedded in the
        system instruction and update_day_activities is offered as a tool.
        Provider failures become a static apology, never an exception.

        Raises:
            RateLimitExceeded: `ai` quota exhausted
        """
        self._gate("sending another message")
        safe_message = sanitize_input(message)
        if not safe_message:
            return ChatResponse(text="")

        system_instruction = CHAT_SYSTEM_INSTRUCTION
        tools = [types.Tool(google_search=types.GoogleSearch())]
        if itinerary_context is not None:
            system_instruction += f"\n\nCURRENT ITINERARY CONTEXT:\n{itinerary_context.model_dump_json()}"
            tools.append(types.Tool(function_declarations=[build_update_day_tool()]))

        contents = [
            types.Content(role=m.role, parts=[types.Part(text=m.text)])
            for m in history
        ]

        try:
            chat = self.client.aio.chats.create(
                model=self.model_name,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    tools=tools,
                    safety_settings=configure_safety_settings()
                ),
                history=contents
            )
            result = await chat.send_message(safe_message)
            check_content_safety(result)
        except Exception as e:
            logger.error(f"❌ Chat call failed: {type(e).__name__}: {str(e)}")
            return ChatResponse(text=CHAT_APOLOGY)

        return ChatResponse(
            text=result.text or CHAT_EMPTY_REPLY,
            tool_calls=self._parse_tool_calls(result),
            sources=self._parse_grounding_sources(result)
        )

    def _parse_tool_calls(self, result: Any) -> List[ToolCall]:
        """Resolve provider function calls against the tool registry"""
        tool_calls = []
        for call in getattr(result, "function_calls", None) or []:
            name = getattr(call, "name", None)
            tool_type = TOOL_CALL_TYPES.get(name)
            if tool_type is None:
                logger.warning(f"Ignoring call to unknown tool {name!r}")
                continue
            args: Dict[str, Any] = dict(getattr(call, "args", None) or {})
            try:
                tool_calls.append(tool_type.model_validate({**args, "name": name}))
            except PydanticValidationError as e:
                logger.warning(f"Ignoring malformed {name} call: {e.error_count()} validation errors")
        return tool_calls

    def _parse_grounding_sources(self, result: Any) -> List[GroundingSource]:
        candidates = getattr(result, "candidates", None) or []
        if not candidates:
            return []
        metadata = getattr(candidates[0], "grounding_metadata", None)
        chunks = getattr(metadata, "grounding_chunks", None) or []

        sources = []
        for chunk in chunks:
            web = getattr(chunk, "web", None)
            uri = getattr(web, "uri", None)
            title = getattr(web, "title", None)
            if uri and title:
                sources.append(GroundingSource(title=title, uri=uri))
        return sources

    async def synthesize_speech(self, text: str) -> str:
        """
        Read text aloud

        Returns:
            Base64-encoded audio from the first inline-data part

        Raises:
            RateLimitExceeded: `ai` quota exhausted
            ValidationError: Nothing to read
            ProviderError: Provider call failed
            ParseError: No audio payload in the response
        """
        self._gate("requesting audio")
        safe_text = sanitize_input(text)
        if not safe_text:
            raise ValidationError("Nothing to read aloud.")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.tts_model_name,
                contents=[types.Content(parts=[types.Part(text=safe_text)])],
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name)
                        )
                    )
                )
            )
        except Exception as e:
            logger.error(f"❌ Speech call failed: {type(e).__name__}: {str(e)}")
            raise ProviderError("Failed to generate speech.", {"original_error": str(e)}) from e

        check_content_safety(response)
        audio = self._first_inline_data(response)
        if audio is None:
            logger.error("❌ No audio data in speech response")
            raise ParseError("No audio data")

        if isinstance(audio, (bytes, bytearray)):
            return base64.b64encode(audio).decode("ascii")
        return audio

    @staticmethod
    def _first_inline_data(response: Any) -> Optional[Any]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None)
            if data:
                return data
        return None

    async def search_nearby_places(
        self, lat: float, lng: float, query: str = "interesting places"
    ) -> List[NearbyPlace]:
        """
        Find places near a coordinate using maps grounding

        Best effort: rate limiting, provider errors and unparseable output
        all return an empty list.
        """
        if not self.governance.check(AI_PURPOSE):
            logger.warning(
                f"Nearby search skipped, rate limited for {self.governance.time_to_reset(AI_PURPOSE)}s"
            )
            return []

        safe_query = sanitize_input(query) or "interesting places"
        prompt = f"Find 5 {safe_query} near latitude {lat}, longitude {lng}. Return a JSON array."

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=NEARBY_SYSTEM_INSTRUCTION,
                    tools=[types.Tool(google_maps=types.GoogleMaps())],
                    tool_config=types.ToolConfig(
                        retrieval_config=types.RetrievalConfig(
                            lat_lng=types.LatLng(latitude=lat, longitude=lng)
                        )
                    ),
                    safety_settings=configure_safety_settings()
                )
            )
            check_content_safety(response)
            places = extract_first_json_value(response.text, "[")
        except Exception as e:
            logger.warning(f"⚠️ Nearby search failed: {type(e).__name__}: {str(e)}")
            return []

        if places is None:
            logger.warning("⚠️ Nearby search returned no parseable JSON array")
            return []

        results = []
        for place in places:
            if not isinstance(place, dict) or not place.get("name"):
                continue
            try:
                results.append(NearbyPlace(
                    id=100 + len(results),
                    name=str(place["name"]),
                    lat=place.get("lat") or lat,
                    lng=place.get("lng") or lng,
                    category=place.get("category") or "General",
                    description=place.get("description") or "",
                    rating=place.get("rating") or 4.5
                ))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed place {place.get('name')!r}: {e.error_count()} errors")
        return results
