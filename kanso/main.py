"""
Kanso Backend - AI travel planning assistant

ARCHITECTURE:
- Every Gemini call goes through GenerationGateway (rate limit, sanitize, parse)
- Sliding-window quotas persisted to disk: `ai` 10/min, `auth` 5/5min
- Chat tool calls (update_day_activities) edit a copy that replaces the itinerary once saved
- Itineraries and profiles stored as JSON blobs in Supabase, keyed by email
- PBKDF2 password hashing, opaque session tokens in HttpOnly cookies
"""
import logging
from functools import partial
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .agents.assistant import TravelAssistant
from .agents.generation_gateway import GenerationGateway
from .agents.itinerary_edits import toggle_booked
from .config import settings
from .errors import AuthError, GenerationError, KansoError, RateLimitExceeded, ValidationError
from .middleware.auth import get_session_token, require_auth
from .schemas.auth import AuthUser, CredentialsRequest
from .schemas.itinerary import Itinerary, NearbyPlace, TravelSuggestions, UserPreferences, UserProfile
from .schemas.request import (
    ChatRequest,
    GenerateItineraryRequest,
    NearbyRequest,
    SaveItineraryRequest,
    SpeechRequest,
)
from .schemas.response import ChatTurnResponse, ErrorResponse, ItineraryListResponse, SpeechResponse
from .utils import database
from .utils.accounts import authenticate, load_profile, register_account
from .utils.rate_limiter import GovernanceContext
from .utils.sessions import SessionStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Kanso API",
    description="AI travel planning assistant",
    version="1.0.0"
)

app.state.governance = GovernanceContext.from_settings()
app.state.sessions = SessionStore()
app.state.gateway = None

allowed_origins_list = [origin.strip() for origin in settings.allowed_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def get_governance(request: Request) -> GovernanceContext:
    return request.app.state.governance


def get_gateway(request: Request) -> GenerationGateway:
    """Gateway bound to the process governance context, created on first use"""
    if request.app.state.gateway is None:
        request.app.state.gateway = GenerationGateway(request.app.state.governance)
    return request.app.state.gateway


def _error_body(error: str, message: str, details: dict = None) -> dict:
    return {"detail": {"error": error, "message": message, "details": details or {}}}


@app.exception_handler(KansoError)
async def kanso_error_handler(request: Request, exc: KansoError):
    """Map the failure taxonomy to HTTP responses"""
    headers = None
    if isinstance(exc, RateLimitExceeded):
        status_code = 429
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    elif isinstance(exc, ValidationError):
        status_code = 400
    elif isinstance(exc, AuthError):
        status_code = 409 if exc.duplicate else 401
    elif isinstance(exc, GenerationError):
        status_code = 502
    else:
        status_code = 500

    return JSONResponse(
        status_code=status_code,
        content=_error_body(type(exc).__name__, exc.message, exc.details),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=_error_body("ValidationError", "Invalid request body", {"errors": str(exc.errors())})
    )


def _storage_failure(action: str, e: Exception) -> HTTPException:
    logger.error(f"❌ Storage failure while trying to {action}: {type(e).__name__}: {str(e)}")
    return HTTPException(
        status_code=500,
        detail={
            "error": "InternalServerError",
            "message": f"Failed to {action}",
            "details": {"original_error": str(e)}
        }
    )


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"error": "NotFound", "message": message, "details": {}}
    )


async def _load_owned_itinerary(itinerary_id: str, email: str) -> Itinerary:
    try:
        itinerary = await database.get_itinerary(itinerary_id, email)
    except Exception as e:
        raise _storage_failure("fetch itinerary", e)
    if itinerary is None:
        raise _not_found("Itinerary not found")
    return itinerary


def _start_session(request: Request, response: Response, user: AuthUser) -> None:
    token = request.app.state.sessions.create(user)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.env == "production",
        samesite="none" if settings.env == "production" else "lax",
        max_age=settings.session_ttl_seconds
    )


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "message": "Kanso API is running"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.post(
    "/auth/register",
    response_model=AuthUser,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}}
)
async def register(
    body: CredentialsRequest,
    request: Request,
    response: Response,
    governance: GovernanceContext = Depends(get_governance)
):
    """Create an account and start a session"""
    user = await register_account(governance, body.email, body.password)
    _start_session(request, response, user)
    return user


@app.post(
    "/auth/login",
    response_model=AuthUser,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}}
)
async def login(
    body: CredentialsRequest,
    request: Request,
    response: Response,
    governance: GovernanceContext = Depends(get_governance)
):
    """Verify credentials and start a session"""
    user = await authenticate(governance, body.email, body.password)
    _start_session(request, response, user)
    return user


@app.post("/auth/logout")
async def logout(request: Request, response: Response):
    """Revoke the session and clear the cookie"""
    request.app.state.sessions.revoke(get_session_token(request))
    response.delete_cookie(key=settings.session_cookie_name)
    return {"message": "Successfully logged out"}


@app.get("/user/profile", response_model=UserProfile)
async def get_profile(user: AuthUser = Depends(require_auth)):
    try:
        return await load_profile(user.email)
    except Exception as e:
        raise _storage_failure("fetch profile", e)


@app.put("/user/profile", response_model=UserProfile)
async def update_profile(profile: UserProfile, user: AuthUser = Depends(require_auth)):
    try:
        return await database.upsert_profile(user.email, profile)
    except Exception as e:
        raise _storage_failure("update profile", e)


@app.post(
    "/generate",
    response_model=Itinerary,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse}
    }
)
async def generate_itinerary(
    body: GenerateItineraryRequest,
    user: AuthUser = Depends(require_auth),
    gateway: GenerationGateway = Depends(get_gateway)
):
    """
    Generate a personalized itinerary (not saved until POST /itineraries)
    """
    itinerary = await gateway.generate_itinerary(body.preferences)
    if body.suggestions is not None:
        itinerary.suggestions = body.suggestions
    return itinerary


@app.post("/suggestions", response_model=TravelSuggestions, responses={429: {"model": ErrorResponse}})
async def travel_suggestions(
    prefs: UserPreferences,
    user: AuthUser = Depends(require_auth),
    gateway: GenerationGateway = Depends(get_gateway)
):
    """Search-grounded flight and hotel picks; falls back to placeholders"""
    return await gateway.get_travel_suggestions(prefs)


@app.post("/chat", response_model=ChatTurnResponse, responses={429: {"model": ErrorResponse}})
async def chat(
    body: ChatRequest,
    user: AuthUser = Depends(require_auth),
    gateway: GenerationGateway = Depends(get_gateway)
):
    """
    Run one chat turn. With an itinerary_id, the model may edit that
    itinerary and the edit is saved before the reply is returned.
    """
    itinerary = None
    if body.itinerary_id:
        itinerary = await _load_owned_itinerary(body.itinerary_id, user.email)

    assistant = TravelAssistant(
        gateway,
        itinerary=itinerary,
        persist=partial(database.upsert_itinerary, user.email),
        messages=body.history
    )
    reply = await assistant.send(body.message)
    return ChatTurnResponse(message=reply, itinerary=assistant.itinerary)


@app.post(
    "/speech",
    response_model=SpeechResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
)
async def speech(
    body: SpeechRequest,
    user: AuthUser = Depends(require_auth),
    gateway: GenerationGateway = Depends(get_gateway)
):
    return SpeechResponse(audio_base64=await gateway.synthesize_speech(body.text))


@app.post("/nearby", response_model=List[NearbyPlace])
async def nearby(
    body: NearbyRequest,
    user: AuthUser = Depends(require_auth),
    gateway: GenerationGateway = Depends(get_gateway)
):
    return await gateway.search_nearby_places(body.lat, body.lng, body.query)


@app.get("/itineraries", response_model=ItineraryListResponse)
async def list_itineraries(user: AuthUser = Depends(require_auth)):
    """Saved itineraries, newest first"""
    try:
        return ItineraryListResponse(itineraries=await database.list_itineraries(user.email))
    except Exception as e:
        raise _storage_failure("fetch itineraries", e)


@app.post("/itineraries", response_model=Itinerary, status_code=201)
async def save_itinerary(body: SaveItineraryRequest, user: AuthUser = Depends(require_auth)):
    """Create or overwrite an itinerary (last writer wins)"""
    try:
        return await database.upsert_itinerary(user.email, body.itinerary)
    except Exception as e:
        raise _storage_failure("save itinerary", e)


@app.get("/itineraries/{itinerary_id}", response_model=Itinerary)
async def get_itinerary(itinerary_id: str, user: AuthUser = Depends(require_auth)):
    return await _load_owned_itinerary(itinerary_id, user.email)


@app.delete("/itineraries/{itinerary_id}")
async def delete_itinerary(itinerary_id: str, user: AuthUser = Depends(require_auth)):
    try:
        deleted = await database.delete_itinerary(itinerary_id, user.email)
    except Exception as e:
        raise _storage_failure("delete itinerary", e)
    if not deleted:
        raise _not_found("Itinerary not found")
    return {"message": "Itinerary deleted successfully"}


@app.post("/itineraries/{itinerary_id}/days/{day}/activities/{index}/booked", response_model=Itinerary)
async def toggle_activity_booked(
    itinerary_id: str,
    day: int,
    index: int,
    user: AuthUser = Depends(require_auth)
):
    """Flip the booked flag of one activity and save"""
    itinerary = await _load_owned_itinerary(itinerary_id, user.email)
    if not toggle_booked(itinerary, day, index):
        raise _not_found(f"No activity {index} on day {day}")
    try:
        return await database.upsert_itinerary(user.email, itinerary)
    except Exception as e:
        raise _storage_failure("save itinerary", e)
