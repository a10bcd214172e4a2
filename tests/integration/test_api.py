"""End-to-end tests for the HTTP API with fake provider and storage."""

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from kanso.main import app
from kanso.utils.rate_limiter import AI_PURPOSE
from kanso.utils.sessions import SessionStore

EMAIL = "ada@example.com"
PASSWORD = "secret1"


@pytest.fixture
def client(governance, gateway, fake_supabase):
    app.state.governance = governance
    app.state.gateway = gateway
    app.state.sessions = SessionStore()
    yield TestClient(app)
    app.state.gateway = None


@pytest.fixture
def signed_in(client):
    response = client.post("/auth/register", json={"email": EMAIL, "password": PASSWORD})
    assert response.status_code == 201
    return client


def _generate_body(days=2):
    return {
        "preferences": {"destination": "Kyoto", "days": days, "interests": ["temples"]},
        "suggestions": {
            "flight": {"airline": "ANA", "price": "$900", "route": "SFO-KIX"},
            "hotel": {"name": "Hotel Kanra", "price": "$300", "rating": "4.7"},
        },
    }


def _itinerary_text(days=2):
    return json.dumps({
        "destination": "Kyoto",
        "days": [
            {
                "day": n,
                "theme": f"Theme {n}",
                "activities": [{
                    "time": "10:00 AM",
                    "activity": f"Stop {n}",
                    "location": "Kyoto",
                    "type": "culture",
                    "coordinates": {"lat": 35.0, "lng": 135.7},
                }],
            }
            for n in range(1, days + 1)
        ],
    })


def test_health(client) -> None:
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "healthy"}


def test_protected_route_requires_session(client) -> None:
    response = client.get("/itineraries")

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "Unauthorized"


def test_register_sets_session_and_default_profile(signed_in) -> None:
    response = signed_in.get("/user/profile")

    assert response.status_code == 200
    assert response.json()["name"] == "ada"
    assert response.json()["bio"] == "Ready for the next adventure."


def test_update_profile(signed_in) -> None:
    body = {"name": "Ada", "home_base": "London", "default_interests": ["art"], "has_completed_onboarding": True}

    assert signed_in.put("/user/profile", json=body).status_code == 200

    profile = signed_in.get("/user/profile").json()
    assert profile["home_base"] == "London"
    assert profile["has_completed_onboarding"] is True


def test_bearer_token_fallback(client) -> None:
    response = client.post("/auth/register", json={"email": EMAIL, "password": PASSWORD})
    token = response.cookies.get("kanso_session")
    client.cookies.clear()

    response = client.get("/itineraries", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200


def test_duplicate_register_is_conflict(signed_in) -> None:
    response = signed_in.post("/auth/register", json={"email": EMAIL, "password": PASSWORD})

    assert response.status_code == 409
    assert response.json()["detail"]["message"] == "Account already exists. Please log in."


def test_login_errors(client) -> None:
    client.post("/auth/register", json={"email": EMAIL, "password": PASSWORD})

    wrong = client.post("/auth/login", json={"email": EMAIL, "password": "nope-nope"})
    invalid = client.post("/auth/login", json={"email": "ada", "password": PASSWORD})

    assert wrong.status_code == 401
    assert wrong.json()["detail"]["message"] == "Invalid password."
    assert invalid.status_code == 400


def test_login_rate_limited(client) -> None:
    for _ in range(5):
        client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})

    response = client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "300"
    assert response.json()["detail"]["error"] == "RateLimitExceeded"


def test_logout_revokes_session(signed_in) -> None:
    assert signed_in.post("/auth/logout").status_code == 200

    assert signed_in.get("/itineraries").status_code == 401


def test_generate_attaches_suggestions(signed_in, genai_client, response_factory) -> None:
    genai_client.aio.models.generate_content.return_value = response_factory(text=_itinerary_text())

    response = signed_in.post("/generate", json=_generate_body())

    assert response.status_code == 200
    itinerary = response.json()
    assert itinerary["duration"] == 2
    assert len(itinerary["days"]) == 2
    assert itinerary["suggestions"]["flight"]["airline"] == "ANA"


def test_generate_malformed_output_is_bad_gateway(signed_in, genai_client, response_factory) -> None:
    genai_client.aio.models.generate_content.return_value = response_factory(text='{"destination": "Kyoto"}')

    response = signed_in.post("/generate", json=_generate_body())

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "ParseError"


def test_generate_rate_limited(signed_in, governance) -> None:
    for _ in range(10):
        governance.check(AI_PURPOSE)

    response = signed_in.post("/generate", json=_generate_body())

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


def test_generate_rejects_too_many_days(signed_in) -> None:
    response = signed_in.post("/generate", json=_generate_body(days=20))

    assert response.status_code == 400


def test_suggestions_fallback(signed_in, genai_client, response_factory) -> None:
    genai_client.aio.models.generate_content.return_value = response_factory(text="no json")

    response = signed_in.post("/suggestions", json={"destination": "Kyoto", "days": 3})

    assert response.status_code == 200
    assert response.json()["hotel"]["name"] == "Boutique Stay"


def test_itinerary_crud_and_booking(signed_in, sample_itinerary) -> None:
    body = {"itinerary": sample_itinerary.model_dump(mode="json")}

    assert signed_in.post("/itineraries", json=body).status_code == 201
    assert [i["id"] for i in signed_in.get("/itineraries").json()["itineraries"]] == ["itin-1"]

    booked = signed_in.post("/itineraries/itin-1/days/2/activities/0/booked")
    assert booked.status_code == 200
    assert booked.json()["days"][1]["activities"][0]["booked"] is True
    assert signed_in.get("/itineraries/itin-1").json()["days"][1]["activities"][0]["booked"] is True

    assert signed_in.post("/itineraries/itin-1/days/2/activities/5/booked").status_code == 404

    assert signed_in.delete("/itineraries/itin-1").status_code == 200
    assert signed_in.get("/itineraries/itin-1").status_code == 404
    assert signed_in.delete("/itineraries/itin-1").status_code == 404


def test_chat_tool_call_updates_saved_itinerary(signed_in, chat_session, response_factory, sample_itinerary) -> None:
    signed_in.post("/itineraries", json={"itinerary": sample_itinerary.model_dump(mode="json")})
    chat_session.send_message.return_value = response_factory(
        text="Here is your beach day.",
        function_calls=[SimpleNamespace(
            name="update_day_activities",
            args={
                "day": 2,
                "theme": "Coast",
                "activities": [{
                    "time": "11:00 AM",
                    "activity": "Beach",
                    "location": "Amanohashidate",
                    "type": "relax",
                    "coordinates": {"lat": 35.57, "lng": 135.19},
                }],
            },
        )],
    )

    response = signed_in.post("/chat", json={"message": "Make day 2 a beach day", "itinerary_id": "itin-1"})

    assert response.status_code == 200
    assert response.json()["message"]["text"] == "Day 2 updated."
    assert response.json()["itinerary"]["days"][1]["theme"] == "Coast"
    stored = signed_in.get("/itineraries/itin-1").json()
    assert stored["days"][1]["activities"][0]["activity"] == "Beach"
    assert stored["days"][0]["theme"] == "Temples"


def test_chat_unknown_itinerary(signed_in) -> None:
    response = signed_in.post("/chat", json={"message": "hi", "itinerary_id": "missing"})

    assert response.status_code == 404


def test_chat_without_itinerary(signed_in, chat_session, response_factory) -> None:
    chat_session.send_message.return_value = response_factory(text="Hello there!")

    response = signed_in.post("/chat", json={"message": "hi"})

    assert response.json()["message"]["text"] == "Hello there!"
    assert response.json()["itinerary"] is None


def test_speech(signed_in, genai_client, response_factory) -> None:
    part = SimpleNamespace(inline_data=SimpleNamespace(data=b"abc"))
    candidate = SimpleNamespace(finish_reason="STOP", safety_ratings=[], content=SimpleNamespace(parts=[part]))
    genai_client.aio.models.generate_content.return_value = response_factory(candidates=[candidate])

    response = signed_in.post("/speech", json={"text": "Welcome"})

    assert response.json() == {"audio_base64": "YWJj"}


def test_nearby(signed_in, genai_client, response_factory) -> None:
    genai_client.aio.models.generate_content.return_value = response_factory(
        text='[{"name": "Philosopher\'s Path", "lat": 35.02, "lng": 135.79}]'
    )

    response = signed_in.post("/nearby", json={"lat": 35.0, "lng": 135.7})

    assert response.status_code == 200
    assert response.json()[0]["name"] == "Philosopher's Path"
    assert response.json()[0]["id"] == 100


def test_chat_save_failure_returns_stored_itinerary(
    signed_in, chat_session, response_factory, sample_itinerary, monkeypatch
) -> None:
    signed_in.post("/itineraries", json={"itinerary": sample_itinerary.model_dump(mode="json")})
    chat_session.send_message.return_value = response_factory(
        text="Done.",
        function_calls=[SimpleNamespace(
            name="update_day_activities",
            args={"day": 2, "theme": "Coast", "activities": []},
        )],
    )

    async def failing_upsert(email, itinerary):
        raise RuntimeError("db down")

    monkeypatch.setattr("kanso.utils.database.upsert_itinerary", failing_upsert)

    response = signed_in.post("/chat", json={"message": "Clear day 2", "itinerary_id": "itin-1"})

    assert response.status_code == 200
    assert response.json()["message"]["text"] == "I encountered an error processing your request."
    assert response.json()["itinerary"]["days"][1]["theme"] == "Markets"
