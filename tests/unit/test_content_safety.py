"""Tests for content safety settings and response checks."""

from types import SimpleNamespace

import pytest
from google.genai import types

from kanso.errors import ContentSafetyError
from kanso.utils.content_safety import check_content_safety, configure_safety_settings


def test_safety_settings_block_only_high() -> None:
    settings = configure_safety_settings()

    assert len(settings) == 4
    assert all(s.threshold == types.HarmBlockThreshold.BLOCK_ONLY_HIGH for s in settings)


def test_normal_response_is_safe(response_factory) -> None:
    assert check_content_safety(response_factory(text="ok")) is True


def test_blocked_prompt_raises(response_factory) -> None:
    response = response_factory(prompt_feedback=SimpleNamespace(block_reason="PROHIBITED_CONTENT"))

    with pytest.raises(ContentSafetyError, match="PROHIBITED_CONTENT"):
        check_content_safety(response)


def test_safety_finish_reason_raises_with_ratings(response_factory) -> None:
    candidate = SimpleNamespace(
        finish_reason=types.FinishReason.SAFETY,
        safety_ratings=[SimpleNamespace(category="HARM_CATEGORY_HARASSMENT", probability="HIGH")],
        content=None,
    )

    with pytest.raises(ContentSafetyError) as exc_info:
        check_content_safety(response_factory(candidates=[candidate]))

    assert exc_info.value.safety_ratings == [
        {"category": "HARM_CATEGORY_HARASSMENT", "probability": "HIGH"}
    ]
