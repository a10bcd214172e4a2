"""Content safety settings and checks for Gemini responses"""
import logging
from typing import Any, List

from google.genai import types

from ..errors import ContentSafetyError

logger = logging.getLogger(__name__)

_BLOCKED_CATEGORIES = [
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
]


def configure_safety_settings() -> List[types.SafetySetting]:
    """
    Configure Gemini safety settings

    Uses BLOCK_ONLY_HIGH to avoid false positives on normal travel requests.

    Returns:
        Safety settings list for GenerateContentConfig
    """
    return [
        types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH)
        for category in _BLOCKED_CATEGORIES
    ]


def _enum_name(value: Any) -> str:
    return str(getattr(value, "name", value))


def check_content_safety(response: Any) -> bool:
    """
    Check if a Gemini response was blocked by safety filters

    Args:
        response: GenerateContentResponse (or chat send_message result)

    Returns:
        bool: True if safe

    Raises:
        ContentSafetyError: If the prompt or the first candidate was blocked
    """
    prompt_feedback = getattr(response, "prompt_feedback", None)
    block_reason = getattr(prompt_feedback, "block_reason", None) if prompt_feedback else None
    if block_reason:
        logger.warning(f"Prompt blocked by provider: {_enum_name(block_reason)}")
        raise ContentSafetyError(f"Content blocked: {_enum_name(block_reason)}")

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        candidate = candidates[0]
        if _enum_name(getattr(candidate, "finish_reason", None)) == "SAFETY":
            ratings = [
                {
                    "category": _enum_name(getattr(r, "category", None)),
                    "probability": _enum_name(getattr(r, "probability", None))
                }
                for r in (getattr(candidate, "safety_ratings", None) or [])
            ]
            logger.warning(f"Response blocked by provider safety filters: {ratings}")
            raise ContentSafetyError("Response blocked by safety filters", safety_ratings=ratings)

    return True
