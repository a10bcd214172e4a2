"""Failure taxonomy shared by the gateway, account flows and HTTP layer"""
from typing import Optional


class KansoError(Exception):
    """Base error carrying a user-facing message and structured details"""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RateLimitExceeded(KansoError):
    """Quota for a purpose is exhausted; always recoverable by waiting"""
    def __init__(self, purpose: str, retry_after_seconds: int, message: Optional[str] = None):
        self.purpose = purpose
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message or f"Rate limit exceeded. Please wait {retry_after_seconds} seconds before trying again.",
            {"purpose": purpose, "retry_after_seconds": retry_after_seconds}
        )


class ValidationError(KansoError):
    """Malformed or missing input, raised before any provider call"""


class GenerationError(KansoError):
    """Generation failed and no safe placeholder exists"""


class ParseError(GenerationError):
    """Provider response did not match the expected structure"""


class ProviderError(GenerationError):
    """Network or provider-side failure"""


class ContentSafetyError(GenerationError):
    """Provider blocked the prompt or the response on safety grounds"""
    def __init__(self, message: str, safety_ratings: Optional[list] = None):
        self.safety_ratings = safety_ratings or []
        super().__init__(message, {"safety_ratings": self.safety_ratings})


class AuthError(KansoError):
    """Invalid credentials or duplicate account"""
    def __init__(self, message: str, duplicate: bool = False):
        self.duplicate = duplicate
        super().__init__(message)
