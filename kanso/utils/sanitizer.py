"""Input sanitization for free text that reaches a prompt"""
import logging
from typing import Iterable, List, Optional

from ..config import settings

logger = logging.getLogger(__name__)


def sanitize_input(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Trim and bound untrusted text before it is interpolated into a prompt.

    Every destination, interest tag, group tag and chat message must pass
    through here. Over-long input is truncated, never rejected.

    Args:
        text: Raw user text (None is treated as empty)
        max_length: Hard cap, defaults to settings.max_input_length

    Returns:
        Sanitized text, at most max_length characters
    """
    if not text:
        return ""

    cap = max_length if max_length is not None else settings.max_input_length
    clean = text.strip()

    if len(clean) > cap:
        logger.warning(f"[Security] Input truncated from {len(clean)} to {cap} characters.")
        # Re-strip so a cut landing on whitespace stays idempotent
        clean = clean[:cap].rstrip()

    return clean


def sanitize_tags(tags: Iterable[Optional[str]]) -> List[str]:
    """Sanitize a list of tags, dropping the ones that end up empty"""
    cleaned = (sanitize_input(tag) for tag in tags)
    return [tag for tag in cleaned if tag]
