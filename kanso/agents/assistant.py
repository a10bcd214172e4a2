"""Chat-turn orchestration for one conversation session"""
import logging
import time
import uuid
from typing import Awaitable, Callable, List, Optional

from ..errors import RateLimitExceeded
from ..schemas.chat import ChatMessage
from ..schemas.itinerary import Itinerary
from .generation_gateway import GenerationGateway
from .tool_dispatcher import ToolCallDispatcher

logger = logging.getLogger(__name__)

ERROR_REPLY = "I encountered an error processing your request."

PersistFn = Callable[[Itinerary], Awaitable[object]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class TravelAssistant:
    """
    Keeps the visible transcript and turns chat replies into itinerary edits.

    The transcript is append-only and never persisted. Tool calls edit a
    copy of the itinerary; the copy replaces `itinerary` only after
    `persist` accepts it, so a failed save leaves the previous state.
    """

    def __init__(
        self,
        gateway: GenerationGateway,
        itinerary: Optional[Itinerary] = None,
        persist: Optional[PersistFn] = None,
        dispatcher: Optional[ToolCallDispatcher] = None,
        messages: Optional[List[ChatMessage]] = None
    ):
        self.gateway = gateway
        self.itinerary = itinerary
        self.persist = persist
        self.dispatcher = dispatcher or ToolCallDispatcher()
        self.messages: List[ChatMessage] = list(messages or [])

    def _message(self, role: str, text: str, sources=None) -> ChatMessage:
        return ChatMessage(
            id=uuid.uuid4().hex,
            role=role,
            text=text,
            timestamp=_now_ms(),
            sources=sources or None
        )

    async def send(self, text: str) -> Optional[ChatMessage]:
        """
        Run one turn and return the model's message (None for blank input)
        """
        if not text or not text.strip():
            return None

        history = list(self.messages)
        user_message = self._message("user", text)
        self.messages.append(user_message)

        sources = None
        try:
            response = await self.gateway.chat(history, user_message.text, self.itinerary)
            reply_text = response.text
            sources = response.sources

            if response.tool_calls and self.itinerary is not None:
                # Edits land on a copy that replaces the itinerary only once saved
                draft = self.itinerary.model_copy(deep=True)
                result = self.dispatcher.dispatch(draft, response.tool_calls)
                if result.changed:
                    if self.persist is not None:
                        await self.persist(draft)
                    self.itinerary = draft
                    reply_text = " ".join(result.confirmations())
        except RateLimitExceeded as e:
            reply_text = f"Rate limit reached. Please wait {e.retry_after_seconds}s."
        except Exception as e:
            logger.error(f"❌ Chat turn failed: {type(e).__name__}: {str(e)}")
            reply_text = ERROR_REPLY

        reply = self._message("model", reply_text, sources)
        self.messages.append(reply)
        return reply
