"""
Conversational assistant ("Rafeeqa") backed by Gemini chat sessions.

Each user has at most one ongoing session. A session is seeded once, when it
is created, with the assistant instruction and the user's history summary;
later records do not refresh it. Any failure while sending or streaming
discards the session, so the next message starts over with a fresh summary.

The registry does not lock: callers must not send two messages for the same
user concurrently.
"""
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from google.api_core import exceptions as google_exceptions

from core.exceptions import ChatServiceError, EmptyMessageError
from core.middleware import get_metrics_collector
from repositories.patient_record_repository import PatientRecordRepository
from services.gemini_service import QUOTA_MESSAGE, is_safety_block
from services.history_summary import summarize_history
from services.knowledge_base import MEDICAL_KB

logger = logging.getLogger(__name__)

SAFETY_BLOCK_MESSAGE = "تم حظر الرسالة لأسباب تتعلق بالسلامة. يرجى إعادة صياغة سؤالك."


def build_system_instruction(history_summary: str) -> str:
    """Instruction a new chat session is seeded with."""
    return f"""
**ROLE:** You are 'رفيقة' (Rafeeqa), a caring and knowledgeable AI health assistant specialized in pregnancy care.

**PERSONALITY:**
- Warm, empathetic, and supportive
- Professional but friendly
- Always encourages seeking professional medical help when needed

**KNOWLEDGE BASE:**
Your medical knowledge is based STRICTLY on the following information:
{MEDICAL_KB}

**USER'S HEALTH CONTEXT:**
{history_summary}

**GUIDELINES:**
1. ALWAYS respond in Arabic (العربية)
2. Keep responses concise and easy to understand
3. When uncertain, admit it and recommend consulting a doctor
4. Never diagnose conditions - only provide general information
5. Always prioritize patient safety and encourage regular prenatal checkups

**RESTRICTIONS:**
- Do NOT provide medical advice beyond the knowledge base
- Do NOT prescribe medications
- ALWAYS recommend seeing a doctor for serious symptoms

**RESPONSE FORMAT:**
- Start with empathy or acknowledgment
- Provide clear, structured information, using bullet points for lists
- End with supportive encouragement or next steps
"""


@dataclass
class _SessionEntry:
    chat: Any
    last_activity: float


class ChatSessionRegistry:
    """
    Process-lifetime map of user id to chat session.

    Eviction:
    - LRU: creating a session beyond max_sessions drops the least recently used one
    - Idle timeout: a session unused for idle_timeout_seconds is dropped the
      next time it is looked up (0 disables expiry)
    """

    def __init__(
        self,
        max_sessions: int = 1000,
        idle_timeout_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.idle_timeout_seconds = idle_timeout_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, _SessionEntry]" = OrderedDict()

    def get(self, user_id: str) -> Optional[Any]:
        """Return the user's live session and mark it as used, or None."""
        entry = self._sessions.get(user_id)
        if entry is None:
            return None

        now = self._clock()
        if self.idle_timeout_seconds and now - entry.last_activity > self.idle_timeout_seconds:
            logger.info(f"Chat session for user {user_id} expired after inactivity")
            del self._sessions[user_id]
            return None

        entry.last_activity = now
        self._sessions.move_to_end(user_id)
        return entry.chat

    def put(self, user_id: str, chat: Any) -> None:
        """Register a session for a user, evicting the least recently used if full."""
        self._sessions.pop(user_id, None)
        while len(self._sessions) >= self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted least recently used chat session for user {evicted}")
        self._sessions[user_id] = _SessionEntry(chat=chat, last_activity=self._clock())

    def discard(self, user_id: str) -> bool:
        """Drop a user's session. Returns True if there was one."""
        return self._sessions.pop(user_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions


class ChatService:
    """Service for the conversational assistant."""

    def __init__(
        self,
        registry: ChatSessionRegistry,
        record_repository: PatientRecordRepository,
        gemini_service_factory: Callable[[], Any]
    ):
        """
        Initialize the chat service.

        Args:
            registry: Shared session registry.
            record_repository: Source of the user's history for new sessions.
            gemini_service_factory: Returns a GeminiService; only called when a
                new session has to be created.
        """
        self._registry = registry
        self._record_repo = record_repository
        self._gemini_factory = gemini_service_factory

    async def stream_reply(self, user_id: str, message: str) -> AsyncIterator[str]:
        """
        Send a message and return the reply as an async iterator of text fragments.

        Raises:
            EmptyMessageError: If the user id or message is empty (no network call is made).
            ChatServiceError: If the message could not be sent. The session is discarded.
        """
        text = (message or "").strip()
        if not user_id or not text:
            raise EmptyMessageError()

        chat = self._get_or_create_session(user_id)

        try:
            response = await chat.send_message_async(text, stream=True)
        except Exception as e:
            raise self._discard_after_failure(user_id, e) from e

        return self._iterate_reply(user_id, response)

    async def _iterate_reply(self, user_id: str, response) -> AsyncIterator[str]:
        completed = False
        try:
            async for chunk in response:
                fragment = chunk.text
                if fragment:
                    yield fragment
            completed = True
        except Exception as e:
            raise self._discard_after_failure(user_id, e) from e
        finally:
            # An unfinished turn (client gone, task cancelled) leaves the
            # session unusable for the next message.
            if not completed and self._registry.discard(user_id):
                logger.warning(f"Chat reply for user {user_id} was abandoned, session discarded")

        get_metrics_collector().record_ai_call("chat", success=True)

    def reset(self, user_id: str) -> bool:
        """Discard a user's session on request."""
        discarded = self._registry.discard(user_id)
        if discarded:
            logger.info(f"Cleared chat session for user {user_id}")
        return discarded

    def active_sessions(self) -> int:
        return len(self._registry)

    def _get_or_create_session(self, user_id: str):
        chat = self._registry.get(user_id)
        if chat is not None:
            return chat

        gemini = self._gemini_factory()
        history = self._record_repo.list_by_user(user_id)
        chat = gemini.start_chat(build_system_instruction(summarize_history(history)))
        self._registry.put(user_id, chat)

        logger.info(
            "Created chat session",
            extra={"user_id": user_id, "history_count": len(history)}
        )
        return chat

    def _discard_after_failure(self, user_id: str, exc: Exception) -> ChatServiceError:
        self._registry.discard(user_id)
        get_metrics_collector().record_ai_call("chat", success=False)
        logger.error(f"Chat failed for user {user_id}, session discarded: {exc}", exc_info=True)

        if is_safety_block(exc):
            return ChatServiceError(SAFETY_BLOCK_MESSAGE)
        if isinstance(exc, google_exceptions.ResourceExhausted):
            return ChatServiceError(QUOTA_MESSAGE)
        return ChatServiceError()
