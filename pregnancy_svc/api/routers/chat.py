"""
Chat router - streaming conversation with the assistant.

The reply is streamed as plain-text fragments in the order they arrive.
Errors before the first fragment are returned as normal JSON errors; a
failure mid-stream ends the response early and discards the session.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from core.auth import get_user_id, verify_api_key
from core.dependencies import get_chat_service
from schemas import ChatMessageRequest
from services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["Chat Assistant"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "/messages",
    summary="Send a chat message",
    description="Send a message to the assistant and receive the reply as a text/plain stream.",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/plain": {}}}}
)
async def send_message(
    body: ChatMessageRequest,
    user_id: str = Depends(get_user_id),
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Raises:
    - 400 Bad Request: Empty message (EmptyMessageError)
    - 502 Bad Gateway: The assistant failed (ChatServiceError)
    - 503 Service Unavailable: The AI service is not configured
    """
    fragments = await chat_service.stream_reply(user_id, body.message)
    return StreamingResponse(fragments, media_type="text/plain; charset=utf-8")


@router.delete(
    "/session",
    summary="Reset the chat",
    description="Discard the signed-in user's chat session; the next message starts a new one."
)
async def reset_session(
    user_id: str = Depends(get_user_id),
    chat_service: ChatService = Depends(get_chat_service)
):
    return {"cleared": chat_service.reset(user_id)}
