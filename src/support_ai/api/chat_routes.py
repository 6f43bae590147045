"""
Chat Routes: Retrieval-Augmented Support Assistant

Major Responsibilities
----------------------
1. Accept a ChatRequest holding the new message, the caller-held history
   and an optional opaque session id.
2. Run one RAG turn through the orchestrator.
3. Return the answer, its sources and the detected intent, echoing or
   minting the session id.
4. Map turn failures to 429 (provider rate limiting, back off) or 500
   (retry later or open a ticket).

The server keeps no conversation state; the session id only correlates
requests.
"""

import logging
import secrets
import string
import time
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .dependencies import get_orchestrator
from .models import ChatData, ChatRequest, ChatResponse
from ..rag.orchestrator import ChatFailure, RagOrchestrator

logger = logging.getLogger("support.api.chat")

router = APIRouter(prefix="/api/ai", tags=["chat"])

_SESSION_ALPHABET = string.ascii_lowercase + string.digits

RATE_LIMITED_MESSAGE = "Too many requests. Please try again in a moment."
FAILED_MESSAGE = "Failed to generate response. Please try again."


def generate_session_id() -> str:
    """`session_<epoch-ms>_<7 random base36 chars>`"""
    suffix = "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(7))
    return f"session_{int(time.time() * 1000)}_{suffix}"


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Ask the support assistant",
    status_code=status.HTTP_200_OK,
    responses={429: {"description": "Model provider rate limited"}},
)
async def chat(
    req: ChatRequest,
    orchestrator: Annotated[RagOrchestrator, Depends(get_orchestrator)],
):
    logger.info(
        "Chat request (history length %d)", len(req.conversation_history)
    )

    try:
        response = await orchestrator.chat(req.message, req.conversation_history)
    except ChatFailure as exc:
        if exc.rate_limited:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "error": RATE_LIMITED_MESSAGE},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": FAILED_MESSAGE,
                "details": str(exc),
            },
        )

    return ChatResponse(
        data=ChatData(
            message=response.message,
            sources=response.sources,
            intent=response.intent,
            confidence=response.confidence,
            session_id=req.session_id or generate_session_id(),
        )
    )


@router.get("/chat", summary="Describe the chat endpoint")
async def describe_chat() -> Dict[str, Any]:
    return {
        "endpoint": "/api/ai/chat",
        "method": "POST",
        "description": "AI-powered troubleshooting chat",
        "body": {
            "message": "string (required)",
            "conversationHistory": "ChatMessage[] (optional)",
            "sessionId": "string (optional)",
        },
        "example": {"message": "How do I reset my password?"},
    }
