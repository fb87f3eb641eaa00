"""REST API for the relay service.

Endpoints:
  POST /brain/tag                 - Classify a message, advance scoring state
  POST /brain/chat                - Generate a reply to a message
  GET  /brain/timeline/{user_id}  - Conversation state + full event log
  GET  /conversations             - All conversation states
  GET  /health                    - Health check (DB connectivity, no auth)

Every endpoint except /health requires the x-api-key header when
Settings.api_key is set.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from relay.config import Settings
from relay.orchestration import ConversationTimeline, MessageTagger, ResponseGenerator
from relay.providers import RouterExhaustedError
from relay.storage.database import Database

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[JSONResponse]]


def create_app(
    tagger: MessageTagger,
    responder: ResponseGenerator,
    timeline: ConversationTimeline,
    database: Database,
    settings: Settings,
    lifespan: Any | None = None,
) -> Starlette:
    """Create the Starlette ASGI app with all routes."""

    def authenticated(handler: Handler) -> Handler:
        async def wrapper(request: Request) -> JSONResponse:
            if settings.api_key:
                provided = request.headers.get("x-api-key", "")
                if not hmac.compare_digest(provided.encode(), settings.api_key.encode()):
                    return JSONResponse({"error": "Unauthorized"}, status_code=401)
            return await handler(request)

        wrapper.__name__ = handler.__name__
        wrapper.__doc__ = handler.__doc__
        return wrapper

    async def _read_message_body(request: Request) -> dict[str, Any] | JSONResponse:
        try:
            body = await request.json()
        except Exception:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        user_id = body.get("user_id")
        message = body.get("message")
        if not isinstance(user_id, str) or not user_id or not isinstance(message, str) or not message:
            return JSONResponse({"error": "Missing user_id or message"}, status_code=400)
        return body

    @authenticated
    async def tag(request: Request) -> JSONResponse:
        """POST /brain/tag - Classify a message."""
        body = await _read_message_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            result = await tagger.tag(body["user_id"], body["message"])
            return JSONResponse(result.model_dump(mode="json"))
        except Exception as e:
            logger.error("Tag error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=500)

    @authenticated
    async def chat(request: Request) -> JSONResponse:
        """POST /brain/chat - Generate a reply."""
        body = await _read_message_body(request)
        if isinstance(body, JSONResponse):
            return body
        for optional in ("persona_id", "context"):
            if body.get(optional) is not None and not isinstance(body[optional], str):
                return JSONResponse({"error": f"{optional} must be a string"}, status_code=400)
        try:
            result = await responder.generate(
                body["user_id"],
                body["message"],
                persona_id=body.get("persona_id"),
                supplemental_context=body.get("context"),
            )
            return JSONResponse(result.model_dump(mode="json"))
        except RouterExhaustedError as e:
            logger.error("Chat error, no provider available: %s", e)
            return JSONResponse({"error": str(e)}, status_code=502)
        except Exception as e:
            logger.error("Chat error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=500)

    @authenticated
    async def get_timeline(request: Request) -> JSONResponse:
        """GET /brain/timeline/{user_id} - Conversation + events."""
        user_id = request.path_params["user_id"]
        try:
            view = await timeline.get(user_id)
            if view is None:
                return JSONResponse({"error": "Conversation not found"}, status_code=404)
            return JSONResponse(view.model_dump(mode="json"))
        except Exception as e:
            logger.error("Timeline error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=500)

    @authenticated
    async def list_conversations(request: Request) -> JSONResponse:
        """GET /conversations - All conversation states."""
        try:
            conversations = await timeline.list_conversations()
            return JSONResponse(
                {
                    "conversations": [c.model_dump(mode="json") for c in conversations],
                    "total": len(conversations),
                }
            )
        except Exception as e:
            logger.error("List conversations error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=500)

    async def health(request: Request) -> JSONResponse:
        """GET /health - Health check."""
        try:
            await database.ping()
            return JSONResponse({"status": "healthy"})
        except Exception as e:
            return JSONResponse({"status": "unhealthy", "error": str(e)}, status_code=503)

    routes = [
        Route("/brain/tag", tag, methods=["POST"]),
        Route("/brain/chat", chat, methods=["POST"]),
        Route("/brain/timeline/{user_id}", get_timeline, methods=["GET"]),
        Route("/conversations", list_conversations, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
