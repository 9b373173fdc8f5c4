"""FastAPI application relaying chat messages to the text-generation provider."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .errors import UpstreamError, ValidationError
from .llm import GeminiClient, TextGenerator
from .persona import IdentityFilter, build_prompt

logger = logging.getLogger(__name__)

MISSING_MESSAGE = "Message is required."
UPSTREAM_FAILURE = "An error occurred while processing your request."


# -----------------------------
# Pydantic request/response
# -----------------------------
class ChatRequest(BaseModel):
    message: Optional[str] = Field(default=None, description="Raw user text.")


class ChatResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


# -----------------------------
# App factory
# -----------------------------
def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[TextGenerator] = None,
    config_path: Optional[str] = None,
) -> FastAPI:
    """Build the relay app.

    ``settings`` and ``generator`` are built once here (or injected by the
    caller) and captured by the route; requests share nothing else.
    """
    settings = settings or load_settings(config_path)
    generator = generator or GeminiClient.from_settings(settings)
    identity_filter = IdentityFilter.from_settings(settings)

    app = FastAPI(title=f"{settings.persona_name} Chat Relay", version="1.0.0")
    app.state.settings = settings
    app.state.generator = generator
    app.state.identity_filter = identity_filter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------- error rendering: always {"error": str} --------
    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Absent body, non-object body or non-string message.
        return JSONResponse(status_code=400, content={"error": MISSING_MESSAGE})

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(UpstreamError)
    async def _upstream(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("Error calling %s API: %s", settings.model, exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"error": UPSTREAM_FAILURE})

    # -------- routes --------
    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "model": settings.model}

    @app.post(
        "/api/chat",
        response_model=ChatResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def chat(req: ChatRequest) -> ChatResponse:
        text = req.message or ""
        if not text.strip():
            raise ValidationError(MISSING_MESSAGE)

        prompt = build_prompt(settings.persona_name, settings.persona_directive, text)
        try:
            reply = await generator.generate(prompt)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"Text generation failed: {e}") from e
        filtered = identity_filter.apply(reply)
        logger.info("Relayed message: in=%d chars out=%d chars", len(text), len(filtered))
        return ChatResponse(message=filtered)

    # Static client last so /api/* and /health take precedence.
    if settings.static_dir.exists():
        app.mount("/", StaticFiles(directory=str(settings.static_dir), html=True), name="static")
    else:
        logger.warning("Static client dir not found: %s", settings.static_dir)

    return app
