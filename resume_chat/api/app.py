from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resume_chat import __version__
from resume_chat.api.models import (
    ChatRequest,
    ChatResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    LimitsReport,
    UsageReport,
)
from resume_chat.config.loader import load_knowledge_base, load_usage_limits
from resume_chat.config.settings import Settings, get_settings
from resume_chat.core.routing import AnswerPath, ResponseRouter
from resume_chat.core.usage import UsageGovernor
from resume_chat.sdk.openai_client import ResumeAssistantClient, build_system_prompt


logger = logging.getLogger("resume_chat")


def build_router(settings: Settings, governor: Optional[UsageGovernor] = None) -> ResponseRouter:
    """Wire the governor, knowledge base and upstream client from settings."""
    if governor is None:
        governor = UsageGovernor(load_usage_limits(settings.usage_limits_path))
    knowledge = load_knowledge_base(settings.knowledge_base_path)
    upstream = ResumeAssistantClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        max_tokens=governor.limits.max_tokens_per_request,
        system_prompt=build_system_prompt(knowledge),
        timeout=settings.openai_timeout,
    )
    return ResponseRouter(governor, knowledge, upstream)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(
    settings: Optional[Settings] = None,
    router: Optional[ResponseRouter] = None
) -> FastAPI:
    settings = settings or get_settings()
    router = router or build_router(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Resume Chat backend starting: env=%s model=%s key_set=%s",
            settings.app_env,
            settings.openai_model,
            router.upstream.configured,
        )
        yield
        logger.info("Resume Chat backend shutting down")

    app = FastAPI(title="Resume Chat", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.router = router

    origins = list(settings.allowed_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials="*" not in origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_input(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            ErrorDetail(
                field=".".join(str(part) for part in err.get("loc", ()) if part != "body") or "body",
                message=err.get("msg", "invalid value"),
            )
            for err in exc.errors()
        ]
        logger.info("Rejected chat input: %s", [d.message for d in details])
        body = ErrorResponse(error="Invalid input", details=details)
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        governor = router.governor
        record = governor.snapshot()
        limits = governor.limits
        return HealthResponse(
            message="Resume Chat backend is running!",
            model=settings.openai_model,
            upstream_configured=router.upstream.configured,
            usage=UsageReport(
                daily_requests=record.daily_request_count,
                monthly_requests=record.monthly_request_count,
                monthly_cost=round(record.monthly_cost_estimate, 6),
                lifetime_cost=round(record.lifetime_cost_estimate, 6),
                upstream_disabled=record.upstream_permanently_disabled,
                last_reset=record.last_reset.isoformat(),
                limits=LimitsReport(
                    daily_request_limit=limits.daily_request_limit,
                    monthly_request_limit=limits.monthly_request_limit,
                    max_tokens_per_request=limits.max_tokens_per_request,
                    cost_per_1k_tokens=limits.cost_per_1k_tokens,
                    monthly_cost_limit=limits.monthly_cost_limit,
                    lifetime_cost_limit=limits.lifetime_cost_limit,
                ),
            ),
        )

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(req: ChatRequest) -> ChatResponse:
        logger.info("Incoming chat: message_len=%s", len(req.message))
        try:
            answer = router.route(req.message)
        except Exception as e:
            # Past validation every failure degrades to a canned answer
            logger.exception("Chat processing failed: %s", e)
            answer = router.fallback(AnswerPath.INTERNAL_ERROR)

        logger.info("Answered via %s path: %s chars", answer.path.name, len(answer.text))
        return ChatResponse(response=answer.text, timestamp=_utc_timestamp(), note=answer.note)

    return app
