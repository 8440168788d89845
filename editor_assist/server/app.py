"""
HTTP endpoint for the writing assistant.

Request order: auth, input validation, profile lookup, quota admission,
model call. Usage logging runs as a background task once the response has
been sent, so a slow or failing log write never delays the user.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Header
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from editor_assist.config.loader import AssistConfig, load_assist_config, load_settings
from editor_assist.core.errors import (
    AssistError,
    QuotaExceededError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from editor_assist.core.prompts import FEATURES, build_messages, system_prompt_for, validate_request
from editor_assist.core.quota import QuotaLedger
from editor_assist.sdk.openai_client import ModelGateway
from editor_assist.storage.models import LLMUsageEvent
from editor_assist.storage.repository import UsageRepository

from .collaborators import (
    IdentityVerifier,
    ProfileStore,
    RepositoryProfileStore,
    StaticTokenVerifier,
    bearer_token,
)

logger = logging.getLogger(__name__)

ASSIST_PATH = "/api/assist"


class AssistRequest(BaseModel):
    feature: str = "chat"
    prompt: Optional[str] = None
    context: Optional[str] = None
    power: bool = False


def _error_body(error: AssistError) -> dict:
    body = {"ok": False, "error": error.message}
    if isinstance(error, QuotaExceededError):
        body["quota"] = {"used": error.used, "limit": error.limit}
    elif isinstance(error, UpstreamError):
        body["detail"] = error.detail
    return body


def record_usage(repository: UsageRepository, event: LLMUsageEvent) -> None:
    """Best-effort usage log write; failures are logged and dropped."""
    try:
        repository.log_event(event)
    except Exception:
        logger.exception("Failed to record usage event for %s", event.user_id)


def create_app(
    repository: UsageRepository,
    gateway: ModelGateway,
    verifier: IdentityVerifier,
    profiles: Optional[ProfileStore] = None,
    config: Optional[AssistConfig] = None,
    cors_origins=("http://localhost:3000",)
) -> FastAPI:
    """Build the assistant app around its collaborators.

    Args:
        repository: Usage store holding the quota ledger and usage log
        gateway: Model gateway
        verifier: Identity verifier for bearer tokens
        profiles: Profile store; defaults to profiles kept in ``repository``
        config: Assistant configuration; defaults apply when omitted
        cors_origins: Browser origins allowed to call the endpoint

    Returns:
        Configured FastAPI application
    """
    config = config or AssistConfig()
    profiles = profiles or RepositoryProfileStore(repository)
    ledger = QuotaLedger(repository, config.tiers)

    app = FastAPI(title="Editor Assist")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(AssistError)
    async def handle_assist_error(request, exc: AssistError):
        if isinstance(exc, StorageError):
            logger.error("Storage failure on %s: %s", request.url.path, exc.detail)
        return JSONResponse(status_code=exc.http_status, content=_error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_bad_body(request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid request body"})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unexpected(request, exc: Exception):
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal error"})

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post(ASSIST_PATH)
    def assist(
        body: AssistRequest,
        background_tasks: BackgroundTasks,
        authorization: Optional[str] = Header(None)
    ):
        user_id = verifier.verify(bearer_token(authorization))

        feature = body.feature or "chat"
        if feature not in FEATURES:
            raise ValidationError(f"Unknown feature: {feature}")
        context = body.context or ""
        validate_request(body.prompt, context, config.limits)

        try:
            premium = profiles.is_premium(user_id)
            admitted = ledger.admit(user_id, premium)
        except AssistError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure admitting %s", user_id)
            raise StorageError(str(e)) from e

        model = config.tiers.select_model(premium, body.power)
        messages = build_messages(system_prompt_for(feature), body.prompt, context)
        result = gateway.generate(
            model,
            messages,
            temperature=config.generation.temperature,
            max_tokens=config.generation.max_tokens,
        )

        usage = result.usage
        background_tasks.add_task(record_usage, repository, LLMUsageEvent(
            timestamp=datetime.now(timezone.utc),
            user_id=user_id,
            feature=feature,
            model=model,
            prompt_chars=len(body.prompt),
            context_chars=len(context),
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            request_id=result.request_id,
        ))

        logger.info("Assist %s for %s via %s (%d/%d)", feature, user_id, model, admitted.used, admitted.limit)
        return {
            "ok": True,
            "text": result.text,
            "usage": usage.as_dict() if usage else None,
            "quota": {"used": admitted.used, "limit": admitted.limit},
            "model": model,
            "premium": premium,
        }

    return app


def build_app_from_env() -> FastAPI:
    """App factory for ``uvicorn --factory``, configured from the environment."""
    settings = load_settings()
    repository = UsageRepository(settings.db_path)
    repository.initialize()
    return create_app(
        repository=repository,
        gateway=ModelGateway(),
        verifier=StaticTokenVerifier(settings.static_tokens),
        config=load_assist_config(settings.config_path),
        cors_origins=settings.cors_origins,
    )
