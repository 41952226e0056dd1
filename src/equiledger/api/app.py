"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from equiledger import __version__
from equiledger.api import dashboard, webhooks
from equiledger.channels import TelegramClient, TwilioWhatsAppClient
from equiledger.clients import LLMClient
from equiledger.config import Settings, configure_logging, get_settings
from equiledger.conversation import MessageRouter
from equiledger.db.context import BusinessContextError
from equiledger.db.session import SessionFactory, get_engine, get_sessionmaker, init_db, init_engine
from equiledger.errors import LedgerError, NotFoundError
from equiledger.workflows import WorkflowRunner

logger = structlog.get_logger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        missing = any(error.get("type") == "missing" for error in errors)
        return JSONResponse(
            {
                "error": "Missing required fields" if missing else "Invalid request",
                "details": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                    for error in errors
                ],
            },
            status_code=400,
        )

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(BusinessContextError)
    async def context_error(request: Request, exc: BusinessContextError):
        logger.warning("business_context_denied", path=request.url.path, error=str(exc))
        return JSONResponse({"error": str(exc)}, status_code=403)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    settings: Settings | None = None,
    session_factory: SessionFactory | None = None,
    router: MessageRouter | None = None,
    *,
    llm_client: LLMClient | None = None,
    whatsapp: TwilioWhatsAppClient | None = None,
    telegram: TelegramClient | None = None,
    workflows: WorkflowRunner | None = None,
) -> FastAPI:
    """Build the application.

    Collaborators left as ``None`` are created from settings; tests pass
    their own session factory, router and channel clients.
    """
    settings = settings or get_settings()

    if session_factory is None:
        init_engine(settings.database_url)
        session_factory = get_sessionmaker()

    whatsapp = whatsapp or TwilioWhatsAppClient()
    telegram = telegram or TelegramClient()

    async def notify(channel: str, recipient: str, text: str) -> None:
        if channel == "whatsapp":
            await whatsapp.send_message(recipient, text)
        elif channel == "telegram":
            await telegram.send_message(recipient, text)
        else:
            logger.warning("notify_channel_unknown", channel=channel)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, settings.log_format)
        bind = getattr(session_factory, "kw", {}).get("bind")
        init_db(bind or get_engine())
        logger.info("app_started", version=__version__, llm_provider=settings.llm_provider)
        yield
        await whatsapp.close()
        await telegram.close()
        logger.info("app_stopped")

    app = FastAPI(title="EquiLedger", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.router = router or MessageRouter(session_factory, llm_client)
    app.state.whatsapp = whatsapp
    app.state.telegram = telegram
    app.state.workflows = workflows or WorkflowRunner(session_factory, llm_client, notify)

    _register_error_handlers(app)
    app.include_router(webhooks.router)
    app.include_router(dashboard.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "equiledger", "version": __version__}

    return app
