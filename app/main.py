"""FastAPI application entry point.

Wiring only: settings, collaborators, lifespan, exception handlers,
middleware, routers. No business logic here. See app.core.lifespan and
app.core.exception_handlers.

create_app() builds every collaborator explicitly and stores it on
app.state. Tests pass their own settings, directory factory, or token
sender instead of patching globals.
"""

from datetime import timedelta
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import api_router
from app.application.interfaces.services import DirectoryClientFactory, ITokenSender
from app.application.services.reset_workflow import ResetWorkflow
from app.application.services.token_issuer import TokenIssuer
from app.core.config import Settings, get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.reset_session_store import ResetSessionStore
from app.infrastructure.directory import DirectoryConfig, LdapDirectoryClient
from app.infrastructure.external.token_senders import TokenSenderFactory
from app.middleware import RequestIDMiddleware
from app.shared.telemetry import TelemetryConfig, setup_logging


def create_app(
    settings: Settings | None = None,
    *,
    directory_factory: DirectoryClientFactory | None = None,
    token_sender: ITokenSender | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Settings are resolved here (deferred from import) unless given.
    """
    settings = settings or get_settings()
    setup_logging(debug=settings.debug)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.settings = settings

    # ---- Collaborators ----
    if directory_factory is None:
        directory_factory = partial(LdapDirectoryClient, DirectoryConfig.from_settings(settings))
    sender = token_sender or TokenSenderFactory.create_sender(settings)
    issuer = TokenIssuer(settings.token_ttl)

    def new_workflow() -> ResetWorkflow:
        return ResetWorkflow(directory_factory, issuer, sender)

    app.state.token_issuer = issuer
    app.state.token_sender = sender
    app.state.session_store = ResetSessionStore(
        new_workflow,
        timedelta(seconds=settings.session_idle_timeout_seconds),
    )

    register_exception_handlers(app)

    # Middleware: first added = innermost.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    app.include_router(api_router, prefix="/api/v1")

    # FastAPI instrumentation adds middleware, so it must happen before startup.
    app.state.telemetry = None
    if settings.telemetry_enabled:
        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        telemetry.instrument_fastapi(app)
        app.state.telemetry = telemetry

    return app


app = create_app()
