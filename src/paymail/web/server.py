from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paymail.app import App
from paymail.config import Config
from paymail.errors import IntegrationError, StoreError, UserError
from paymail.web.cookies import CookieCodec
from paymail.web.error_handlers import (
    general_exception_handler,
    integration_error_handler,
    store_error_handler,
    user_error_handler,
)
from paymail.web.openapi import set_custom_openapi
from paymail.web.routers import auth_router, email_router, logs_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="Paymail API",
        lifespan=lifespan,
        openapi_tags=[],
    )
    app.state.cookies = CookieCodec.from_config(config)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,  # Session cookie travels cross-site
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(email_router)
    app.include_router(logs_router)

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(IntegrationError, integration_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
