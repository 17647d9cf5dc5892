import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from celery_tasks.types import as_celery_task
from loggers import get_logger
from src.core.events.interfaces import AbstractEventPublisher
from src.core.events.publisher import CeleryEventPublisher
from src.core.middleware import register_middlewares
from src.main.config import config
from src.main.lifespan import lifespan
from src.main.presentation import include_exceptions_handlers, include_routers
from src.user.auth.tasks import deliver_auth_event_task
from src.user.repositories import UserRepository

logging.getLogger("uvicorn.access").disabled = True
logger = get_logger(__name__)


def get_application(
    user_repository: UserRepository | None = None,
    event_publisher: AbstractEventPublisher | None = None,
) -> FastAPI:
    """
    Build the application.

    The user-profile store lives outside this service, so the deployment
    passes its repository here. Events go to the Celery mail task unless
    another publisher is supplied.
    """
    application = FastAPI(
        title=config.app.PROJECT_NAME,
        debug=config.app.DEBUG,
        version=config.app.VERSION,
        lifespan=lifespan,
    )
    application.state.user_repository = user_repository
    application.state.event_publisher = event_publisher or CeleryEventPublisher(
        as_celery_task(deliver_auth_event_task)
    )

    # Register custom middlewares
    register_middlewares(application)

    # CORS
    application.add_middleware(
        CORSMiddleware,  # noqa
        allow_origins=config.app.CORS_ALLOWED_ORIGINS,
        allow_credentials=config.app.CORS_ALLOW_CREDENTIALS,
        allow_methods=config.app.CORS_ALLOWED_METHODS,
        allow_headers=config.app.CORS_ALLOWED_HEADERS,
        expose_headers=config.app.CORS_EXPOSE_HEADERS,
    )

    # Custom exceptions
    include_exceptions_handlers(application)

    # Routers
    include_routers(application)
    logger.info(
        "[Startup] %s registered %s route(s)",
        config.app.PROJECT_NAME,
        len(application.routes),
    )

    # Sentry middleware for error tracking
    application.add_middleware(SentryAsgiMiddleware)

    return application
