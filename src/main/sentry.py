import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from loggers import get_logger
from src.main.config import config

logger = get_logger(__name__)

_sentry_initialized = False

SCRUBBED = "[Filtered]"
SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}
SENSITIVE_BODY_FIELDS = {
    "password",
    "new_password",
    "current_password",
    "refresh_token",
    "access_token",
    "token",
}


def scrub_credentials(
    event: dict[str, Any], hint: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Strip bearer tokens, cookies and passwords from outgoing Sentry events."""
    request = event.get("request") or {}

    headers = request.get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in SENSITIVE_HEADERS:
                headers[name] = SCRUBBED

    if request.get("cookies"):
        request["cookies"] = SCRUBBED

    data = request.get("data")
    if isinstance(data, dict):
        for field in SENSITIVE_BODY_FIELDS & set(data):
            data[field] = SCRUBBED

    query_string = request.get("query_string")
    if isinstance(query_string, str) and "token=" in query_string:
        request["query_string"] = SCRUBBED

    return event


def init_sentry() -> None:
    """
    Initialize the Sentry client once using environment variables.
    """
    global _sentry_initialized

    if _sentry_initialized:
        return

    if config.app.DEBUG or config.app.TESTING:
        logger.info("DEBUG/TESTING enabled. Skipping Sentry initialization.")
        return

    if not config.sentry.SENTRY_ENABLED or not config.sentry.SENTRY_DSN:
        logger.info("Sentry disabled or DSN empty. Skipping Sentry initialization.")
        return

    sentry_sdk.init(
        dsn=config.sentry.SENTRY_DSN,
        environment=config.sentry.SENTRY_ENV,
        release=config.app.VERSION,
        send_default_pii=False,
        before_send=scrub_credentials,
        integrations=[
            LoggingIntegration(
                level=logging.INFO,  # breadcrumbs from INFO and up
                event_level=logging.CRITICAL,  # only CRITICAL+ logs become Sentry events
            ),
        ],
    )
    _sentry_initialized = True
    logger.info("Sentry initialized.")
