from typing import Any

from asgiref.sync import async_to_sync
from fastapi_mail.errors import ConnectionErrors

from celery_tasks.main import celery_app  # noqa: F401
from celery_tasks.types import typed_shared_task
from loggers import get_logger
from src.core.email_service.fastapi_mailer import get_mailer
from src.core.events.schemas import DomainEvent
from src.main.config import config
from src.user.auth.notifications import AuthMailNotifier

logger = get_logger(__name__)


@typed_shared_task(
    name="deliver_auth_event",
    autoretry_for=(ConnectionErrors, ConnectionError),
    retry_backoff=True,
    max_retries=config.celery.CELERY_MAIL_MAX_RETRIES,
)
def deliver_auth_event_task(event_data: dict[str, Any]) -> bool:
    """
    Celery task delivering the mail for one auth event.

    SMTP connection failures are retried with backoff.
    """
    event = DomainEvent.model_validate(event_data)
    notifier = AuthMailNotifier(get_mailer())
    try:
        return async_to_sync(notifier.handle)(event)
    except Exception as e:
        logger.exception("[DeliverAuthEvent] Failed to deliver '%s': %s", event.name, e)
        raise
