from celery_tasks.types import CeleryTask
from loggers import get_logger
from src.core.events.interfaces import AbstractEventPublisher
from src.core.events.schemas import DomainEvent

logger = get_logger(__name__)


class CeleryEventPublisher(AbstractEventPublisher):
    """
    Hands every event to a Celery task; delivery happens in the worker.

    The event is serialized to plain JSON so the broker never sees pydantic
    objects. ``publish`` returns as soon as the message is queued.
    """

    def __init__(self, task: CeleryTask) -> None:
        self.task = task

    def publish(self, event: DomainEvent) -> None:
        try:
            self.task.delay(event.model_dump(mode="json"))
        except Exception as exc:
            logger.error("[EventPublisher] Failed to queue '%s': %s", event.name, exc)
            raise
        logger.info("[EventPublisher] Queued '%s'", event.name)


def publish_quietly(publisher: AbstractEventPublisher, event: DomainEvent) -> bool:
    """
    Publish ``event`` without letting a broken publisher fail the caller.

    Returns:
        bool: False when the publisher raised
    """
    try:
        publisher.publish(event)
    except Exception as exc:
        logger.error(
            "[EventPublisher] Could not publish '%s': %s", event.name, exc, exc_info=True
        )
        return False
    return True
