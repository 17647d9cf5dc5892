from typing import cast

from fastapi import Request

from src.core.events.interfaces import AbstractEventPublisher


async def get_event_publisher(request: Request) -> AbstractEventPublisher:
    publisher = getattr(request.app.state, "event_publisher", None)
    if publisher is None:
        raise RuntimeError(
            "Event publisher is not configured. Build the app with get_application()."
        )
    return cast(AbstractEventPublisher, publisher)
