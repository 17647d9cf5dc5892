from collections.abc import Callable
from typing import Any, Protocol, TypeVar, cast, overload

from celery import shared_task

from celery_tasks.main import celery_app  # noqa: F401


class CeleryTask(Protocol):
    """What callers rely on: a plain call runs inline, ``delay`` enqueues."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any: ...
    def delay(self, *args: Any, **kwargs: Any) -> Any: ...


F = TypeVar("F", bound=Callable[..., Any])


@overload
def typed_shared_task(func: F) -> F: ...


@overload
def typed_shared_task(
    *, name: str | None = None, **kwargs: Any
) -> Callable[[F], F]: ...


def typed_shared_task(func: F | None = None, **kwargs: Any) -> F | Callable[[F], F]:
    """
    ``shared_task`` that keeps the wrapped function's signature for type checkers.

    Usable bare (``@typed_shared_task``) or with task options
    (``@typed_shared_task(name="...", autoretry_for=(...,))``).
    """

    def decorator(func: F) -> F:
        return cast(F, shared_task(**kwargs)(func))

    if func is None:
        return decorator
    return decorator(func)


def as_celery_task(func: Callable[..., Any]) -> CeleryTask:
    return cast(CeleryTask, func)
