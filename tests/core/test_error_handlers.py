import json
import logging

from fastapi import Request
import pytest

from src.core.errors import handlers
from src.core.errors.exceptions import (
    AccountDisabledException,
    CoreException,
    InfrastructureException,
    InstanceAlreadyExistsException,
    InstanceProcessingException,
    InvalidCredentialsException,
    PermissionDeniedException,
    RefreshTokenNotFoundException,
    StoreUnavailableException,
    TokenExpiredException,
    TokenFamilyMismatchException,
    TokenRevokedException,
    UnauthorizedException,
)


def _build_request(headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "http_version": "1.1",
        "scheme": "http",
        "path": "/v1/resource",
        "root_path": "",
        "raw_path": b"/v1/resource",
        "query_string": b"",
        "asgi": {"version": "3.0"},
        "headers": headers or [],
        "client": ("127.0.0.1", 8000),
        "server": ("testserver", 80),
    }
    return Request(scope)


@pytest.fixture(autouse=True)
def _patch_response_logger(monkeypatch: pytest.MonkeyPatch) -> logging.Logger:
    logger = logging.getLogger("response_logger_test")
    logger.handlers = []
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    monkeypatch.setattr(handlers, "response_logger", logger)
    return logger


def test_format_log_message_masks_sensitive_data() -> None:
    request = _build_request(headers=[(b"x-request-id", b"req-123")])

    message = handlers.format_log_message(
        request,
        "unauthorized",
        "token leaked",
        {"token": "secret", "note": "safe"},
        include_request_path=True,
    )

    assert "[req-123] [Unauthorized] GET /v1/resource | token leaked" in message
    assert "token=***" in message
    assert "note='safe'" in message


def test_format_log_message_truncates_long_text() -> None:
    request = _build_request()
    long_message = "a" * 600

    message = handlers.format_log_message(request, "error", long_message)

    assert message.endswith("...")
    assert message.count("a") == 497


@pytest.mark.asyncio
async def test_core_exception_handler(caplog: pytest.LogCaptureFixture) -> None:
    handler = handlers.CoreExceptionHandler()
    request = _build_request()
    caplog.set_level(logging.INFO, logger="response_logger_test")

    response = await handler(request, CoreException("failed to process"))

    assert response.status_code == 400
    assert json.loads(response.body) == {
        "error": "Bad request",
        "message": "failed to process",
    }
    assert any("Bad request" in record.message for record in caplog.records)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler_cls,exc_cls,status,error_type,log_level,include_path",
    [
        (
            handlers.InstanceAlreadyExistsExceptionHandler,
            InstanceAlreadyExistsException,
            409,
            "Instance already exists",
            logging.INFO,
            False,
        ),
        (
            handlers.InstanceProcessingExceptionHandler,
            InstanceProcessingException,
            400,
            "Instance processing error",
            logging.INFO,
            False,
        ),
        (
            handlers.PermissionDeniedExceptionHandler,
            PermissionDeniedException,
            403,
            "Permission Denied",
            logging.WARNING,
            True,
        ),
    ],
)
async def test_other_handlers(
    handler_cls: type[handlers.HandlerCallable],
    exc_cls: type[CoreException],
    status: int,
    error_type: str,
    log_level: int,
    include_path: bool,
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    handler_instance = handler_cls()
    request = _build_request()
    caplog.set_level(log_level, logger="response_logger_test")

    if include_path:
        original = handlers.format_log_message
        monkeypatch.setattr(
            handlers,
            "format_log_message",
            lambda req, err, msg, add=None, include_request_path=False: original(
                req, err, msg, add, include_request_path=True
            ),
        )

    response = await handler_instance(request, exc_cls("failure"))

    assert response.status_code == status
    assert json.loads(response.body) == {"error": error_type, "message": "failure"}
    assert any(
        record.levelno == log_level and error_type in record.message
        for record in caplog.records
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc,public_message",
    [
        (TokenExpiredException("Token expired"), "Token expired"),
        (InvalidCredentialsException("Incorrect email or password."), "Invalid credentials"),
        (TokenRevokedException("Token has been revoked"), "Could not validate credentials"),
        (
            TokenFamilyMismatchException("Token family mismatch"),
            "Could not validate credentials",
        ),
        (
            RefreshTokenNotFoundException("Refresh token not found"),
            "Could not validate credentials",
        ),
        (UnauthorizedException("anything"), "Could not validate credentials"),
    ],
)
async def test_unauthorized_handler_hides_failing_check(
    exc: UnauthorizedException,
    public_message: str,
    caplog: pytest.LogCaptureFixture,
) -> None:
    handler = handlers.UnauthorizedExceptionHandler()
    caplog.set_level(logging.WARNING, logger="response_logger_test")

    response = await handler(_build_request(), exc)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert json.loads(response.body) == {
        "error": "Unauthorized",
        "message": public_message,
    }
    assert any(type(exc).__name__ in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_account_disabled_is_forbidden() -> None:
    handler = handlers.PermissionDeniedExceptionHandler()

    response = await handler(_build_request(), AccountDisabledException("User is blocked"))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_store_unavailable_handler(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: list[Exception] = []
    monkeypatch.setattr(handlers.sentry_sdk, "capture_exception", captured.append)
    handler = handlers.StoreUnavailableExceptionHandler()
    caplog.set_level(logging.ERROR, logger="response_logger_test")
    exc = StoreUnavailableException(
        "Key-value store unavailable", additional_info={"operation": "get_json"}
    )

    response = await handler(_build_request(), exc)

    assert response.status_code == 503
    assert response.headers["retry-after"] == str(handlers.STORE_RETRY_AFTER_SECONDS)
    assert json.loads(response.body)["error"] == "Service unavailable"
    assert captured == [exc]
    assert any("operation='get_json'" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_infrastructure_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(handlers.sentry_sdk, "capture_exception", lambda *_: None)
    handler = handlers.InfrastructureExceptionHandler()

    response = await handler(_build_request(), InfrastructureException("disk full"))

    assert response.status_code == 500
    assert json.loads(response.body)["error"] == "Infrastructure error"
