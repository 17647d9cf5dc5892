from typing import Any


class CoreException(Exception):
    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info


class InfrastructureException(CoreException):
    pass


class StoreUnavailableException(InfrastructureException):
    """The shared key-value store could not be reached. Safe to retry."""


class InstanceAlreadyExistsException(CoreException):
    pass


class InstanceProcessingException(CoreException):
    pass


class UnauthorizedException(CoreException):
    pass


class InvalidCredentialsException(UnauthorizedException):
    pass


class UserNotFoundException(UnauthorizedException):
    pass


class TokenExpiredException(UnauthorizedException):
    pass


class TokenRevokedException(UnauthorizedException):
    pass


class TokenMalformedException(UnauthorizedException):
    pass


class TokenFamilyMismatchException(UnauthorizedException):
    pass


class RefreshTokenNotFoundException(UnauthorizedException):
    pass


class ResetTokenAlreadyUsedException(UnauthorizedException):
    pass


class PermissionDeniedException(CoreException):
    pass


class AccountDisabledException(PermissionDeniedException):
    pass
