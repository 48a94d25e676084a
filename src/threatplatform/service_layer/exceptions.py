"""ABOUTME: Custom exceptions for service layer operations
ABOUTME: Defines business logic exceptions with proper error messages"""


class ThreatPlatformError(Exception):
    """Base exception for all our custom errors."""


class ServiceLayerError(ThreatPlatformError):
    """Base exception for all service layer errors."""


class UserAlreadyExists(ServiceLayerError):
    """Raised when attempting to create a user that already exists."""

    def __init__(self, email: str = "") -> None:
        message = f"User with email '{email}' already exists" if email else "User already exists"
        super().__init__(message)
        self.email = email


class TenantAlreadyExists(ServiceLayerError):
    """Raised when attempting to create a tenant with a slug that is taken."""

    def __init__(self, slug: str = "") -> None:
        message = f"Tenant with slug '{slug}' already exists" if slug else "Tenant already exists"
        super().__init__(message)
        self.slug = slug


class InvalidCredentials(ServiceLayerError):
    """Raised when authentication fails due to invalid credentials."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or "Invalid email or password")


class RateLimitExceeded(ServiceLayerError):
    """Raised when a user has exceeded rate limits for an operation."""

    def __init__(self, operation: str = "", retry_after_seconds: int = 0) -> None:
        if operation and retry_after_seconds:
            message = f"Rate limit exceeded for {operation}. Please try again in {retry_after_seconds} seconds"
        elif operation:
            message = f"Rate limit exceeded for {operation}"
        else:
            message = "Rate limit exceeded. Please try again later"
        super().__init__(message)
        self.operation = operation
        self.retry_after_seconds = retry_after_seconds


class TwoFactorSetupError(ServiceLayerError):
    """Raised when MFA enrollment cannot proceed."""


class TwoFactorVerificationError(ServiceLayerError):
    """Raised when a one-time code does not verify during MFA management."""


class NotFoundError(ServiceLayerError):
    """General error to indicate something cannot be found in a repository"""


class UserNotFoundError(NotFoundError):
    """A user could not be found in the database"""


class TenantNotFoundError(NotFoundError):
    """A tenant could not be found in the database"""
