from typing import Optional, Any


class AssistantError(Exception):
    """
    Base exception for the assistant application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AssistantError):
    """
    Raised when authentication fails (e.g. bad webhook signature).
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class ExternalServiceError(AssistantError):
    """
    Raised when an external service (WaSender, Google) fails.
    """
    def __init__(self, message: str = "External service error", code: str = "EXTERNAL_SERVICE_ERROR",
                 status_code: int = 502, details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=status_code, details=details)


class ExtractionEmpty(AssistantError):
    """
    Raised when an inbound payload carries no usable (sender, text) pair.
    """
    def __init__(self, message: str = "No message in payload", details: Optional[Any] = None):
        super().__init__(message, code="EXTRACTION_EMPTY", status_code=200, details=details)


class DeliveryFailed(ExternalServiceError):
    """
    Raised when an outbound message cannot be delivered.
    """
    def __init__(self, message: str = "Message delivery failed", status_code: Optional[int] = None,
                 details: Optional[Any] = None):
        self.provider_status = status_code
        super().__init__(message, code="DELIVERY_FAILED", status_code=502, details=details)


class RateLimited(ExternalServiceError):
    """
    Raised when the provider keeps answering 429 after all attempts.
    """
    def __init__(self, retry_after_seconds: float = 60, details: Optional[Any] = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Rate limited. Try again in {retry_after_seconds:g} seconds.",
            code="RATE_LIMITED",
            status_code=429,
            details=details,
        )


class CalendarLookupFailed(ExternalServiceError):
    """
    Raised when today's events cannot be fetched.
    """
    def __init__(self, message: str = "Calendar lookup failed", details: Optional[Any] = None):
        super().__init__(message, code="CALENDAR_LOOKUP_FAILED", status_code=502, details=details)


class CalendarNotLinked(CalendarLookupFailed):
    """
    Raised when the user has no stored calendar credential.
    """
    def __init__(self, message: str = "User not connected to Google Calendar", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "CALENDAR_NOT_LINKED"


class OAuthError(AssistantError):
    """
    Raised when the OAuth flow cannot proceed.
    """
    def __init__(self, message: str = "OAuth flow failed", status_code: int = 400, details: Optional[Any] = None):
        super().__init__(message, code="OAUTH_ERROR", status_code=status_code, details=details)
