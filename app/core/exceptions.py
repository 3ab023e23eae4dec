"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them
once and get consistent HTTP status codes everywhere.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Offer", resource_id=42)
    raise ValidationError("user_input is required", details={"user_input": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Used for BOTH genuinely missing records AND cross-tenant access
    attempts, so a 404 never confirms that another tenant's record exists.

    Args:
        resource: Human-readable model/entity name (e.g. "Offer", "User").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        tenant_email: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_email: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_email = tenant_email
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_email is not None:
            msg += f" (tenant={tenant_email})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when the calling principal lacks the privilege for an operation.

    Maps to HTTP 403.
    """


class ConfigurationError(Exception):
    """Raised when a required setting (e.g. an API credential) is missing.

    Always raised before any external call is attempted.
    """


class LLMProviderError(Exception):
    """Raised when the text-generation endpoint fails.

    Covers transport errors, non-2xx responses and responses without a
    completion.

    Args:
        message: Human-readable explanation.
        status_code: HTTP status of the failed response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RateLimitedError(LLMProviderError):
    """Raised when the text-generation endpoint answers HTTP 429."""

    def __init__(self, message: str = "Rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class AIResponseParseError(Exception):
    """Raised when a model completion is not valid JSON after fence stripping."""
