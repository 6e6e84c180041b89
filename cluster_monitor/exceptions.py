"""Custom exceptions for cluster monitor."""


class ClusterMonitorError(Exception):
    """Base exception for all cluster monitor errors."""

    def __init__(self, message: str, details: str | None = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ApiError(ClusterMonitorError):
    """Exception raised for failed requests against the cluster API."""

    def __init__(self, message: str, details: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, details)


class MalformedResponseError(ApiError):
    """Response body is missing required fields or is internally inconsistent."""

    pass


class NetworkError(ApiError):
    """Server unreachable, request timed out, or server-side failure."""

    pass


class AuthorizationError(ApiError):
    """Data request rejected because the credential is missing or no longer valid."""

    pass


class CredentialRejectedError(ApiError):
    """Login attempt rejected by the server."""

    pass


class PersistenceError(ClusterMonitorError):
    """Exception raised when the token file cannot be read or written."""

    pass


class ConfigurationError(ClusterMonitorError):
    """Exception raised for configuration errors."""

    pass
