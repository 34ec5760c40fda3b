"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class ConfigurationError(AppError):
    """Raised when the Firebase backend has not been initialized."""

    def __init__(self, message="Firestore is not initialized. Check Firebase config."):
        """Initialize the error."""
        super().__init__(message, 503)


class StoreWriteError(AppError):
    """Raised when Firestore rejects a create or update."""

    def __init__(self, message="The change could not be saved."):
        """Initialize the error."""
        super().__init__(message, 502)


class SubscriptionError(AppError):
    """Raised when a live query fails. Terminal for that subscription."""

    def __init__(self, message="Failed to load data."):
        """Initialize the error."""
        super().__init__(message, 500)


class AuthenticationError(AppError):
    """Raised when an ID token cannot be verified."""

    def __init__(self, message="Invalid token or server error."):
        """Initialize the error."""
        super().__init__(message, 401)
