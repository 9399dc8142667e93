class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str = "Resource", id: str = ""):
        super().__init__(f"{resource} not found: {id}" if id else f"{resource} not found")


class ConflictError(AppError):
    """Raised when a resource already exists."""

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message)


class AuthenticationError(AppError):
    """Raised when credentials are invalid."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class AuthorizationError(AppError):
    """Raised when a user lacks permission for an action."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ValidationError(AppError):
    """Raised for malformed requests or event payloads."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)


class PersistenceError(AppError):
    """Raised when the store cannot be read or written. Safe to retry."""

    def __init__(self, message: str = "Storage unavailable, please retry"):
        super().__init__(message)
