"""
Application error types
Each error carries the message shown to the client and the HTTP status it maps to
"""


class AppError(Exception):
    """Base class for errors that are safe to show to the client"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class ProviderError(AppError):
    """The identity provider rejected a request (e.g. email already registered)"""

    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Expense not found"):
        super().__init__(message)
