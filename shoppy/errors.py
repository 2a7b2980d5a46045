# shoppy/errors.py
"""
Domain exceptions.

Routes and services raise these; `shoppy.responses` turns them into the
JSON error envelope with the matching HTTP status.
"""
from typing import Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class CartEmptyError(ValidationError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class ExternalServiceError(AppError):
    """An upstream HTTP collaborator failed or answered with garbage."""
    status_code = 502


class AIServiceError(ExternalServiceError):
    pass


class StorefrontError(ExternalServiceError):
    pass


class NoMatchingProductError(NotFoundError):
    """No live storefront product matched an extracted candidate."""

    def __init__(self, message: str = "No matching products found in store"):
        super().__init__(message)
