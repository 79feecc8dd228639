"""Exceptions raised by the catalog services and mapped to HTTP responses in main."""


class CatalogError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Missing or malformed input, or a rejected upload."""

    status_code = 400


class AuthenticationError(CatalogError):
    status_code = 401


class NotFound(CatalogError):
    status_code = 404


class DependencyError(CatalogError):
    """The database or the blob store failed.

    The message is what the client sees, so keep it generic; log the cause.
    """

    status_code = 500


class DependencyTimeout(DependencyError):
    status_code = 504
