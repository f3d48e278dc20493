"""
Domain errors raised by the services.

Services never import FastAPI: the API layer maps these exceptions to HTTP
responses (see backend.app.main).
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DomainValidationError(DomainError):
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """A procurement order was asked to move to a status it cannot reach."""


class InsufficientStockError(DomainError):
    status_code = 400
