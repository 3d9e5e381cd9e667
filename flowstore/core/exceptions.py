"""Errors raised by the service layer; views turn them into result objects."""


class ServiceError(Exception):
    """A business rule was violated; the message is shown to the user."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class InsufficientStockError(ServiceError):
    pass


class ImmutableTransactionError(ServiceError):
    pass
