"""
Domain Errors

Raised by the service layer and turned into structured
``{"success": false, "message": ...}`` responses by the API layer.
"""


class OrderFlowError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderValidationError(OrderFlowError):
    """Rejected input: bad enum value, missing field, invalid table/contact combination."""

    status_code = 400


class PermissionDeniedError(OrderFlowError):
    """Caller is not allowed to perform the mutation."""

    status_code = 403


class NotFoundError(OrderFlowError):
    """Referenced order or menu item does not exist."""

    status_code = 404
