"""Custom exceptions for the storefront application."""


class StorefrontError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationFailureError(StorefrontError):
    """Raised when caller-supplied data has the wrong shape."""
    def __init__(self, message="Invalid request data", errors=None):
        payload = {'errors': errors} if errors else None
        super().__init__(message, 422, payload)


class NotFoundError(StorefrontError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class BusinessLogicError(StorefrontError):
    """Exception raised for rejected operations (HTTP 406 Not Acceptable)."""
    def __init__(self, message, status_code=406, payload=None):
        super().__init__(message, status_code, payload)


class InsertFailureError(BusinessLogicError):
    """Raised when a write reports zero affected rows."""
    def __init__(self, entity, message=None):
        super().__init__(message or f"Could not create {entity}")
        self.entity = entity


class InsufficientStockError(BusinessLogicError):
    """Raised when an order asks for more units than are available."""
    def __init__(self, product_ids=None):
        message = "could not create order. preconditions failed"
        payload = {'product_ids': sorted(product_ids)} if product_ids else None
        super().__init__(message, payload=payload)


class UnsupportedTransitionError(BusinessLogicError):
    """Raised for an order status change the workflow does not implement."""
    def __init__(self, current, requested):
        super().__init__(
            f"not implemented: order status cannot change from '{current}' to '{requested}'"
        )
        self.current = current
        self.requested = requested


class NoChangeNeededError(BusinessLogicError):
    """Raised when an update would not change anything."""
    def __init__(self, message="status not updated. no change needed"):
        super().__init__(message)


class StoreUnavailableError(StorefrontError):
    """Raised when the relational store cannot be reached or fails."""
    def __init__(self, message="Database unavailable"):
        super().__init__(message, 503)
